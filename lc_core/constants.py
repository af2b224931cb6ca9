CURRENT_SCHEMA_VERSION = 1
DEFAULT_PROJECTS_DIRNAME = "projects"
PROJECT_DB_FILENAME = "project.db"
PROJECT_CONFIG_FILENAME = "config.yml"
PROJECT_README_FILENAME = "README.txt"
EXPORTS_DIRNAME = "exports"
PROJECT_SUBDIRS = (EXPORTS_DIRNAME,)

MAX_PACK_CHARS = 5_000_000
MAX_PACK_LEAVES = 50_000
MAX_LOCALE_LENGTH = 20
MAX_CONTEXT_NAME_LENGTH = 200
MAX_ENTRY_KEY_LENGTH = 200
MAX_ENTRY_TEXT_LENGTH = 5000
DETAIL_LIST_LIMIT = 200
PLACEMENT_BATCH_SIZE = 1000
UPLOAD_HISTORY_LIMIT = 200

ROOT_MODULE_NAME = "__root__"

STATUS_PENDING = "pending"
STATUS_NEEDS_UPDATE = "needs_update"
STATUS_NEEDS_REVIEW = "needs_review"
STATUS_READY = "ready"
STATUS_APPROVED = "approved"

SHAPE_FLAT = "flat"
SHAPE_TREE = "tree"

QUALITY_MODE_OFF = "off"
QUALITY_MODE_STRICT = "strict"

JSON_CONTENT_TYPE = "application/json"
ZIP_CONTENT_TYPE = "application/zip"
