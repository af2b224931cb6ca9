"""Import audit records."""

from lc_core.audit.recorder import (
    UploadDetail,
    UploadDetails,
    UploadHistoryItem,
    UploadSummary,
    get_upload_detail,
    list_upload_history,
    record_package_upload,
)

__all__ = [
    "UploadDetail",
    "UploadDetails",
    "UploadHistoryItem",
    "UploadSummary",
    "get_upload_detail",
    "list_upload_history",
    "record_package_upload",
]
