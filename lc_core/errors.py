"""Error taxonomy for the catalog engine.

Every error raised inside the engine derives from :class:`CatalogError` and
carries a ``kind`` used by the service boundary to build structured results.
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base class for engine errors."""

    kind = "internal"


class PackParseError(CatalogError, ValueError):
    """Raised when a language pack is not a valid JSON object of string leaves."""

    kind = "parse"


class CatalogValidationError(CatalogError, ValueError):
    """Raised for unknown locales, oversized packs and malformed requests."""

    kind = "validation"


class PermissionDeniedError(CatalogError):
    """Raised when the caller is not allowed to mutate the catalog."""

    kind = "permission"


class BindingError(CatalogError, LookupError):
    """Raised when a bind target page or module cannot be resolved."""

    kind = "binding"


class QualityGateError(CatalogError):
    """Raised when strict quality mode blocks an export."""

    kind = "quality_gate"

    def __init__(self, locale: str, blocked_count: int) -> None:
        super().__init__(
            f"Quality gate: locale '{locale}' has {blocked_count} unapproved or empty "
            "translation(s); export is blocked."
        )
        self.locale = locale
        self.blocked_count = blocked_count


class StorageError(CatalogError, RuntimeError):
    """Raised when the storage layer rejects a write that was not anticipated."""

    kind = "storage"
