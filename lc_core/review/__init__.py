"""Human review actions: entry creation, edits, approval and progress."""

from lc_core.review.review_service import (
    LocaleProgress,
    TranslationState,
    approve_translation,
    create_entry,
    locale_progress,
    save_translation,
)

__all__ = [
    "LocaleProgress",
    "TranslationState",
    "approve_translation",
    "create_entry",
    "locale_progress",
    "save_translation",
]
