"""Diffing incoming language packs against the catalog."""

from lc_core.reconcile.source import KeyChange, SourceReconcileResult, reconcile_source
from lc_core.reconcile.target import TargetReconcileResult, reconcile_target

__all__ = [
    "KeyChange",
    "SourceReconcileResult",
    "TargetReconcileResult",
    "reconcile_source",
    "reconcile_target",
]
