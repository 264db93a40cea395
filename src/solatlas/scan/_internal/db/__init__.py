"""Database layer: engine, transactions and keyed reconciliation."""

from solatlas.scan._internal.db.database import Database
from solatlas.scan._internal.db.reconcile import (
    ReconcileCounts,
    RecordDiff,
    apply_diff,
    delete_records,
    diff_records,
    normalize_key,
)

__all__ = [
    "Database",
    "ReconcileCounts",
    "RecordDiff",
    "apply_diff",
    "delete_records",
    "diff_records",
    "normalize_key",
]
