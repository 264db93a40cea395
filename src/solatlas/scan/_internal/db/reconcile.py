"""Keyed reconciliation of freshly scanned records against stored ones.

One algorithm serves every scanned record kind (artifacts, members, data set
declarations, controller actions):

1. Load the stored records for the scope (one project).
2. Build the fresh records from the current scan.
3. Index both sides by natural key. String key parts compare case-insensitively.
4. Stored records whose key is absent from the fresh set are deleted.
5. Matched stored records receive the fresh values of the mutable fields only;
   primary key and identity columns are never rewritten. Unmatched fresh
   records are inserted.

CRITICAL INVARIANT: reconciling the same input twice is a no-op the second
time. A matched record counts as updated (and has ``updated_at`` touched) only
when at least one mutable field actually differs.

Key collisions inside the fresh set resolve keep-first; the rest are reported
as duplicates rather than raised.
"""

from __future__ import annotations

from collections.abc import Callable, Hashable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

if TYPE_CHECKING:
    from sqlmodel import Session

T = TypeVar("T")

KeyFn = Callable[[T], tuple[Any, ...]]


def normalize_key(parts: tuple[Any, ...]) -> tuple[Hashable, ...]:
    """Case-fold every string part of a natural key."""
    return tuple(p.casefold() if isinstance(p, str) else p for p in parts)


@dataclass
class RecordDiff(Generic[T]):
    """Outcome of comparing stored records against fresh ones."""

    inserts: list[T] = field(default_factory=list)
    updates: list[tuple[T, T]] = field(default_factory=list)  # (stored, fresh)
    unchanged: list[T] = field(default_factory=list)
    deletes: list[T] = field(default_factory=list)
    duplicates: list[T] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not (self.inserts or self.updates or self.deletes)


@dataclass
class ReconcileCounts:
    """Per record-kind counters reported by a reconciliation."""

    inserted: int = 0
    updated: int = 0
    deleted: int = 0
    unchanged: int = 0
    duplicates: int = 0

    def __iadd__(self, other: ReconcileCounts) -> ReconcileCounts:
        self.inserted += other.inserted
        self.updated += other.updated
        self.deleted += other.deleted
        self.unchanged += other.unchanged
        self.duplicates += other.duplicates
        return self

    @property
    def changed(self) -> int:
        return self.inserted + self.updated + self.deleted


def _differs(stored: Any, fresh: Any, fields: Sequence[str]) -> bool:
    return any(getattr(stored, name) != getattr(fresh, name) for name in fields)


def diff_records(
    existing: Iterable[T],
    fresh: Iterable[T],
    key: KeyFn[T],
    fields: Sequence[str],
) -> RecordDiff[T]:
    """Compare stored and fresh records by natural key.

    Args:
        existing: Records currently persisted for the scope.
        fresh: Records produced by the current scan, in discovery order.
        key: Natural key extractor. String parts are case-folded.
        fields: Mutable descriptive fields compared and copied on update.
    """
    diff: RecordDiff[T] = RecordDiff()

    fresh_by_key: dict[tuple[Hashable, ...], T] = {}
    for record in fresh:
        k = normalize_key(key(record))
        if k in fresh_by_key:
            diff.duplicates.append(record)
            continue
        fresh_by_key[k] = record

    matched: set[tuple[Hashable, ...]] = set()
    for stored in existing:
        k = normalize_key(key(stored))
        candidate = fresh_by_key.get(k)
        if candidate is None or k in matched:
            # Absent from the scan, or a stored case-variant of an already matched key
            diff.deletes.append(stored)
            continue
        matched.add(k)
        if _differs(stored, candidate, fields):
            diff.updates.append((stored, candidate))
        else:
            diff.unchanged.append(stored)

    diff.inserts = [record for k, record in fresh_by_key.items() if k not in matched]
    return diff


def apply_diff(
    session: Session,
    diff: RecordDiff[Any],
    fields: Sequence[str],
    *,
    now: float,
    include_deletes: bool = True,
) -> ReconcileCounts:
    """Write a diff through an open session.

    ``include_deletes=False`` lets the caller defer parent deletions until
    child records have been reconciled against the surviving parents.
    """
    for stored, fresh in diff.updates:
        for name in fields:
            setattr(stored, name, getattr(fresh, name))
        stored.updated_at = now
        session.add(stored)

    for record in diff.inserts:
        record.updated_at = now
        session.add(record)

    if include_deletes:
        delete_records(session, diff.deletes)

    session.flush()
    return ReconcileCounts(
        inserted=len(diff.inserts),
        updated=len(diff.updates),
        deleted=len(diff.deletes) if include_deletes else 0,
        unchanged=len(diff.unchanged),
        duplicates=len(diff.duplicates),
    )


def delete_records(session: Session, records: Iterable[Any]) -> int:
    count = 0
    for record in records:
        session.delete(record)
        count += 1
    session.flush()
    return count
