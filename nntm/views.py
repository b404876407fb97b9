"""
Context-filtered views over a RecordStore.

A view is named by a context label: ``all`` selects every record, any
other label selects the records carrying exactly that context. Sorting
and grouping reorder only the records in the view and write them back
into the positions the view occupied, so records outside the view keep
their absolute positions.
"""

from typing import Callable, Optional

from .store import RecordStore
from .types import ALL_CONTEXT, Record

# Sort key for records without a priority: after every letter
NO_PRIORITY_KEY = 127


def matches(record: Record, context: str) -> bool:
    return context == ALL_CONTEXT or record.context == context


def visible_positions(store: RecordStore, context: str) -> list[int]:
    """Absolute positions of the records in the view, in store order."""
    with store.lock:
        return [i for i, r in enumerate(store.records()) if matches(r, context)]


def visible(store: RecordStore, context: str) -> list[Record]:
    with store.lock:
        return [r for r in store.records() if matches(r, context)]


def count_visible(store: RecordStore, context: str) -> int:
    if context == ALL_CONTEXT:
        return len(store)
    return len(visible(store, context))


def absolute_index(store: RecordStore, context: str, view_index: int) -> Optional[int]:
    """Translate a view-relative index to a store position.

    Returns None when the view has no record at ``view_index``.
    """
    if view_index < 0:
        return None
    positions = visible_positions(store, context)
    if view_index >= len(positions):
        return None
    return positions[view_index]


def _reorder(store: RecordStore, context: str,
             arrange: Callable[[list[Record]], list[Record]]) -> None:
    """Rearrange the view's records and splice them back in place."""
    with store.lock:
        positions = visible_positions(store, context)
        subset = [store.get(p) for p in positions]
        for position, record in zip(positions, arrange(subset)):
            store.replace_at(position, record)


def date_key(record: Record) -> str:
    # Fixed-width ISO dates order lexicographically
    return record.date


def priority_key(record: Record) -> int:
    return ord(record.priority[0]) if record.priority else NO_PRIORITY_KEY


def sort_by_date(store: RecordStore, context: str, descending: bool = False) -> None:
    """Stable sort of the view by date; ties keep their relative order."""
    _reorder(store, context, lambda rs: sorted(rs, key=date_key, reverse=descending))


def sort_by_priority(store: RecordStore, context: str, descending: bool = False) -> None:
    """Stable sort of the view by priority letter.

    Records without a priority come last ascending and first descending.
    """
    _reorder(store, context, lambda rs: sorted(rs, key=priority_key, reverse=descending))


def group_by_completion(store: RecordStore, context: str) -> None:
    """Stable partition of the view: open records first, then completed."""
    _reorder(store, context, lambda rs: (
        [r for r in rs if not r.completed] + [r for r in rs if r.completed]
    ))
