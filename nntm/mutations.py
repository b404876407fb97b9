"""
State transitions on records, and archival of completed records.

The record-level functions return new Records and never touch a store;
the controller in ``nntm.api`` decides where they land and whether the
file is saved.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

from .codec import append_priority_tag, encode, split_priority_tag
from .errors import InvalidOperation, IOUnavailable
from .store import RecordStore
from .types import Record

logger = logging.getLogger(__name__)


def complete(record: Record, today: str) -> Record:
    """Mark a record completed on ``today``.

    An open priority moves into the text as a trailing `` pri:X`` token.
    """
    text = record.text
    if record.priority:
        text = append_priority_tag(text, record.priority)
    return replace(record, completed=True, completion_date=today, priority="", text=text)


def uncomplete(record: Record) -> Record:
    """Reopen a completed record, restoring a trailing `` pri:X`` as priority."""
    text, letter = split_priority_tag(record.text)
    return replace(
        record,
        completed=False,
        completion_date="",
        priority=letter or record.priority,
        text=text,
    )


def toggle(record: Record, today: str) -> Record:
    return uncomplete(record) if record.completed else complete(record, today)


def normalize_priority(value: Optional[str]) -> str:
    """Validate a priority value: a single letter (uppercased), or clear.

    None, the empty string and a blank all mean "clear".
    """
    if value is None or not value.strip():
        return ""
    value = value.strip()
    if len(value) != 1 or not value.isascii() or not value.isalpha():
        raise InvalidOperation(f"Priority must be a single letter A-Z, got {value!r}")
    return value.upper()


def with_priority(record: Record, value: Optional[str]) -> Record:
    """Set or clear the priority of an open record.

    Raises:
        InvalidOperation: If the record is completed or the value is not a letter
    """
    if record.completed:
        raise InvalidOperation("Cannot set priority on completed item.")
    return replace(record, priority=normalize_priority(value))


def archive_completed(store: RecordStore, destination: Path) -> int:
    """
    Move every completed record to the end of ``destination``.

    Records are appended in store order using the completed-line encoding
    and removed from the store as they are written, so survivors keep
    their relative order. If the destination cannot be opened nothing is
    removed. A write failure part way stops the move: what was written is
    gone from the store, the rest stays.

    Returns:
        Number of records archived

    Raises:
        IOUnavailable: If the archive cannot be opened or written
    """
    destination = Path(destination)
    archived = 0
    with store.lock:
        try:
            f = open(destination, "a", encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise IOUnavailable(destination, e.strerror or str(e)) from e
        with f:
            position = 0
            while position < len(store):
                record = store.get(position)
                if not record.completed:
                    position += 1
                    continue
                try:
                    f.write(encode(record) + "\n")
                    f.flush()
                except OSError as e:
                    logger.warning("Archive write to %s failed after %d records: %s",
                                   destination, archived, e)
                    raise IOUnavailable(destination, e.strerror or str(e)) from e
                store.remove_at(position)
                archived += 1
    logger.info("Archived %d completed records to %s", archived, destination)
    return archived
