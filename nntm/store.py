"""
In-memory record store backed by a todo.txt file.

The store is the single shared mutable resource: the pipe reader thread
appends to it while the consumer reads, sorts and edits it. Every access
to the record list and the context registry goes through one re-entrant
lock. Callers that need several steps to be atomic (translate a view
index, then edit, then persist) hold ``store.lock`` around the sequence.
"""

import logging
import threading
from pathlib import Path

from .codec import decode, encode
from .errors import IOUnavailable
from .types import ALL_CONTEXT, MAX_RECORDS, Record

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Ordered collection of Records plus the registry of known contexts.

    The registry always starts with the virtual ``all`` label and keeps
    the other labels in first-seen order. Inserts beyond ``max_records``
    are rejected without touching existing data.
    """

    def __init__(self, max_records: int = MAX_RECORDS):
        self.max_records = max_records
        self.lock = threading.RLock()
        # Set while records arrive from a pipe; disables persist
        self.streaming = False
        self._records: list[Record] = []
        self._contexts: list[str] = [ALL_CONTEXT]

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        with self.lock:
            return len(self._records)

    def records(self) -> list[Record]:
        """Copy of the record list, in store order."""
        with self.lock:
            return list(self._records)

    def contexts(self) -> list[str]:
        """Copy of the context registry, ``all`` first."""
        with self.lock:
            return list(self._contexts)

    def get(self, position: int) -> Record:
        with self.lock:
            return self._records[position]

    def is_full(self) -> bool:
        with self.lock:
            return len(self._records) >= self.max_records

    # -------------------------------------------------------------------------
    # Structural edits
    # -------------------------------------------------------------------------

    def register_context(self, label: str) -> bool:
        """Add a context label if absent. Idempotent.

        Returns True when the label is in the registry afterwards, False
        when the registry is full.
        """
        with self.lock:
            if label in self._contexts:
                return True
            if len(self._contexts) >= self.max_records:
                logger.debug("Context registry full, dropping %r", label)
                return False
            self._contexts.append(label)
            return True

    def insert_after(self, position: int, record: Record) -> bool:
        """Insert a record right after ``position`` (-1 inserts at the front).

        Returns False, changing nothing, when the store is full.
        """
        with self.lock:
            if not -1 <= position < len(self._records):
                raise IndexError(f"position {position} out of range")
            if len(self._records) >= self.max_records:
                logger.debug("Store full (%d records), insert rejected", self.max_records)
                return False
            self._records.insert(position + 1, record)
            return True

    def append(self, record: Record) -> bool:
        with self.lock:
            return self.insert_after(len(self._records) - 1, record)

    def remove_at(self, position: int) -> Record:
        """Remove and return the record at ``position``; survivors close the gap."""
        with self.lock:
            if not 0 <= position < len(self._records):
                raise IndexError(f"position {position} out of range")
            return self._records.pop(position)

    def replace_at(self, position: int, record: Record) -> Record:
        """Replace the record at ``position``, returning the old one."""
        with self.lock:
            if not 0 <= position < len(self._records):
                raise IndexError(f"position {position} out of range")
            old = self._records[position]
            self._records[position] = record
            return old

    # -------------------------------------------------------------------------
    # File I/O
    # -------------------------------------------------------------------------

    def load(self, source: Path) -> int:
        """
        Replace all records and contexts with those decoded from ``source``.

        Blank lines are skipped, so the next persist rewrites the file
        without them. Lines past the capacity are ignored. Bytes that are
        not valid UTF-8 are kept as surrogate escapes and written back
        unchanged.

        Returns:
            Number of records loaded

        Raises:
            IOUnavailable: If the file cannot be opened or read
        """
        source = Path(source)
        records: list[Record] = []
        try:
            with open(source, "r", encoding="utf-8", errors="surrogateescape") as f:
                for line in f:
                    if len(records) >= self.max_records:
                        logger.warning("%s has more than %d records, rest ignored",
                                       source, self.max_records)
                        break
                    if not line.strip():
                        continue
                    records.append(decode(line))
        except OSError as e:
            raise IOUnavailable(source, e.strerror or str(e)) from e

        with self.lock:
            self._records = records
            self._contexts = [ALL_CONTEXT]
            for record in records:
                self.register_context(record.context)
        logger.info("Loaded %d records from %s", len(records), source)
        return len(records)

    def persist(self, destination: Path) -> bool:
        """
        Write every record, in store order, one per line, overwriting
        ``destination``.

        Does nothing while streaming: the source is a pipe and is never
        written back.

        Returns:
            True if the file was written

        Raises:
            IOUnavailable: If the file cannot be written
        """
        destination = Path(destination)
        with self.lock:
            if self.streaming:
                return False
            try:
                with open(destination, "w", encoding="utf-8", errors="surrogateescape") as f:
                    for record in self._records:
                        f.write(encode(record))
                        f.write("\n")
            except OSError as e:
                raise IOUnavailable(destination, e.strerror or str(e)) from e
            logger.debug("Saved %d records to %s", len(self._records), destination)
            return True
