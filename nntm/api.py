"""
Core API for a todo file.

TodoList owns the record store for one todo path together with the
consumer's selection (current context view, selected index, follow
mode). Every edit is addressed by an index into the current view, is
applied under the store lock, saves the file unless streaming, and
fires the notification hook after the lock is released.

If the path is a named pipe the list starts in streaming mode: no
initial load, records arrive from a PipeReader, and the file is never
written.
"""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional

from . import views
from .config import NntmConfig, get_config_path
from .errors import IOUnavailable, InvalidOperation
from .hooks import ADDED, COMPLETED, UNCOMPLETED, HookNotifier
from .ingest import PipeReader, is_named_pipe
from .mutations import archive_completed, toggle, with_priority
from .store import RecordStore
from .types import ALL_CONTEXT, MAX_CONTEXT, MAX_LINE, Record, today

logger = logging.getLogger(__name__)


class TodoList:
    """
    A todo file and the view a consumer has on it.

    Raises IOUnavailable on construction if the path cannot be stat'ed or,
    for a regular file, loaded.
    """

    def __init__(
        self,
        path: Path,
        *,
        config: Optional[NntmConfig] = None,
        notifier: Optional[HookNotifier] = None,
        clock: Callable[[], str] = today,
    ):
        self.path = Path(path)
        self.config = config or NntmConfig(path=get_config_path())
        self.notifier = notifier or HookNotifier(self.config.hook)
        self.clock = clock
        self.archive_path = self.config.archive_path(self.path)

        self.store = RecordStore(max_records=self.config.max_records)
        self.context = ALL_CONTEXT
        self.index = 0
        # Keep the newest streamed record selected until the user scrolls up
        self.follow = True
        # Last save failure, reported to the user and cleared on success
        self.last_error: Optional[str] = None
        self._reader: Optional[PipeReader] = None

        if is_named_pipe(self.path):
            self.store.streaming = True
            logger.info("%s is a named pipe, streaming mode", self.path)
        else:
            self.store.load(self.path)

    @property
    def streaming(self) -> bool:
        return self.store.streaming

    # -------------------------------------------------------------------------
    # Streaming
    # -------------------------------------------------------------------------

    def start_streaming(self) -> PipeReader:
        """Start the background pipe reader (streaming mode only)."""
        if not self.streaming:
            raise InvalidOperation(f"{self.path} is not a named pipe")
        if self._reader is None:
            self._reader = PipeReader(
                self.store,
                self.path,
                on_append=self._follow_new,
                retry_delay=self.config.retry_delay,
                clock=self.clock,
            )
            self._reader.start()
        return self._reader

    def close(self) -> None:
        if self._reader is not None:
            self._reader.stop()

    def _follow_new(self, record: Record) -> None:
        with self.store.lock:
            if self.follow:
                self.index = max(self.count_visible() - 1, 0)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def save(self) -> bool:
        """Write the store to the todo file.

        A failure is logged and kept in ``last_error``; the in-memory state
        is retained and the next successful save catches up.
        """
        try:
            saved = self.store.persist(self.path)
        except IOUnavailable as e:
            logger.warning("Save failed: %s", e)
            self.last_error = str(e)
            return False
        if saved:
            self.last_error = None
        return saved

    def reset(self) -> int:
        """Discard in-memory edits and reload the todo file."""
        if self.streaming:
            raise InvalidOperation("Cannot reload while streaming from a pipe")
        with self.store.lock:
            count = self.store.load(self.path)
            if self.context not in self.store.contexts():
                self.context = ALL_CONTEXT
            self.index = 0
        return count

    # -------------------------------------------------------------------------
    # Views and selection
    # -------------------------------------------------------------------------

    def visible(self) -> list[Record]:
        return views.visible(self.store, self.context)

    def count_visible(self, context: Optional[str] = None) -> int:
        return views.count_visible(self.store, context or self.context)

    def contexts(self) -> list[str]:
        return self.store.contexts()

    def selected(self) -> Optional[Record]:
        with self.store.lock:
            position = views.absolute_index(self.store, self.context, self.index)
            return None if position is None else self.store.get(position)

    def select_context(self, label: str) -> str:
        """Switch the view to ``label``, registering it if unknown."""
        label = label or ALL_CONTEXT
        with self.store.lock:
            if not self.store.register_context(label):
                label = ALL_CONTEXT
            self.context = label
            self.index = 0
        return label

    def next_context(self) -> str:
        return self._step_context(1)

    def previous_context(self) -> str:
        return self._step_context(-1)

    def _step_context(self, step: int) -> str:
        with self.store.lock:
            contexts = self.store.contexts()
            current = contexts.index(self.context) if self.context in contexts else 0
            self.context = contexts[(current + step) % len(contexts)]
            self.index = 0
        return self.context

    def move_selection(self, delta: int) -> int:
        """Move the selection within the view, clamped to its ends.

        Moving up turns follow mode off; reaching the bottom while
        streaming turns it back on.
        """
        with self.store.lock:
            count = self.count_visible()
            if delta < 0:
                self.follow = False
            self.index = max(0, min(self.index + delta, count - 1))
            if delta > 0 and self.streaming and self.index >= count - 1:
                self.follow = True
        return self.index

    def toggle_follow(self) -> bool:
        self.follow = not self.follow
        return self.follow

    def sort_by_date(self, descending: bool = False) -> None:
        views.sort_by_date(self.store, self.context, descending)
        self.index = 0

    def sort_by_priority(self, descending: bool = False) -> None:
        views.sort_by_priority(self.store, self.context, descending)
        self.index = 0

    def group_by_completion(self) -> None:
        views.group_by_completion(self.store, self.context)
        self.index = 0

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def _locate(self, index: int) -> Optional[int]:
        return views.absolute_index(self.store, self.context, index)

    def toggle_completion(self, index: int) -> Optional[Record]:
        """Flip completion of the record at ``index`` in the current view.

        Returns the updated record, or None if the view has no such index.
        """
        with self.store.lock:
            position = self._locate(index)
            if position is None:
                return None
            record = toggle(self.store.get(position), self.clock())
            self.store.replace_at(position, record)
            self.save()
        self.notifier.notify(COMPLETED if record.completed else UNCOMPLETED, record.text)
        return record

    def set_priority(self, index: int, value: Optional[str]) -> Optional[Record]:
        """Set (a letter) or clear (None/empty) the priority of an open record.

        Raises:
            InvalidOperation: If the record is completed or the value is not a letter
        """
        with self.store.lock:
            position = self._locate(index)
            if position is None:
                return None
            record = with_priority(self.store.get(position), value)
            self.store.replace_at(position, record)
            self.save()
        return record

    def set_context(self, index: int, label: str) -> Optional[Record]:
        """Move the record at ``index`` to another context.

        An empty label changes nothing. Like every other edit, the file is
        not written while streaming.

        Raises:
            InvalidOperation: If the label contains whitespace
        """
        label = label.strip()[:MAX_CONTEXT - 1]
        if not label:
            return None
        if any(c.isspace() for c in label):
            raise InvalidOperation(f"Context label cannot contain whitespace: {label!r}")
        with self.store.lock:
            position = self._locate(index)
            if position is None or not self.store.register_context(label):
                return None
            record = replace(self.store.get(position), context=label)
            self.store.replace_at(position, record)
            self.save()
        return record

    def insert_new(self, after_index: int, text: str) -> Optional[Record]:
        """Add an open record dated today in the current view's context.

        It lands right after the record at ``after_index`` in the view,
        or at the end of the list when the view has no such record. The
        selection moves onto it. Disabled while streaming.

        Returns the new record, or None if nothing was added.
        """
        text = text.replace("\r", " ").replace("\n", " ").strip()[:MAX_LINE - 1]
        if self.streaming or not text:
            return None
        record = Record(date=self.clock(), text=text, context=self.context)
        with self.store.lock:
            if self.store.is_full():
                logger.debug("Store full, not adding %r", text)
                return None
            position = self._locate(after_index)
            if position is None:
                self.store.append(record)
                self.index = self.count_visible() - 1
            else:
                self.store.insert_after(position, record)
                self.index = after_index + 1
            self.save()
        self.notifier.notify(ADDED, record.text)
        return record

    def archive_completed(self) -> int:
        """Move completed records to the archive file.

        Returns:
            Number of records archived

        Raises:
            IOUnavailable: If the archive cannot be opened (nothing moved)
                or a write fails part way (records written so far moved)
        """
        with self.store.lock:
            before = len(self.store)
            try:
                return archive_completed(self.store, self.archive_path)
            finally:
                if len(self.store) < before:
                    self.save()
                self.index = 0
