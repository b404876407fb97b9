"""
Streaming ingestion from a named pipe.

When the todo path is a FIFO the store is fed by a background reader
instead of a one-shot load. Each line becomes a new open record dated
today; the first ``@label`` token anywhere in the line is taken out of
the text and becomes the record's context. The reader reopens the pipe
every time its writer closes it, and retries failed opens after a short
delay, for the life of the process.
"""

import logging
import os
import re
import stat
import threading
from pathlib import Path
from typing import Callable, Optional

from .errors import IOUnavailable
from .store import RecordStore
from .types import ALL_CONTEXT, MAX_CONTEXT, MAX_LINE, Record, today as current_date

logger = logging.getLogger(__name__)

# Seconds between attempts to reopen the pipe after a failed open
RETRY_DELAY = 1.0

# First whitespace-delimited token starting with "@"
_CONTEXT_TOKEN_PATTERN = re.compile(r'(?:^|(?<=\s))@(\S*)')


def is_named_pipe(path: Path) -> bool:
    """Check whether ``path`` is a FIFO.

    Raises:
        IOUnavailable: If the path cannot be stat'ed (missing, no permission)
    """
    try:
        mode = os.stat(path).st_mode
    except OSError as e:
        raise IOUnavailable(path, e.strerror or str(e)) from e
    return stat.S_ISFIFO(mode)


def parse_stream_line(line: str, today: str) -> Record:
    """Build an open record from one line of streamed input."""
    line = line.rstrip("\r\n")[:MAX_LINE - 1]
    context = ALL_CONTEXT
    match = _CONTEXT_TOKEN_PATTERN.search(line)
    if match:
        label = match.group(1)
        if 0 < len(label) < MAX_CONTEXT:
            context = label
        before = line[:match.start()].rstrip()
        after = line[match.end():].lstrip()
        line = f"{before} {after}" if before and after else before or after
    return Record(date=today, text=line, context=context)


def ingest_line(store: RecordStore, line: str, today: str) -> Optional[Record]:
    """Append a record parsed from a streamed line.

    Returns the new record, or None if the store is full.
    """
    record = parse_stream_line(line, today)
    with store.lock:
        if store.is_full():
            logger.debug("Store full, dropping streamed line")
            return None
        store.register_context(record.context)
        store.append(record)
    return record


class PipeReader(threading.Thread):
    """
    Background reader that appends every line written to a pipe.

    ``on_append`` is called after each append, outside the store lock.
    The store lock is held only for the append itself.
    """

    def __init__(
        self,
        store: RecordStore,
        path: Path,
        on_append: Optional[Callable[[Record], None]] = None,
        retry_delay: float = RETRY_DELAY,
        clock: Callable[[], str] = current_date,
    ):
        super().__init__(name="nntm-pipe-reader", daemon=True)
        self.store = store
        self.path = Path(path)
        self.on_append = on_append
        self.retry_delay = retry_delay
        self.clock = clock
        self._stopped = threading.Event()

    def stop(self) -> None:
        """Ask the reader to finish after the current line or open attempt."""
        self._stopped.set()

    def run(self) -> None:
        logger.info("Streaming todos from %s", self.path)
        while not self._stopped.is_set():
            try:
                stream = open(self.path, "r", encoding="utf-8", errors="surrogateescape")
            except OSError as e:
                logger.warning("Cannot open pipe %s: %s", self.path, e)
                self._stopped.wait(self.retry_delay)
                continue
            with stream:
                for line in stream:
                    if self._stopped.is_set():
                        break
                    self._consume(line)
            # Writer closed the pipe; reopen and keep reading
            logger.debug("Pipe %s closed by writer, reopening", self.path)

    def _consume(self, line: str) -> None:
        record = ingest_line(self.store, line, self.clock())
        if record is not None and self.on_append is not None:
            self.on_append(record)
