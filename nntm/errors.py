"""
Errors for nntm, and error logging for the CLI.

Logs full stack traces for debugging while showing clean messages to users.
"""

import os
import traceback
from datetime import datetime, timezone
from pathlib import Path


class NntmError(Exception):
    """Base class for nntm errors."""


class IOUnavailable(NntmError):
    """A todo, archive or pipe path could not be opened, read or written."""

    def __init__(self, path, reason: str = ""):
        self.path = Path(path)
        self.reason = reason
        message = f"Cannot access {self.path}"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class InvalidOperation(NntmError):
    """The requested edit is not allowed on the target record."""


def nntm_home() -> Path:
    """Directory for config and logs, respecting NNTM_HOME."""
    home = os.environ.get("NNTM_HOME")
    if home:
        return Path(home)
    return Path.home() / ".nntm"


def _error_log_path() -> Path:
    return nntm_home() / "nntm-errors.log"


def log_exception(exc: Exception, context: str = "") -> Path:
    """
    Log exception with full traceback to file.

    Args:
        exc: The exception that occurred
        context: Optional context string (e.g., command name)

    Returns:
        Path to the error log file
    """
    log_path = _error_log_path()
    timestamp = datetime.now(timezone.utc).isoformat()
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(log_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o600)
        with os.fdopen(fd, "a") as f:
            f.write(f"\n{'='*60}\n")
            f.write(f"[{timestamp}] {type(exc).__name__}")
            if context:
                f.write(f" {context}")
            f.write("\n")
            f.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
    except OSError:
        pass  # Can't write the error log, carry on
    return log_path
