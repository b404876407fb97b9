"""
Notification hook: run an external program when records change.

The hook is called as ``<hook> "<Event>: <text>"`` with Event one of
Added, Completed, Uncompleted. The child is started detached with all
standard streams on /dev/null and reaped by a daemon thread; callers
never wait for it and never see its failures (they are logged).
"""

import logging
import subprocess
import sys
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

ADDED = "Added"
COMPLETED = "Completed"
UNCOMPLETED = "Uncompleted"


class HookNotifier:
    """Fire-and-forget dispatcher for the external notification hook."""

    def __init__(self, hook: Optional[Path] = None):
        self.hook = Path(hook) if hook else None

    def notify(self, event: str, text: str) -> Optional[subprocess.Popen]:
        """Start the hook with ``"<event>: <text>"`` and return immediately.

        Returns the child process, or None when nothing was started
        because no hook is configured, the text is empty or the hook
        could not be run.
        """
        if self.hook is None or not text:
            return None

        kwargs: dict = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
        }
        if sys.platform != "win32":
            # Survive the parent exiting right after a one-shot command
            kwargs["start_new_session"] = True

        try:
            proc = subprocess.Popen([str(self.hook), f"{event}: {text}"], **kwargs)
        except OSError as e:
            logger.warning("Notification hook %s failed: %s", self.hook, e)
            return None

        threading.Thread(target=proc.wait, name="nntm-hook-reaper", daemon=True).start()
        logger.debug("Notified %s: %s", event, text)
        return proc
