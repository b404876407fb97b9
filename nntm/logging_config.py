"""
Logging configuration for nntm.

Quiet by default: nothing goes to the terminal unless debug mode is on.
An operations log in the nntm home directory records what was loaded,
saved and archived.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    logging.getLogger("nntm").setLevel(logging.DEBUG)


def configure_ops_log(home: Path) -> Optional[RotatingFileHandler]:
    """Configure a persistent operations log.

    Writes to {home}/nntm-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed,
    or None if the directory cannot be created.
    """
    log_path = Path(home) / "nntm-ops.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=1_000_000,
            backupCount=3,
        )
    except OSError:
        return None
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    nntm_logger = logging.getLogger("nntm")
    nntm_logger.addHandler(handler)
    # Ensure nntm logger allows INFO through even in quiet mode
    if nntm_logger.level == logging.NOTSET or nntm_logger.level > logging.INFO:
        nntm_logger.setLevel(logging.INFO)

    return handler
