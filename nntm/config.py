"""
Configuration management for nntm.

The configuration is stored as a TOML file, ``nntm.toml`` in the nntm
home directory (``~/.nntm`` or $NNTM_HOME), or any file named with
--config / $NNTM_CONFIG. A missing file means defaults.
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import tomli_w

from .errors import nntm_home
from .types import MAX_RECORDS

CONFIG_FILENAME = "nntm.toml"
CONFIG_VERSION = 1

DEFAULT_ARCHIVE_NAME = "todo.archive.txt"
DEFAULT_RETRY_DELAY = 1.0


@dataclass
class NntmConfig:
    """Complete nntm configuration."""
    path: Path
    version: int = CONFIG_VERSION

    # Archive file, created next to the todo file
    archive_name: str = DEFAULT_ARCHIVE_NAME

    max_records: int = MAX_RECORDS

    # Seconds to wait before reopening a pipe that failed to open
    retry_delay: float = DEFAULT_RETRY_DELAY

    # Notification hook executable (empty: none)
    hook: Optional[Path] = None

    ops_log: bool = True

    extra: dict = field(default_factory=dict)

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.path.exists()

    def archive_path(self, todo_path: Path) -> Path:
        """Archive file for a todo file: a sibling in the same directory."""
        return Path(todo_path).parent / self.archive_name


def get_config_path(override: Optional[Path] = None) -> Path:
    """
    Resolve the config file path.

    Priority:
    1. Explicit override (--config)
    2. NNTM_CONFIG environment variable
    3. <nntm home>/nntm.toml
    """
    if override is not None:
        return Path(override).expanduser()
    env_path = os.environ.get("NNTM_CONFIG")
    if env_path:
        return Path(env_path).expanduser()
    return nntm_home() / CONFIG_FILENAME


def load_config(config_path: Path) -> NntmConfig:
    """
    Load configuration from a TOML file.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid config {config_path}: {e}") from e

    version = data.get("nntm", {}).get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    files = data.get("files", {})
    limits = data.get("limits", {})
    stream = data.get("stream", {})
    hook = data.get("hook", {}).get("exec", "")
    logging_section = data.get("logging", {})

    max_records = limits.get("max_records", MAX_RECORDS)
    if not isinstance(max_records, int) or max_records < 1:
        raise ValueError(f"limits.max_records must be a positive integer, got {max_records!r}")

    known = {"nntm", "files", "limits", "stream", "hook", "logging"}
    return NntmConfig(
        path=config_path,
        version=version,
        archive_name=files.get("archive_name", DEFAULT_ARCHIVE_NAME),
        max_records=max_records,
        retry_delay=float(stream.get("retry_delay", DEFAULT_RETRY_DELAY)),
        hook=Path(hook).expanduser() if hook else None,
        ops_log=bool(logging_section.get("ops_log", True)),
        extra={k: v for k, v in data.items() if k not in known},
    )


def save_config(config: NntmConfig) -> None:
    """
    Save configuration to its TOML file.

    Creates the directory if it doesn't exist.
    """
    config.path.parent.mkdir(parents=True, exist_ok=True)

    data = {
        "nntm": {"version": config.version},
        "files": {"archive_name": config.archive_name},
        "limits": {"max_records": config.max_records},
        "stream": {"retry_delay": config.retry_delay},
        "hook": {"exec": str(config.hook) if config.hook else ""},
        "logging": {"ops_log": config.ops_log},
    }
    data.update(config.extra)

    with open(config.path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_default(config_path: Path) -> NntmConfig:
    """
    Load the config file if present, otherwise return defaults.

    This is the main entry point for config management. Unlike ``save``,
    nothing is written.
    """
    if config_path.exists():
        return load_config(config_path)
    return NntmConfig(path=config_path)
