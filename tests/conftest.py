"""
Shared pytest fixtures for nntm tests.

Every test gets its own NNTM_HOME so config and logs never touch ~/.nntm.
"""

from pathlib import Path

import pytest

from nntm.api import TodoList
from nntm.config import NntmConfig

TODAY = "2025-06-01"

SAMPLE_LINES = [
    "(A) 2025-01-01 @home buy milk",
    "2025-01-03 @work write report",
    "x 2025-05-01 2025-01-02 @home clean garage pri:B",
    "(C) 2025-01-02 @work review PR",
    "2025-01-01 go for a walk",
]


class RecordingNotifier:
    """Notifier stand-in that records events instead of running a hook."""

    def __init__(self):
        self.events: list[tuple[str, str]] = []

    def notify(self, event: str, text: str):
        self.events.append((event, text))
        return None


@pytest.fixture(autouse=True)
def nntm_home(tmp_path, monkeypatch):
    """Isolate config, error log and ops log under the test's tmp dir."""
    home = tmp_path / "nntm-home"
    monkeypatch.setenv("NNTM_HOME", str(home))
    monkeypatch.delenv("NNTM_CONFIG", raising=False)
    monkeypatch.delenv("NNTM_EXEC", raising=False)
    return home


@pytest.fixture
def todo_file(tmp_path) -> Path:
    """A todo file with open, completed, prioritized and untagged lines."""
    path = tmp_path / "todo.txt"
    path.write_text("\n".join(SAMPLE_LINES) + "\n")
    return path


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config(tmp_path) -> NntmConfig:
    return NntmConfig(path=tmp_path / "nntm.toml")


@pytest.fixture
def todos(todo_file, config, notifier) -> TodoList:
    """A TodoList on the sample file with a fixed clock and recorded events."""
    return TodoList(todo_file, config=config, notifier=notifier, clock=lambda: TODAY)


def read_lines(path: Path) -> list[str]:
    return path.read_text().splitlines()
