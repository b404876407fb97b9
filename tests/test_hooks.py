"""
Tests for the fire-and-forget notification hook.
"""

import logging
import stat
import sys

import pytest

from nntm.hooks import COMPLETED, HookNotifier

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script hook")


@pytest.fixture
def hook_script(tmp_path):
    """A hook that writes its single argument to hook.out."""
    out = tmp_path / "hook.out"
    script = tmp_path / "hook.sh"
    script.write_text(f'#!/bin/sh\nprintf "%s" "$1" > "{out}"\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    return script, out


class TestHookNotifier:

    def test_no_hook_configured(self):
        assert HookNotifier(None).notify(COMPLETED, "buy milk") is None

    @posix_only
    def test_empty_text_skipped(self, hook_script):
        script, out = hook_script
        assert HookNotifier(script).notify(COMPLETED, "") is None
        assert not out.exists()

    @posix_only
    def test_runs_hook_with_event_message(self, hook_script):
        script, out = hook_script
        proc = HookNotifier(script).notify(COMPLETED, "buy milk pri:A")
        assert proc is not None
        assert proc.wait(timeout=10) == 0
        assert out.read_text() == "Completed: buy milk pri:A"

    def test_missing_hook_is_logged_not_raised(self, tmp_path, caplog):
        notifier = HookNotifier(tmp_path / "no-such-hook")
        with caplog.at_level(logging.WARNING, logger="nntm.hooks"):
            assert notifier.notify(COMPLETED, "buy milk") is None
        assert "no-such-hook" in caplog.text
