"""
Tests for record-level state transitions and archival.
"""

import pytest

from nntm.codec import decode, encode
from nntm.errors import InvalidOperation, IOUnavailable
from nntm.mutations import (
    archive_completed,
    complete,
    normalize_priority,
    toggle,
    uncomplete,
    with_priority,
)
from nntm.store import RecordStore
from nntm.types import Record

from conftest import read_lines


class TestCompletion:
    """Priority moves between the (X) tag and the pri:X text token."""

    def test_complete_transfers_priority(self):
        record = complete(decode("(A) 2025-01-01 @home buy milk"), "2025-06-01")
        assert record == Record(
            completed=True,
            completion_date="2025-06-01",
            date="2025-01-01",
            context="home",
            text="buy milk pri:A",
            priority="",
        )
        assert encode(record) == "x 2025-06-01 2025-01-01 @home buy milk pri:A"

    def test_complete_without_priority(self):
        record = complete(decode("2025-01-01 @home buy milk"), "2025-06-01")
        assert record.text == "buy milk"
        assert record.priority == ""

    def test_complete_does_not_duplicate_tag(self):
        original = Record(date="2025-01-01", text="buy milk pri:A", priority="A")
        assert complete(original, "2025-06-01").text == "buy milk pri:A"

    def test_uncomplete_restores_priority(self):
        record = uncomplete(decode("x 2025-06-01 2025-01-01 @home buy milk pri:A"))
        assert record.completed is False
        assert record.completion_date == ""
        assert record.priority == "A"
        assert record.text == "buy milk"

    def test_uncomplete_without_tag(self):
        record = uncomplete(decode("x 2025-06-01 2025-01-01 @home buy milk"))
        assert record.priority == ""
        assert record.text == "buy milk"

    @pytest.mark.parametrize("priority,text", [
        ("A", "buy milk"),
        ("Z", "call the bank about pri:X later"),
        ("", "no priority here"),
        ("B", ""),
    ])
    def test_toggle_twice_restores(self, priority, text):
        original = Record(date="2025-01-01", text=text, context="home", priority=priority)
        done = toggle(original, "2025-06-01")
        assert done.completed and done.priority == ""
        assert toggle(done, "2025-06-07") == original

    def test_toggle_survives_save_and_load(self):
        """The completed form written to disk reopens to the same record."""
        original = decode("(B) 2025-01-01 @work send report")
        reloaded = decode(encode(toggle(original, "2025-06-01")))
        assert toggle(reloaded, "2025-06-02") == original

    def test_original_is_not_modified(self):
        original = decode("(A) 2025-01-01 @home buy milk")
        complete(original, "2025-06-01")
        assert original.priority == "A"
        assert original.completed is False


class TestPriority:
    """Setting and clearing priority."""

    def test_set_uppercases(self):
        record = with_priority(Record(date="2025-01-01", text="t"), "b")
        assert record.priority == "B"

    @pytest.mark.parametrize("value", [None, "", " "])
    def test_clear(self, value):
        record = with_priority(Record(date="2025-01-01", text="t", priority="A"), value)
        assert record.priority == ""

    def test_completed_record_rejected(self):
        done = Record(date="2025-01-01", text="t", completed=True, completion_date="2025-06-01")
        with pytest.raises(InvalidOperation, match="completed"):
            with_priority(done, "A")

    @pytest.mark.parametrize("value", ["AB", "1", "(", "é"])
    def test_invalid_letters_rejected(self, value):
        with pytest.raises(InvalidOperation):
            normalize_priority(value)


class TestArchive:
    """Moving completed records to the archive file."""

    def _store(self) -> RecordStore:
        store = RecordStore()
        for line in [
            "x 2025-02-01 2025-01-01 @home first done",
            "2025-01-02 @home still open",
            "x 2025-03-01 2025-01-03 @work second done pri:A",
            "(B) 2025-01-04 @work open with priority",
            "x 2025-04-01 2025-01-05 third done",
        ]:
            store.append(decode(line))
        return store

    def test_archive_moves_completed_in_order(self, tmp_path):
        store = self._store()
        archive = tmp_path / "todo.archive.txt"
        assert archive_completed(store, archive) == 3
        assert [r.text for r in store.records()] == ["still open", "open with priority"]
        assert not any(r.completed for r in store.records())
        assert read_lines(archive) == [
            "x 2025-02-01 2025-01-01 @home first done",
            "x 2025-03-01 2025-01-03 @work second done pri:A",
            "x 2025-04-01 2025-01-05 @all third done",
        ]

    def test_archive_appends(self, tmp_path):
        archive = tmp_path / "todo.archive.txt"
        archive.write_text("x 2024-12-01 2024-11-01 @old earlier\n")
        archive_completed(self._store(), archive)
        lines = read_lines(archive)
        assert len(lines) == 4
        assert lines[0] == "x 2024-12-01 2024-11-01 @old earlier"

    def test_archive_keeps_invalid_bytes(self, tmp_path):
        source = tmp_path / "todo.txt"
        source.write_bytes(b"x 2025-02-01 2025-01-01 @home caf\xe9 done\n2025-01-02 @home open\n")
        store = RecordStore()
        store.load(source)
        archive = tmp_path / "todo.archive.txt"
        assert archive_completed(store, archive) == 1
        assert archive.read_bytes() == b"x 2025-02-01 2025-01-01 @home caf\xe9 done\n"

    def test_nothing_to_archive(self, tmp_path):
        store = RecordStore()
        store.append(decode("2025-01-01 @home open"))
        assert archive_completed(store, tmp_path / "todo.archive.txt") == 0
        assert len(store) == 1

    def test_unopenable_archive_removes_nothing(self, tmp_path):
        store = self._store()
        before = store.records()
        with pytest.raises(IOUnavailable):
            archive_completed(store, tmp_path)  # a directory
        assert store.records() == before
