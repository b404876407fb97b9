"""
Line codec for the todo.txt format.

One record per line:

    x 2025-06-01 2025-01-01 @home buy milk pri:A    (completed)
    (A) 2025-01-01 @home buy milk                   (open, with priority)
    2025-01-01 @home buy milk                       (open, no priority)

Decoding is total: any line yields a Record, with best-effort empty
fields for short or malformed input. Encoding always writes the context
token, so an untagged line comes back as ``@all``.
"""

import re

from .types import ALL_CONTEXT, DATE_WIDTH, MAX_CONTEXT, MAX_LINE, Record

COMPLETED_MARKER = "x "

# "(A)" at the start of the remaining text
_PRIORITY_PATTERN = re.compile(r'^\(([A-Za-z])\)')

# Trailing " pri:A" on completed records (or the whole text when it was empty)
_PRIORITY_TAG_PATTERN = re.compile(r'(?:^| )pri:([A-Za-z])$')


def _take_token(rest: str, width: int) -> tuple[str, str]:
    """Split off the next whitespace-delimited token, at most ``width`` chars.

    Returns (token, remainder) with the whitespace after the token skipped.
    A token longer than ``width`` leaves its tail at the front of the
    remainder.
    """
    rest = rest.lstrip()
    match = re.match(r'\S{0,%d}' % width, rest)
    token = match.group(0)
    return token, rest[len(token):].lstrip()


def _take_priority(rest: str) -> tuple[str, str]:
    match = _PRIORITY_PATTERN.match(rest)
    if not match:
        return "", rest
    return match.group(1), rest[match.end():].lstrip()


def priority_tag(letter: str) -> str:
    """Inline form of a priority on a completed record: `` pri:X``."""
    return f" pri:{letter}"


def append_priority_tag(text: str, letter: str) -> str:
    """Append `` pri:X`` to text unless that exact token already trails it."""
    tag = priority_tag(letter)
    if text.endswith(tag) or text == tag.lstrip():
        return text
    if not text.strip():
        # Leading whitespace does not survive a decode; store the bare token
        return tag.lstrip()
    return text + tag


def split_priority_tag(text: str) -> tuple[str, str]:
    """Remove a trailing `` pri:X`` token.

    Returns (text without the token and trailing whitespace, letter).
    Text without the token is returned unchanged with an empty letter.
    """
    match = _PRIORITY_TAG_PATTERN.search(text)
    if not match:
        return text, ""
    return text[:match.start()].rstrip(), match.group(1)


def decode(line: str) -> Record:
    """Parse one line of a todo file into a Record.

    Fields are consumed in order: completion marker and completion date,
    priority before the date, the date, priority after the date (only
    when none came before), the ``@context`` token, then the free text.
    """
    rest = line.rstrip("\r\n")[:MAX_LINE - 1]
    record = Record()

    if rest.startswith(COMPLETED_MARKER):
        record.completed = True
        record.completion_date, rest = _take_token(rest[len(COMPLETED_MARKER):], DATE_WIDTH)

    record.priority, rest = _take_priority(rest.lstrip())

    if not rest.startswith("@"):
        record.date, rest = _take_token(rest, DATE_WIDTH)

    if not record.priority:
        record.priority, rest = _take_priority(rest)

    if rest.startswith("@"):
        label, rest = _take_token(rest[1:], MAX_CONTEXT - 1)
        record.context = label or ALL_CONTEXT

    record.text = rest

    # A completed line may still carry "(X)"; keep one priority representation
    if record.completed and record.priority:
        record.text = append_priority_tag(record.text, record.priority)
        record.priority = ""

    return record


def encode(record: Record) -> str:
    """Serialize a Record to one line (without the trailing newline)."""
    if record.completed:
        return f"x {record.completion_date} {record.date} @{record.context} {record.text}"
    if record.priority:
        return f"({record.priority}) {record.date} @{record.context} {record.text}"
    return f"{record.date} @{record.context} {record.text}"
