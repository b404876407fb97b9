"""
Data types for todo records.
"""

from dataclasses import dataclass
from datetime import date


# Virtual context label: selects every record, never removed from the registry
ALL_CONTEXT = "all"

# Capacity limits (records and context labels)
MAX_RECORDS = 1000

# Longest line the codec keeps; longer input is truncated to MAX_LINE - 1
MAX_LINE = 512

# Longest context label kept from an @token (MAX_CONTEXT - 1 characters)
MAX_CONTEXT = 32

# Width of an ISO calendar date (YYYY-MM-DD)
DATE_WIDTH = 10


def today() -> str:
    """Current local date in canonical format: YYYY-MM-DD.

    All dates in a todo file are local calendar dates without a time part.
    """
    return date.today().strftime("%Y-%m-%d")


@dataclass
class Record:
    """
    A single todo entry, one line of the todo file.

    Priority lives in ``priority`` while the record is open. Once the
    record is completed the letter moves into ``text`` as a trailing
    `` pri:X`` token and ``priority`` is empty.
    """
    date: str = ""
    text: str = ""
    context: str = ALL_CONTEXT
    priority: str = ""
    completed: bool = False
    completion_date: str = ""

    def to_dict(self) -> dict:
        """Convert to a JSON-serializable dict."""
        return {
            "completed": self.completed,
            "completion_date": self.completion_date,
            "date": self.date,
            "priority": self.priority,
            "context": self.context,
            "text": self.text,
        }
