"""
nntm: a todo.txt record store with context views and pipe streaming.

Quick start:
    from nntm import TodoList

    todos = TodoList("todo.txt")
    todos.select_context("home")
    todos.insert_new(0, "buy milk")
    todos.toggle_completion(1)
"""

from .api import TodoList
from .codec import decode, encode
from .errors import InvalidOperation, IOUnavailable, NntmError
from .store import RecordStore
from .types import ALL_CONTEXT, Record

__version__ = "0.1.0"
__all__ = [
    "ALL_CONTEXT",
    "InvalidOperation",
    "IOUnavailable",
    "NntmError",
    "Record",
    "RecordStore",
    "TodoList",
    "decode",
    "encode",
]
