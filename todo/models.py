"""
todo/models.py -- Domain dataclass for the todo resource.

Pure data container with zero logic. Id assignment lives in todo/store.py;
input rules (title length, non-empty description) live in api/models.py.
"""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class TodoItem:
    """A single todo entry.

    id is 0 before the record is written to the store; TodoStore.create()
    returns a copy carrying the assigned id.
    """

    title: str
    description: str
    due_date: datetime
    id: int = 0
