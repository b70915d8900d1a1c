"""
todo/store.py -- In-memory persistence for todo items.

Pattern: Repository (same contract as auth/store.py). TodoStore is a
KeyedStore keyed by integer id, plus create() for server-side id assignment.

Id numbering:
  create() assigns max(existing ids) + 1, or 1 for an empty store. The
  computation and the insert happen under one lock acquisition, so two
  concurrent creates can never receive the same id. Deleting the item with
  the highest id frees that id for the next create -- ids are increasing
  while nothing is deleted, not globally unique over the process lifetime.
"""

from __future__ import annotations

from dataclasses import replace

from store.keyed import KeyedStore
from todo.models import TodoItem


def _todo_id(item: TodoItem) -> int:
    return item.id


class TodoStore(KeyedStore[int, TodoItem]):
    """Repository for TodoItem records.

    Usage:
        todos = TodoStore()
        item = todos.create(TodoItem(title="Write the report", description="Q3", due_date=due))
        item.id   # 1
    """

    def __init__(self) -> None:
        super().__init__(key=_todo_id)

    def create(self, item: TodoItem) -> TodoItem:
        """Assign the next id to item, store it, and return the stored record.

        Any id already set on item is ignored.
        """
        with self._lock:
            next_id = max(self._items, default=0) + 1
            stored = replace(item, id=next_id)
            self.add(stored)
            return stored

    def list_todos(self) -> list[TodoItem]:
        """Return all items ordered by id."""
        return sorted(self.get_all(), key=_todo_id)
