"""
store/datastore.py -- The process-wide owner of every keyed container.

One DataStore is constructed by the application lifespan and attached to
app.state; tests construct a fresh one per fixture. Nothing reaches the
containers except through this object, and there is no module-level instance.
"""

from __future__ import annotations

from auth.store import UserStore
from todo.store import TodoStore


class DataStore:
    """Holds the identity and resource containers for one process.

    Usage:
        store = DataStore()
        store.users.add(user)
        store.todos.create(item)
    """

    def __init__(self) -> None:
        self.users = UserStore()
        self.todos = TodoStore()
