"""
auth/store.py -- In-memory persistence for identity records.

Pattern: Repository (same contract as todo/store.py). UserStore is a
KeyedStore keyed by username; route and token code never touch the
underlying dict.

Uniqueness: only the username is unique. Duplicate emails are accepted here;
input rules belong to the API layer.

Layer rule: no imports from api/ or todo/.
"""

from __future__ import annotations

from auth.models import User
from store.keyed import KeyedStore


def _username(user: User) -> str:
    return user.username


class UserStore(KeyedStore[str, User]):
    """Repository for User records.

    Usage:
        users = UserStore()
        users.add(User(username="alice", name="Alice", email="a@example.com",
                       password_digest=digest, salt=salt))
        user = users.get_by_username("alice")
    """

    def __init__(self) -> None:
        super().__init__(key=_username)

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        return self.get(username)

    def list_users(self) -> list[User]:
        """Return all users ordered by username."""
        return sorted(self.get_all(), key=_username)

    def has_users(self) -> bool:
        return len(self) > 0
