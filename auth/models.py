"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors todo/models.py
-- dataclasses own domain shape; stores, token helpers and routes do the work.

Both classes are frozen. A User handed out by UserStore can be shared across
request threads without copying; a change is a new record passed to update().

Layer rule: no imports from api/ or todo/.
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class User:
    """An identity record, keyed by username.

    username is the store key and never changes after creation. A replacement
    submitted with a different username is rejected by the authorization
    policy before it reaches the store.

    password_digest is PBKDF2-HMAC-SHA256 of the password with this record's
    own random salt (see auth/passwords.py). The plaintext is never kept.

    roles become the repeatable "role" claim in issued tokens.
    """

    username: str
    name: str
    email: str
    password_digest: bytes = field(repr=False)
    salt: bytes = field(repr=False)
    roles: frozenset[str] = frozenset()


@dataclass(frozen=True)
class Claims:
    """Identity context extracted from a verified token.

    Parsed once by TokenVerifier and then passed to AuthorizationPolicy and
    route handlers for the lifetime of one request. Never persisted.
    """

    subject: str
    display_name: str = ""
    email: str = ""
    roles: frozenset[str] = frozenset()

    def has_role(self, role: str) -> bool:
        return role in self.roles

    @classmethod
    def for_user(cls, user: User) -> "Claims":
        """Build the claim set a login for this user should carry."""
        return cls(
            subject=user.username,
            display_name=user.name,
            email=user.email,
            roles=user.roles,
        )
