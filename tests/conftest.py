"""
tests/conftest.py -- Shared test fixtures for TodoAuth.

This module provides:
  - settings / hasher / issuer / verifier: core components built from the
    test environment below
  - make_user(): builds a User with a real per-record digest and salt
  - api_client: TestClient wired to a fresh DataStore with one admin account

The environment variables must be set before any api/ or core/ import so
get_settings() sees a valid signing key, issuer and audience. HASH_ITERATIONS
is lowered so the suite does not spend its time in PBKDF2.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Generator

# CRITICAL: Set before any core/api import so get_settings() validates cleanly.
os.environ.setdefault("SECRET_KEY", "test-signing-key-0123456789-abcdefghij")
os.environ.setdefault("JWT_ISSUER", "todoauth-test")
os.environ.setdefault("JWT_AUDIENCE", "todoauth-clients")
os.environ.setdefault("HASH_ITERATIONS", "1000")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app, init_state
from auth.models import Claims, User
from auth.passwords import PasswordHasher
from auth.tokens import TokenIssuer, TokenVerifier
from core.config import Settings, get_settings
from store.datastore import DataStore

ADMIN_USERNAME = "testadmin"
ADMIN_PASSWORD = "testpass123"


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def hasher(settings: Settings) -> PasswordHasher:
    return PasswordHasher(iterations=settings.hash_iterations)


@pytest.fixture
def issuer(settings: Settings) -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


@pytest.fixture
def verifier(settings: Settings) -> TokenVerifier:
    return TokenVerifier.from_settings(settings)


@pytest.fixture
def make_user(hasher: PasswordHasher) -> Callable[..., User]:
    """Return a factory: make_user("alice", "Secr3tPass!", roles={"User"})."""

    def _make(username: str, password: str, roles: set[str] | None = None, email: str = "") -> User:
        digest, salt = hasher.hash_password(password)
        return User(
            username=username,
            name=username.title(),
            email=email or f"{username}@example.com",
            password_digest=digest,
            salt=salt,
            roles=frozenset(roles if roles is not None else {"User"}),
        )

    return _make


@pytest.fixture
def api_client(settings: Settings) -> Generator[tuple[TestClient, str], None, None]:
    """Yield (client, admin_token) backed by a fresh DataStore.

    The admin account is created before the client starts; the lifespan keeps
    the store already attached to app.state. The rate limiter is reset so
    login counts never leak between tests.
    """
    store = DataStore()
    init_state(app, settings, store=store)
    digest, salt = app.state.hasher.hash_password(ADMIN_PASSWORD)
    store.users.add(
        User(
            username=ADMIN_USERNAME,
            name="Test Admin",
            email="admin@example.com",
            password_digest=digest,
            salt=salt,
            roles=frozenset({settings.admin_role, settings.default_role}),
        )
    )
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        token = app.state.issuer.issue(Claims.for_user(store.users.get_by_username(ADMIN_USERNAME)))
        yield client, token

    limiter.reset()
