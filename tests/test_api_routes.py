"""
tests/test_api_routes.py -- Integration tests for the login, user and todo routes.

These tests exercise the full stack: FastAPI routing -> bearer token
verification -> AuthorizationPolicy -> UserStore/TodoStore -> response model
serialization.

Coverage:
  - Login: success, identical 401 for wrong password and unknown user, rate limit
  - Tokens: missing, malformed, expired and foreign tokens all give the same 401
  - Users: registration, conflict, self update, forbidden update, key change,
    admin override, delete rules, no digest in responses
  - Todos: public reads, authenticated writes, id assignment, 404 on unknown ids
  - The register -> login -> update walk-through for alice and bob

Fixtures used (from conftest.py):
  - api_client: (client, admin_token) -- fresh DataStore with admin "testadmin"
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from api.main import app, init_state
from auth.models import Claims
from core.config import Settings
from store.datastore import DataStore

ALICE = {"username": "alice", "name": "Alice", "email": "alice@example.com", "password": "Secr3tPass!"}
BOB = {"username": "bobby", "name": "Bob", "email": "bob@example.com", "password": "B0bsPassword"}
TODO = {"title": "Write the quarterly report", "description": "Numbers for Q3", "due_date": "2026-11-10T00:00:00"}


def _bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _register(client: TestClient, body: dict) -> None:
    resp = client.post("/api/v1/users", json=body)
    assert resp.status_code == 201, resp.text


def _login(client: TestClient, username: str, password: str) -> str:
    resp = client.post("/api/v1/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return resp.json()["access_token"]


class TestLogin:
    def test_login_valid_credentials(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        resp = client.post("/api/v1/login", json={"username": "alice", "password": "Secr3tPass!"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["username"] == "alice"
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 900
        assert data["roles"] == ["User"]
        assert resp.headers["Cache-Control"] == "no-store"
        claims = app.state.verifier.verify(data["access_token"])
        assert claims.subject == "alice"

    def test_wrong_password_and_unknown_user_are_identical(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        wrong = client.post("/api/v1/login", json={"username": "alice", "password": "wrong"})
        unknown = client.post("/api/v1/login", json={"username": "nobody", "password": "Secr3tPass!"})
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json()
        assert wrong.json()["error"]["code"] == "bad_credentials"

    def test_login_is_rate_limited(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        statuses = [
            client.post("/api/v1/login", json={"username": "nobody", "password": "x"}).status_code for _ in range(11)
        ]
        assert statuses[:10] == [401] * 10
        assert statuses[10] == 429

    def test_rate_limit_uses_error_envelope(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        for _ in range(10):
            client.post("/api/v1/login", json={"username": "nobody", "password": "x"})
        resp = client.post("/api/v1/login", json={"username": "nobody", "password": "x"})
        assert resp.status_code == 429
        assert resp.json()["error"]["code"] == "rate_limited"


class TestTokenHandling:
    def test_me_with_token(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        resp = client.get("/api/v1/me", headers=_bearer(token))
        assert resp.status_code == 200
        data = resp.json()
        assert data["username"] == "testadmin"
        assert "Administrator" in data["roles"]

    def test_rejections_share_one_response(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        expired = app.state.issuer.issue(
            Claims(subject="testadmin"),
            now=datetime.now(timezone.utc) - timedelta(hours=1),
        )
        header, payload, signature = token.split(".")
        tampered = f"{header}.{payload}.{signature[:-2]}AA"
        responses = [
            client.get("/api/v1/me"),
            client.get("/api/v1/me", headers=_bearer("not-a-token")),
            client.get("/api/v1/me", headers=_bearer(expired)),
            client.get("/api/v1/me", headers=_bearer(tampered)),
            client.get("/api/v1/me", headers={"Authorization": f"Basic {token}"}),
        ]
        assert {r.status_code for r in responses} == {401}
        assert all(r.json() == responses[0].json() for r in responses)
        assert responses[0].json()["error"]["code"] == "unauthorized"


class TestUsers:
    def test_register_and_fetch(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        resp = client.get("/api/v1/users/alice")
        assert resp.status_code == 200
        data = resp.json()
        assert data == {"username": "alice", "name": "Alice", "email": "alice@example.com", "roles": ["User"]}

    def test_responses_never_carry_secrets(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        for row in client.get("/api/v1/users").json():
            assert set(row) == {"username", "name", "email", "roles"}

    def test_register_conflict(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        resp = client.post("/api/v1/users", json={**ALICE, "name": "Impostor"})
        assert resp.status_code == 409
        assert resp.json()["error"]["code"] == "conflict"
        assert client.get("/api/v1/users/alice").json()["name"] == "Alice"

    def test_register_validation(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        for body in (
            {**ALICE, "username": "abc"},
            {**ALICE, "username": "alice_underscore"},
            {**ALICE, "email": "not-an-email"},
        ):
            resp = client.post("/api/v1/users", json=body)
            assert resp.status_code == 422
            assert resp.json()["error"]["code"] == "validation_error"

    def test_unknown_user_404(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        assert client.get("/api/v1/users/nobody").status_code == 404

    def test_walk_through(self, api_client: tuple[TestClient, str]) -> None:
        """Register alice and bob, then alice may update herself but not bob."""
        client, _token = api_client
        _register(client, ALICE)
        _register(client, BOB)
        token = _login(client, "alice", "Secr3tPass!")

        resp = client.put("/api/v1/users/bobby", json={**BOB, "name": "Hacked"}, headers=_bearer(token))
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "forbidden"
        assert client.get("/api/v1/users/bobby").json()["name"] == "Bob"

        resp = client.put("/api/v1/users/alice", json={**ALICE, "name": "Alice Updated"}, headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["name"] == "Alice Updated"
        assert client.get("/api/v1/users/alice").json()["name"] == "Alice Updated"

    def test_update_replaces_password(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        token = _login(client, "alice", "Secr3tPass!")
        resp = client.put("/api/v1/users/alice", json={**ALICE, "password": "N3wPassword"}, headers=_bearer(token))
        assert resp.status_code == 200
        assert client.post("/api/v1/login", json={"username": "alice", "password": "Secr3tPass!"}).status_code == 401
        _login(client, "alice", "N3wPassword")

    def test_key_change_rejected_even_for_admin(self, api_client: tuple[TestClient, str]) -> None:
        client, admin_token = api_client
        _register(client, ALICE)
        alice_token = _login(client, "alice", "Secr3tPass!")
        for token in (alice_token, admin_token):
            resp = client.put("/api/v1/users/alice", json={**ALICE, "username": "carol"}, headers=_bearer(token))
            assert resp.status_code == 400
            assert resp.json()["error"]["code"] == "key_change"
        assert client.get("/api/v1/users/carol").status_code == 404

    def test_admin_updates_other_user_and_roles_survive(self, api_client: tuple[TestClient, str]) -> None:
        client, admin_token = api_client
        _register(client, ALICE)
        resp = client.put("/api/v1/users/alice", json={**ALICE, "name": "Renamed"}, headers=_bearer(admin_token))
        assert resp.status_code == 200
        assert resp.json()["roles"] == ["User"]

    def test_update_missing_user_is_404_for_admin(self, api_client: tuple[TestClient, str]) -> None:
        client, admin_token = api_client
        resp = client.put("/api/v1/users/ghost1", json={**ALICE, "username": "ghost1"}, headers=_bearer(admin_token))
        assert resp.status_code == 404

    def test_update_requires_token(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        _register(client, ALICE)
        assert client.put("/api/v1/users/alice", json=ALICE).status_code == 401

    def test_delete_rules(self, api_client: tuple[TestClient, str]) -> None:
        client, admin_token = api_client
        _register(client, ALICE)
        _register(client, BOB)
        alice_token = _login(client, "alice", "Secr3tPass!")

        assert client.delete("/api/v1/users/bobby", headers=_bearer(alice_token)).status_code == 403
        assert client.delete("/api/v1/users/alice", headers=_bearer(alice_token)).status_code == 403
        assert client.delete("/api/v1/users/bobby", headers=_bearer(admin_token)).status_code == 204
        assert client.delete("/api/v1/users/bobby", headers=_bearer(admin_token)).status_code == 404
        assert client.get("/api/v1/users/bobby").status_code == 404


class TestTodos:
    def test_public_list_empty(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        resp = client.get("/api/v1/todos")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_create_requires_token(self, api_client: tuple[TestClient, str]) -> None:
        client, _token = api_client
        assert client.post("/api/v1/todos", json=TODO).status_code == 401

    def test_crud(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        first = client.post("/api/v1/todos", json=TODO, headers=_bearer(token))
        second = client.post("/api/v1/todos", json=TODO, headers=_bearer(token))
        assert first.status_code == second.status_code == 201
        assert (first.json()["id"], second.json()["id"]) == (1, 2)

        assert client.get("/api/v1/todos/1").json()["title"] == TODO["title"]

        resp = client.put("/api/v1/todos/1", json={**TODO, "title": "Rewrite the quarterly report"}, headers=_bearer(token))
        assert resp.status_code == 200
        assert resp.json()["id"] == 1
        assert client.get("/api/v1/todos/1").json()["title"] == "Rewrite the quarterly report"

        assert client.delete("/api/v1/todos/1", headers=_bearer(token)).status_code == 204
        assert client.get("/api/v1/todos/1").status_code == 404
        assert [t["id"] for t in client.get("/api/v1/todos").json()] == [2]

    def test_update_unknown_id_is_404(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        resp = client.put("/api/v1/todos/99", json=TODO, headers=_bearer(token))
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "not_found"

    def test_validation(self, api_client: tuple[TestClient, str]) -> None:
        client, token = api_client
        for body in ({**TODO, "title": "too short"}, {**TODO, "description": ""}):
            assert client.post("/api/v1/todos", json=body, headers=_bearer(token)).status_code == 422


class TestBootstrapAdmin:
    def test_bootstrap_admin_created_once(self, settings: Settings) -> None:
        seeded = settings.model_copy(
            update={"bootstrap_admin_username": "rootadmin", "bootstrap_admin_password": "B00tstrap!"}
        )
        store = DataStore()
        init_state(app, seeded, store=store)
        admin = store.users.get_by_username("rootadmin")
        assert admin is not None
        assert admin.roles == {seeded.admin_role, seeded.default_role}
        assert app.state.hasher.matches("B00tstrap!", admin.password_digest, admin.salt)

        init_state(app, seeded, store=store)
        assert len(store.users) == 1
        assert store.users.get_by_username("rootadmin") == admin

    def test_no_bootstrap_without_password(self, settings: Settings) -> None:
        partial = settings.model_copy(update={"bootstrap_admin_username": "rootadmin"})
        store = DataStore()
        init_state(app, partial, store=store)
        assert not store.users.has_users()
