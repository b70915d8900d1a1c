"""
auth/policy.py -- Authorization decisions for protected operations.

Rules, evaluated in order (first match wins):
  1. Public actions (READ, REGISTER) need no identity.
  2. No identity on a protected action -> UNAUTHENTICATED.
  3. A submitted record whose key differs from the target key -> KEY_CHANGE,
     whatever roles the caller holds. Keys are immutable after creation.
  4. Self-service: the caller's subject equals the target key -> PERMIT for
     UPDATE_ACCOUNT, and for DELETE_ACCOUNT only when allow_self_delete is on.
  5. Administrative override: the caller holds the admin role -> PERMIT.
  6. Everything else -> FORBIDDEN.

WRITE_RESOURCE (todo create/update/delete) is open to any authenticated
identity; todo items have no owner.

FORBIDDEN means "valid identity, action not allowed". It is kept apart from
UNAUTHENTICATED (bad or missing token) and from "not found" (the store's
False) so the API layer can answer 403, 401 and 404 respectively.

Layer rule: no imports from api/ or todo/.
"""

from __future__ import annotations

import logging
from enum import Enum

from auth.models import Claims

logger = logging.getLogger("todoauth.auth")


class Action(str, Enum):
    READ = "read"
    REGISTER = "register"
    UPDATE_ACCOUNT = "update_account"
    DELETE_ACCOUNT = "delete_account"
    WRITE_RESOURCE = "write_resource"


class Decision(str, Enum):
    PERMIT = "permit"
    UNAUTHENTICATED = "unauthenticated"
    KEY_CHANGE = "key_change"
    FORBIDDEN = "forbidden"


_PUBLIC_ACTIONS = frozenset({Action.READ, Action.REGISTER})


class AuthorizationPolicy:
    """Decides whether an identity may perform an action on a record.

    Usage:
        policy = AuthorizationPolicy(admin_role="Administrator")
        policy.evaluate(claims, Action.UPDATE_ACCOUNT, target_key="alice", submitted_key="alice")
    """

    def __init__(self, admin_role: str = "Administrator", allow_self_delete: bool = False) -> None:
        self.admin_role = admin_role
        self.allow_self_delete = allow_self_delete

    def evaluate(
        self,
        claims: Claims | None,
        action: Action,
        target_key: str | None = None,
        submitted_key: str | None = None,
    ) -> Decision:
        if action in _PUBLIC_ACTIONS:
            return Decision.PERMIT
        if claims is None:
            return Decision.UNAUTHENTICATED
        if action is Action.WRITE_RESOURCE:
            return Decision.PERMIT
        if submitted_key is not None and submitted_key != target_key:
            logger.info("Key change %r -> %r refused for %r", target_key, submitted_key, claims.subject)
            return Decision.KEY_CHANGE
        if claims.subject == target_key and self._self_service_allowed(action):
            return Decision.PERMIT
        if self.is_admin(claims):
            return Decision.PERMIT
        logger.info("%s on %r forbidden for %r", action.value, target_key, claims.subject)
        return Decision.FORBIDDEN

    def is_admin(self, claims: Claims) -> bool:
        return claims.has_role(self.admin_role)

    def _self_service_allowed(self, action: Action) -> bool:
        if action is Action.UPDATE_ACCOUNT:
            return True
        return action is Action.DELETE_ACCOUNT and self.allow_self_delete
