"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Tokens arrive in the Authorization: Bearer <token> header only. There are no
cookies and no API keys.

try_get_claims() is the soft variant (returns None on failure).
get_claims() wraps it and raises HTTP 401 if unauthenticated.
enforce() turns an AuthorizationPolicy Decision into the matching HTTP error.

Every rejected token produces the same 401 body; the reason is only logged
by TokenVerifier.

Layer rule: no imports from api/ or todo/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Claims
from auth.policy import Action, AuthorizationPolicy, Decision
from auth.tokens import TokenVerifier

_UNAUTHORIZED = {"code": "unauthorized", "message": "Authentication required."}


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def try_get_claims(request: Request) -> Claims | None:
    """Return the verified identity context for this request, or None.

    Never raises -- callers that need a hard 401 should use get_claims().
    """
    token = _bearer_token(request)
    if token is None:
        return None
    verifier: TokenVerifier = request.app.state.verifier
    return verifier.verify(token)


def get_claims(request: Request) -> Claims:
    """Require authentication. Raises HTTP 401 if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.put("/users/{username}")
        def route(claims: Claims = Depends(get_claims)): ...
    """
    claims = try_get_claims(request)
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail=_UNAUTHORIZED,
            headers={"WWW-Authenticate": "Bearer"},
        )
    return claims


def enforce(
    request: Request,
    claims: Claims | None,
    action: Action,
    target_key: str | None = None,
    submitted_key: str | None = None,
) -> None:
    """Evaluate the policy and raise the HTTP error for anything but PERMIT.

    UNAUTHENTICATED -> 401, KEY_CHANGE -> 400, FORBIDDEN -> 403.
    """
    policy: AuthorizationPolicy = request.app.state.policy
    decision = policy.evaluate(claims, action, target_key=target_key, submitted_key=submitted_key)
    if decision is Decision.PERMIT:
        return
    if decision is Decision.UNAUTHENTICATED:
        raise HTTPException(status_code=401, detail=_UNAUTHORIZED, headers={"WWW-Authenticate": "Bearer"})
    if decision is Decision.KEY_CHANGE:
        raise HTTPException(
            status_code=400,
            detail={"code": "key_change", "message": "May not change username."},
        )
    raise HTTPException(
        status_code=403,
        detail={"code": "forbidden", "message": "You may not modify this record."},
    )
