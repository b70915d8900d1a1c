"""
api/routes/v1/auth.py -- Login and identity endpoints.

Routes:
  POST /api/v1/login   -- password login; returns a bearer token
  GET  /api/v1/me      -- identity context of the caller (requires auth)

Security:
  [H2] POST /login is rate-limited per IP (LOGIN_RATE_LIMIT, default 10/minute).
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on login responses.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter
from api.models import LoginRequest, LoginResponse, MeResponse
from auth.dependencies import get_claims
from auth.models import Claims
from auth.tokens import TokenIssuer, authenticate_user
from core.config import get_settings

router = APIRouter()


def _login_rate_limit() -> str:
    return get_settings().login_rate_limit


@router.post("/login", response_model=LoginResponse)
@limiter.limit(_login_rate_limit)  # [H2] below @router so the registered endpoint is the limiting wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with username and password; return a signed JWT.

    Returns the same generic error for wrong username and wrong password
    ("bad_credentials") to avoid leaking username existence information.

    Sync handler: PBKDF2 is CPU-bound, so FastAPI runs this in its threadpool
    instead of blocking the event loop.
    """
    state = request.app.state
    issuer: TokenIssuer = state.issuer
    user = authenticate_user(state.store.users, state.hasher, body.username, body.password)
    if user is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid username or password."}},
        )
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp

    token = issuer.issue(Claims.for_user(user))
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=issuer.expires_in,
            username=user.username,
            roles=sorted(user.roles),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@router.get("/me", response_model=MeResponse)
async def me(claims: Claims = Depends(get_claims)) -> MeResponse:
    """Return the identity carried by the caller's token."""
    return MeResponse(
        username=claims.subject,
        name=claims.display_name,
        email=claims.email,
        roles=sorted(claims.roles),
    )
