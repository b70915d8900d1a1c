"""
auth/tokens.py -- JWT issuance, verification, and the login flow.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry sub (username), name, email, a
       repeatable role claim, iss, aud, iat, nbf and exp. There is no token
       registry -- a token stops being valid only when it expires or the
       signing key changes.

  Verification order: signature -> issuer -> audience -> lifetime -> claims.
       The first failing stage rejects the token. verify() returns None for
       every rejection so the route layer can only ever answer 401; the stage
       name goes to the DEBUG log and nowhere else.

  Signature: jws.verify() with algorithms=["HS256"] only. Tokens declaring any
       other algorithm (including "none") fail at the signature stage.

  SECRET_KEY: validated by core.config.Settings at startup. TokenIssuer and
       TokenVerifier re-check the minimum length so a component built by hand
       (tests, scripts) cannot sign with a weak key either [M6].

  Login [C1]: authenticate_user() always runs one PBKDF2 derivation, even for
       unknown usernames, and both failure causes return the same None.

Layer rule: no imports from api/ or todo/. Import from core/ is allowed.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from jose import JWSError, jws, jwt

from auth.models import Claims
from core.config import MIN_SECRET_LENGTH, ConfigurationError

if TYPE_CHECKING:
    from auth.models import User
    from auth.passwords import PasswordHasher
    from auth.store import UserStore
    from core.config import Settings

logger = logging.getLogger("todoauth.auth")

ALGORITHM = "HS256"
DEFAULT_TTL_SECONDS = 15 * 60


def _check_secret(secret: str) -> None:
    if not secret or len(secret) < MIN_SECRET_LENGTH:
        raise ConfigurationError(f"Signing secret must be at least {MIN_SECRET_LENGTH} characters.")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Issuance
# ---------------------------------------------------------------------------


class TokenIssuer:
    """Builds and signs bearer tokens.

    issue() is a pure function of (claims, ttl, now, secret): nothing is
    recorded, so an individual token cannot be invalidated before it expires.
    """

    def __init__(self, secret: str, issuer: str, audience: str, ttl_seconds: int = DEFAULT_TTL_SECONDS) -> None:
        _check_secret(secret)
        if not issuer or not audience:
            raise ConfigurationError("Token issuer and audience must both be set.")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.ttl_seconds = ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            ttl_seconds=settings.token_expire_seconds,
        )

    @property
    def expires_in(self) -> int:
        return self.ttl_seconds

    def issue(self, claims: Claims, ttl_seconds: int | None = None, now: datetime | None = None) -> str:
        """Encode a signed JWT for claims, valid from now for ttl_seconds.

        Args:
            claims:      Identity to embed. subject becomes "sub".
            ttl_seconds: Lifetime override. Defaults to the configured TTL.
            now:         Issue time. Defaults to the current UTC time.
        """
        issued_at = now or _utcnow()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        expires_at = issued_at + timedelta(seconds=ttl)
        payload = {
            "sub": claims.subject,
            "name": claims.display_name,
            "email": claims.email,
            "role": sorted(claims.roles),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(issued_at.timestamp()),
            "nbf": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


class TokenVerifier:
    """Validates bearer tokens and extracts their Claims.

    Holds only read-only configuration, so one instance is shared by every
    request thread.
    """

    def __init__(self, secret: str, issuer: str, audience: str, leeway_seconds: int = 0) -> None:
        _check_secret(secret)
        if not issuer or not audience:
            raise ConfigurationError("Token issuer and audience must both be set.")
        self._secret = secret
        self.issuer = issuer
        self.audience = audience
        self.leeway_seconds = leeway_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        return cls(
            secret=settings.secret_key,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            leeway_seconds=settings.clock_skew_seconds,
        )

    def verify(self, token: str, now: datetime | None = None) -> Claims | None:
        """Return the token's Claims, or None if any check fails.

        Returning None (rather than raising) keeps the caller simple: any
        invalid token is treated as unauthenticated.
        """
        payload = self._check_signature(token)
        if payload is None:
            return self._reject("signature")
        if payload.get("iss") != self.issuer:
            return self._reject("issuer")
        if not self._audience_matches(payload.get("aud")):
            return self._reject("audience")
        if not self._lifetime_ok(payload, (now or _utcnow()).timestamp()):
            return self._reject("lifetime")
        claims = _parse_claims(payload)
        if claims is None:
            return self._reject("claims")
        return claims

    def _check_signature(self, token: str) -> dict[str, Any] | None:
        try:
            raw = jws.verify(token, self._secret, algorithms=[ALGORITHM])
            payload = json.loads(raw)
        except (JWSError, ValueError):
            return None
        return payload if isinstance(payload, dict) else None

    def _audience_matches(self, aud: Any) -> bool:
        if isinstance(aud, str):
            return aud == self.audience
        if isinstance(aud, list):
            return self.audience in aud
        return False

    def _lifetime_ok(self, payload: dict[str, Any], now: float) -> bool:
        exp = payload.get("exp")
        if not isinstance(exp, (int, float)):
            return False
        for field in ("nbf", "iat"):
            start = payload.get(field)
            if start is None:
                continue
            if not isinstance(start, (int, float)) or now + self.leeway_seconds < start:
                return False
        return now - self.leeway_seconds < exp

    @staticmethod
    def _reject(stage: str) -> None:
        logger.debug("Token rejected at %s check", stage)
        return None


def _parse_claims(payload: dict[str, Any]) -> Claims | None:
    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        return None
    role = payload.get("role", [])
    if isinstance(role, str):
        roles = frozenset({role})
    elif isinstance(role, list) and all(isinstance(r, str) for r in role):
        roles = frozenset(role)
    else:
        return None
    return Claims(
        subject=subject,
        display_name=str(payload.get("name") or ""),
        email=str(payload.get("email") or ""),
        roles=roles,
    )


# ---------------------------------------------------------------------------
# Login (constant-time) [C1]
# ---------------------------------------------------------------------------


def authenticate_user(users: UserStore, hasher: PasswordHasher, username: str, password: str) -> User | None:
    """Check a username/password pair with timing equalization.

    Always runs one derivation whether or not the user exists:
    - Unknown username: derivation against the hasher's dummy record
    - Wrong password: derivation against the real record

    Returns the User on success, None on any failure.
    """
    user = users.get_by_username(username)
    if user is None:
        # Equalize timing -- do NOT return early before deriving [C1]
        hasher.equalize(password)
        logger.info("Login rejected for %r: unknown user", username)
        return None
    if not hasher.matches(password, user.password_digest, user.salt):
        logger.info("Login rejected for %r: password mismatch", username)
        return None
    return user
