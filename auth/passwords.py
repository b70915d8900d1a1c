"""
auth/passwords.py -- Password derivation and verification.

Security design decisions:
  Derivation: PBKDF2-HMAC-SHA256 via hashlib.pbkdf2_hmac, 32-byte output,
       iteration count from Settings.hash_iterations (default 10 000). The same
       (plaintext, salt, iterations) always yields the same digest, which is
       what makes verification possible.

  Salt: 16 random bytes from secrets.token_bytes(), generated per record at
       creation and on every password replacement. Stored next to the digest.
       A salt shared across records would let one precomputed table attack
       every account at once.

  Comparison: lengths are compared first (digest length is fixed, so this
       leaks nothing secret), then hmac.compare_digest() examines every byte
       regardless of where the first mismatch is.

  Timing equalization [C1]: equalize() runs one full derivation against a
       dummy record. authenticate_user() calls it for unknown usernames so the
       response time does not reveal whether an account exists.

Layer rule: no imports from api/ or todo/.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets

HASH_NAME = "sha256"
HASH_SIZE = 32
SALT_SIZE = 16
DEFAULT_ITERATIONS = 10_000


class PasswordHasher:
    """Salted, iterated one-way password digests.

    Usage:
        hasher = PasswordHasher(iterations=settings.hash_iterations)
        digest, salt = hasher.hash_password("Secr3tPass!")
        hasher.matches("Secr3tPass!", digest, salt)   # True
    """

    def __init__(self, iterations: int = DEFAULT_ITERATIONS) -> None:
        if iterations < 1:
            raise ValueError("iterations must be at least 1")
        self.iterations = iterations
        # Computed once so the first unknown-user login is not measurably
        # slower than later ones.
        self._dummy_salt = self.new_salt()
        self._dummy_digest = self.derive(secrets.token_urlsafe(16), self._dummy_salt)

    @staticmethod
    def new_salt() -> bytes:
        return secrets.token_bytes(SALT_SIZE)

    def derive(self, plaintext: str, salt: bytes) -> bytes:
        """Return the 32-byte digest of plaintext under salt."""
        return hashlib.pbkdf2_hmac(HASH_NAME, plaintext.encode("utf-8"), salt, self.iterations, dklen=HASH_SIZE)

    def hash_password(self, plaintext: str) -> tuple[bytes, bytes]:
        """Return (digest, salt) for a new or replaced password."""
        salt = self.new_salt()
        return self.derive(plaintext, salt), salt

    def matches(self, candidate: str, digest: bytes, salt: bytes) -> bool:
        """Return True if candidate derives to digest under salt.

        Never raises for a wrong password; a mismatch is simply False.
        """
        derived = self.derive(candidate, salt)
        if len(derived) != len(digest):
            return False
        return hmac.compare_digest(derived, digest)

    def equalize(self, candidate: str) -> None:
        """Spend the same work as matches() without a real record [C1]."""
        self.matches(candidate, self._dummy_digest, self._dummy_salt)
