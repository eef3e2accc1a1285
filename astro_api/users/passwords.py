from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import NamedTuple, Optional

PBKDF2_DIGEST = "sha512"
PBKDF2_ITERATIONS = 100_000
KEY_LENGTH = 64
SALT_BYTES = 32


class PasswordHash(NamedTuple):
    salt: str
    hash: str

    @property
    def encoded(self) -> str:
        """Storage form, ``salt:hash``."""
        return f"{self.salt}:{self.hash}"


def generate_salt() -> str:
    return secrets.token_hex(SALT_BYTES)


def _derive(password: str, salt: str) -> bytes:
    # The hex salt string itself is the PBKDF2 salt
    return hashlib.pbkdf2_hmac(
        PBKDF2_DIGEST,
        password.encode("utf-8"),
        salt.encode("utf-8"),
        PBKDF2_ITERATIONS,
        dklen=KEY_LENGTH,
    )


def hash_password(password: str, salt: Optional[str] = None) -> PasswordHash:
    """
    Hash a plaintext password with PBKDF2-HMAC-SHA512.

    Args:
        password: Plaintext password
        salt: Hex salt to reuse; a fresh 32-byte salt is generated when omitted

    Returns:
        PasswordHash with hex salt and hex derived key
    """
    if salt is None:
        salt = generate_salt()
    return PasswordHash(salt=salt, hash=_derive(password, salt).hex())


def verify_password(password: str, hashed: str, salt: str) -> bool:
    """Recompute the key for ``password`` and compare it in constant time."""
    try:
        expected = bytes.fromhex(hashed)
    except ValueError:
        return False
    return hmac.compare_digest(_derive(password, salt), expected)


def verify_stored_password(password: str, stored: Optional[str]) -> bool:
    """Verify against a stored ``salt:hash`` value. Missing or malformed values never match."""
    if not stored or ":" not in stored:
        return False
    salt, hashed = stored.split(":", 1)
    if not salt or not hashed:
        return False
    return verify_password(password, hashed, salt)
