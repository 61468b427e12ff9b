"""Password hashing and shared-secret checks."""

import secrets
from functools import lru_cache

import bcrypt

BCRYPT_ROUNDS = 12
# bcrypt only reads the first 72 bytes; newer releases raise instead of truncating
_BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a password with a fresh bcrypt salt."""
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify a password against the stored hash."""
    try:
        return bcrypt.checkpw(_password_bytes(password), stored_hash.encode("ascii"))
    except ValueError:
        return False


@lru_cache(maxsize=4)
def dummy_hash(rounds: int = BCRYPT_ROUNDS) -> str:
    """A throwaway hash so unknown usernames cost the same bcrypt check as known ones."""
    return hash_password(secrets.token_urlsafe(16), rounds)


def check_shared_secret(supplied: str, expected: str) -> bool:
    """Constant-time comparison; an unset secret never matches."""
    if not expected:
        return False
    return secrets.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))
