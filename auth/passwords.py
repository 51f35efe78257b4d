"""
auth/passwords.py -- Password hashing (bcrypt, direct usage).

bcrypt is used directly rather than through passlib: passlib's wrap-bug
detection builds a password longer than 72 bytes, which bcrypt 4.x rejects.

Work factor: BCRYPT_ROUNDS = 12 (bcrypt's own default, ~250ms per hash on
commodity hardware). It is encoded in every digest, so raising it later only
affects new hashes; existing digests keep verifying.

bcrypt only looks at the first 72 bytes of the input. The API layer caps
passwords at 72 characters (api/models.RegisterRequest); multi-byte input
beyond 72 bytes makes newer bcrypt releases raise, which surfaces as
HashingFailure rather than a silent truncation.
"""

from __future__ import annotations

import logging

import bcrypt

from auth.errors import HashingFailure

logger = logging.getLogger("library.auth")

BCRYPT_ROUNDS = 12


def hash_password(plain: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Return a salted bcrypt digest of the plaintext password.

    The empty string is valid input. Raises HashingFailure only if bcrypt
    itself fails.
    """
    try:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except (ValueError, MemoryError) as exc:
        logger.error("Password hashing failed: %s", type(exc).__name__)
        raise HashingFailure() from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext matches the digest.

    A corrupted or non-bcrypt digest is a mismatch, not an error. The
    comparison itself is bcrypt.checkpw's constant-time compare.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False
