"""One-way password hashing for stored account credentials."""

from __future__ import annotations

import logging

from passlib.context import CryptContext

logger = logging.getLogger(__name__)

PASSWORD_SCHEME = "pbkdf2_sha256"
PASSWORD_HASH_ROUNDS = 29_000

_pwd_context = CryptContext(
    schemes=[PASSWORD_SCHEME],
    deprecated="auto",
    pbkdf2_sha256__rounds=PASSWORD_HASH_ROUNDS,
)


def hash_password(password: str) -> str:
    """Return a salted PBKDF2-SHA256 hash of ``password``."""
    return _pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    """Return ``True`` when ``password`` matches ``hashed``.

    Malformed or unrecognised hashes count as a mismatch.
    """
    if not hashed:
        return False
    try:
        return _pwd_context.verify(password, hashed)
    except (ValueError, TypeError):
        logger.warning("stored password hash could not be parsed")
        return False
