"""Password hashing: bcrypt over an HMAC of the password keyed by a secret."""

from __future__ import annotations

import hashlib
import hmac

import bcrypt


def _peppered(password: str, secret: str) -> bytes:
    # 64 hex chars, always under bcrypt's 72-byte input limit
    digest = hmac.new(secret.encode(), password.encode(), hashlib.sha256).hexdigest()
    return digest.encode()


def hash_password(password: str, secret: str) -> str:
    """Hash ``password`` for storage. Raises ``ValueError`` on an empty password."""
    if not password:
        raise ValueError("password must not be empty")
    return bcrypt.hashpw(_peppered(password, secret), bcrypt.gensalt()).decode()


def verify_password(password: str, hashed: str, secret: str) -> bool:
    """Check ``password`` against a hash produced by ``hash_password``."""
    try:
        return bcrypt.checkpw(_peppered(password, secret), hashed.encode())
    except ValueError:
        # malformed hash
        return False
