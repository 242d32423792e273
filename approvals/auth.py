"""Dashboard password check against ADMIN_PASSWORD_HASH (bcrypt, $2a$/$2b$)."""

from __future__ import annotations

from typing import Optional

import bcrypt

from approvals.config import settings
from approvals.runtime import get_logger

logger = get_logger("auth")

DEFAULT_ROUNDS = 10


class PasswordConfigError(ValueError):
    """Password missing from the request or no usable hash configured."""


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: Optional[str], stored_hash: Optional[str] = None) -> bool:
    stored = stored_hash if stored_hash is not None else settings().ADMIN_PASSWORD_HASH
    if not password or not stored:
        raise PasswordConfigError("Missing password or hash configuration")

    try:
        ok = bcrypt.checkpw(password.encode("utf-8"), stored.strip().encode("utf-8"))
    except ValueError as e:
        logger.error(f"❌ ADMIN_PASSWORD_HASH is not a bcrypt hash: {e}")
        raise PasswordConfigError("Invalid password hash configuration") from e

    if ok:
        logger.info("Dashboard authentication successful")
    else:
        logger.warning("Authentication failed: invalid password provided")
    return ok
