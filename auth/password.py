"""
Password hashing and verification.

Uses bcrypt for password hashing with automatic
salting and configurable work factor.
"""

from __future__ import annotations

import asyncio
import logging

import bcrypt

from auth.errors import InternalError

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt (auto-salted)."""
    try:
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=rounds)).decode()
    except (ValueError, TypeError, AttributeError) as exc:
        logger.error("Password hashing failed: %s", exc)
        raise InternalError("Password hashing failed") from exc


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time comparison against a bcrypt hash."""
    try:
        encoded = password.encode()
        if len(encoded) > MAX_PASSWORD_BYTES:
            # Could never have been hashed, so it can never match.
            return False
        return bcrypt.checkpw(encoded, password_hash.encode())
    except (ValueError, TypeError, AttributeError) as exc:
        logger.error("Password verification failed: %s", exc)
        raise InternalError("Password hashing failed") from exc


async def hash_password_async(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    return await asyncio.to_thread(hash_password, password, rounds)


async def verify_password_async(password: str, password_hash: str) -> bool:
    return await asyncio.to_thread(verify_password, password, password_hash)
