"""
Database helpers — the user store used by the session service.

"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database.models import User

logger = logging.getLogger(__name__)


class DuplicateEmail(Exception):
    """Raised when the users.email unique constraint rejects an insert."""


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _to_uuid(value: str | uuid.UUID) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError):
        return None


class UserStore:
    """Persistence operations on the ``users`` table for one session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.session.execute(
            select(User).where(User.email == normalize_email(email))
        )
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str | uuid.UUID) -> Optional[User]:
        uid = _to_uuid(user_id)
        if uid is None:
            return None
        return await self.session.get(User, uid)

    async def create(self, name: str, email: str, password_hash: str) -> User:
        """
        Insert a new user.

        The unique constraint on ``email`` is the final authority, so a
        concurrent signup that slips past an earlier lookup still fails
        here with ``DuplicateEmail``.
        """
        user = User(
            id=uuid.uuid4(),
            name=name,
            email=normalize_email(email),
            password=password_hash,
            refresh_token=None,
        )
        self.session.add(user)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            await self.session.rollback()
            raise DuplicateEmail(user.email) from exc
        return user

    async def swap_refresh_token(self, user: User, old: str, new: str) -> bool:
        """
        Replace ``old`` with ``new`` only if ``old`` is still the stored token.

        Returns False when another request already rotated it.
        """
        result = await self.session.execute(
            update(User)
            .where(User.id == user.id, User.refresh_token == old)
            .values(refresh_token=new)
        )
        if result.rowcount != 1:
            return False
        user.refresh_token = new
        return True

    async def set_refresh_token(self, user: User, token: Optional[str]) -> None:
        """Overwrite the stored refresh token (last writer wins)."""
        user.refresh_token = token
        await self.session.flush()
