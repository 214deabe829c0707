"""
Session core — signup, login, current-user lookup, refresh and logout.

A ``SessionService`` is built per request around that request's
``UserStore``; it raises the error kinds from ``auth.errors`` and leaves
HTTP concerns to the routes.
"""

from __future__ import annotations

import logging
from typing import Dict

from auth.errors import ConflictError, NotFoundError, UnauthorizedError
from auth.jwt import InvalidToken, TokenIssuer
from auth.models import LoginRequest, LoginResult, PublicUser, SignupRequest, TokenPair, User
from auth.password import DEFAULT_ROUNDS, hash_password_async, verify_password_async
from database.helpers import DuplicateEmail, UserStore

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_REFRESH = "Invalid or expired refresh token"


# Verified against when the email is unknown so both login failures cost one bcrypt check.
_DUMMY_HASHES: Dict[int, str] = {}


async def _dummy_hash(rounds: int) -> str:
    if rounds not in _DUMMY_HASHES:
        _DUMMY_HASHES[rounds] = await hash_password_async("not-a-real-password", rounds)
    return _DUMMY_HASHES[rounds]


def _public(user: User) -> PublicUser:
    return PublicUser(**user.to_public())


class SessionService:
    def __init__(self, store: UserStore, issuer: TokenIssuer, bcrypt_rounds: int = DEFAULT_ROUNDS) -> None:
        self.store = store
        self.issuer = issuer
        self.bcrypt_rounds = bcrypt_rounds

    async def signup(self, req: SignupRequest) -> PublicUser:
        if await self.store.get_by_email(req.email) is not None:
            raise ConflictError("User already exists")

        password_hash = await hash_password_async(req.password, self.bcrypt_rounds)
        try:
            user = await self.store.create(req.name, req.email, password_hash)
        except DuplicateEmail:
            raise ConflictError("User already exists")

        logger.info("Registered user %s", user.id)
        return _public(user)

    async def login(self, req: LoginRequest) -> LoginResult:
        user = await self.store.get_by_email(req.email)

        if user is None:
            await verify_password_async(req.password, await _dummy_hash(self.bcrypt_rounds))
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not await verify_password_async(req.password, user.password):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        access_token = self.issuer.issue_access(str(user.id))
        refresh_token = self.issuer.issue_refresh(str(user.id))
        await self.store.set_refresh_token(user, refresh_token)

        logger.info("Login: %s", user.id)
        return LoginResult(
            user=_public(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    async def current_user(self, subject_id: str) -> PublicUser:
        user = await self.store.get_by_id(subject_id)
        if user is None:
            raise NotFoundError("User not found")
        return _public(user)

    async def is_current_refresh_token(self, subject_id: str, token: str) -> bool:
        """True only for the refresh token most recently stored for the subject."""
        user = await self.store.get_by_id(subject_id)
        return user is not None and user.refresh_token is not None and user.refresh_token == token

    async def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange the current refresh token for a new access/refresh pair."""
        try:
            subject_id = self.issuer.verify_refresh(refresh_token)
        except InvalidToken:
            raise UnauthorizedError(INVALID_REFRESH)

        user = await self.store.get_by_id(subject_id)
        if user is None or user.refresh_token is None or user.refresh_token != refresh_token:
            raise UnauthorizedError(INVALID_REFRESH)

        access_token = self.issuer.issue_access(subject_id)
        new_refresh = self.issuer.issue_refresh(subject_id)
        if not await self.store.swap_refresh_token(user, refresh_token, new_refresh):
            raise UnauthorizedError(INVALID_REFRESH)

        logger.info("Refreshed tokens for %s", subject_id)
        return TokenPair(access_token=access_token, refresh_token=new_refresh)

    async def logout(self, subject_id: str) -> None:
        user = await self.store.get_by_id(subject_id)
        if user is None:
            raise NotFoundError("User not found")
        await self.store.set_refresh_token(user, None)
        logger.info("Logout: %s", subject_id)
