"""
FastAPI dependencies for authentication.

Provides ``get_current_user_id`` (the authorization guard used on every
protected route) and ``get_session_service``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from auth.errors import UnauthorizedError
from auth.jwt import InvalidToken, TokenIssuer
from auth.service import SessionService
from database.helpers import UserStore
from database.session import get_db_session

_bearer_scheme = HTTPBearer(auto_error=False)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


async def get_session_service(
    request: Request,
    session: AsyncSession = Depends(get_db_session),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> SessionService:
    return SessionService(
        UserStore(session),
        issuer,
        bcrypt_rounds=request.app.state.settings.bcrypt_rounds,
    )


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> str:
    """
    Extract and verify the Bearer token, returning the authenticated
    user id. The id is also stored on ``request.state.user_id``.

    Only the token is checked; handlers confirm the user still exists.
    """
    if credentials is None:
        raise UnauthorizedError("Missing bearer token")

    try:
        user_id = issuer.verify_access(credentials.credentials)
    except InvalidToken:
        raise UnauthorizedError("Invalid or expired token")

    request.state.user_id = user_id
    return user_id
