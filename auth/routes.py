"""
Auth API routes — signup, login, current user, refresh, logout.

Every response uses the ``{"status": ..., "data": ...}`` envelope;
errors are rendered by the handlers in ``api.middleware``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from auth.dependencies import get_current_user_id, get_session_service
from auth.models import LoginRequest, RefreshRequest, SignupRequest
from auth.service import SessionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    req: SignupRequest,
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Register a new user."""
    user = await service.signup(req)
    return {
        "status": "success",
        "message": "Signup successful",
        "data": {"user": user.model_dump()},
    }


@router.post("/login")
async def login(
    req: LoginRequest,
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Login with email + password."""
    result = await service.login(req)
    return {
        "status": "success",
        "message": "Login successful",
        "data": {
            "user": result.user.model_dump(),
            "accessToken": result.access_token,
            "refreshToken": result.refresh_token,
        },
    }


@router.get("/user")
async def current_user(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    user = await service.current_user(user_id)
    return {"status": "success", "data": {"user": user.model_dump()}}


@router.post("/refresh")
async def refresh(
    req: RefreshRequest,
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Exchange the current refresh token for a new token pair."""
    pair = await service.refresh(req.refresh_token)
    return {
        "status": "success",
        "data": {
            "accessToken": pair.access_token,
            "refreshToken": pair.refresh_token,
        },
    }


@router.post("/logout")
async def logout(
    user_id: str = Depends(get_current_user_id),
    service: SessionService = Depends(get_session_service),
) -> Dict[str, Any]:
    """Drop the stored refresh token. Issued access tokens stay valid until expiry."""
    await service.logout(user_id)
    return {"status": "success", "message": "Logout successful"}
