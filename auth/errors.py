"""
Error kinds raised by the session core and the authorization guard.

Each carries the HTTP status it maps to; ``api.middleware`` turns them
into the ``{"status": "error", "message": ...}`` envelope.
"""

from __future__ import annotations

from fastapi import status


class AuthError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConflictError(AuthError):
    status_code = status.HTTP_409_CONFLICT


class UnauthorizedError(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AuthError):
    status_code = status.HTTP_404_NOT_FOUND


class InternalError(AuthError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
