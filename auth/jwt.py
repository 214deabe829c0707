"""
JWT-style token creation and verification.

Tokens are base64url-encoded JSON payloads signed with HMAC-SHA256.
Access and refresh tokens are signed with separate secrets
(env vars: ``JWT_SECRET`` and ``JWT_REFRESH_SECRET``), so leaking one
secret never lets an attacker mint the other token class.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import secrets
import time
from base64 import urlsafe_b64decode, urlsafe_b64encode
from typing import Optional

from config.settings import Settings

logger = logging.getLogger(__name__)

ACCESS = "access"
REFRESH = "refresh"


class InvalidToken(Exception):
    """Any verification failure. The cause is logged, never returned to callers."""


class TokenIssuer:
    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        access_ttl: int = 900,
        refresh_ttl: int = 604800,
    ) -> None:
        self._secrets = {ACCESS: access_secret.encode(), REFRESH: refresh_secret.encode()}
        self._ttls = {ACCESS: access_ttl, REFRESH: refresh_ttl}

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            access_secret=settings.jwt_secret,
            refresh_secret=settings.jwt_refresh_secret,
            access_ttl=settings.access_token_ttl_seconds,
            refresh_ttl=settings.refresh_token_ttl_seconds,
        )

    def _sign(self, raw: bytes, token_class: str) -> str:
        return hmac.new(self._secrets[token_class], raw, hashlib.sha256).hexdigest()

    def issue(self, subject_id: str, token_class: str, now: Optional[float] = None) -> str:
        """Create a signed token containing ``sub`` and expiry."""
        issued_at = int(now if now is not None else time.time())
        payload = {
            "sub": str(subject_id),
            "type": token_class,
            "iat": issued_at,
            "exp": issued_at + self._ttls[token_class],
            "jti": secrets.token_hex(8),
        }
        raw = json.dumps(payload, separators=(",", ":")).encode()
        return urlsafe_b64encode(raw).decode() + "." + self._sign(raw, token_class)

    def issue_access(self, subject_id: str) -> str:
        return self.issue(subject_id, ACCESS)

    def issue_refresh(self, subject_id: str) -> str:
        return self.issue(subject_id, REFRESH)

    def verify(self, token: str, token_class: str) -> str:
        """
        Verify token and return the subject id.

        Raises ``InvalidToken`` on any failure.
        """
        try:
            encoded, sig = token.split(".", 1)
            raw = urlsafe_b64decode(encoded.encode())
            if not hmac.compare_digest(sig, self._sign(raw, token_class)):
                raise ValueError("bad signature")
            payload = json.loads(raw)
            if payload.get("type") != token_class:
                raise ValueError("wrong token class")
            if payload.get("exp", 0) < time.time():
                raise ValueError("token expired")
            subject = payload["sub"]
            if not isinstance(subject, str) or not subject:
                raise ValueError("bad subject")
            return subject
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            logger.debug("Rejected %s token: %s", token_class, exc)
            raise InvalidToken() from exc

    def verify_access(self, token: str) -> str:
        return self.verify(token, ACCESS)

    def verify_refresh(self, token: str) -> str:
        return self.verify(token, REFRESH)
