"""Signed session cookie carrying the signed-in user."""

import base64
import hashlib
import hmac
import json
import logging
import time
from typing import Optional

from aiohttp import web

from paywall.errors import ConfigurationError
from paywall.identity.github import User

logger = logging.getLogger(__name__)

SESSION_COOKIE = "paywall_session"


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class SessionCodec:
    """Encodes a User into an HMAC-SHA256 signed, expiring token.

    Token format: ``<base64url(json payload)>.<hex signature>``.
    """

    def __init__(self, secret: str, max_age: int):
        if not secret:
            raise ConfigurationError("session_secret not configured")
        self._key = secret.encode()
        self.max_age = max_age

    def _sign(self, body: str) -> str:
        return hmac.new(self._key, body.encode(), hashlib.sha256).hexdigest()

    def encode(self, user: User, now: Optional[float] = None) -> str:
        issued = int(now if now is not None else time.time())
        payload = {"user": user.to_dict(), "exp": issued + self.max_age}
        body = _b64encode(json.dumps(payload, separators=(",", ":")).encode())
        return f"{body}.{self._sign(body)}"

    def decode(self, token: str, now: Optional[float] = None) -> Optional[User]:
        """Return the User in a token, or None if it is forged, malformed or expired."""
        try:
            body, sig = token.rsplit(".", 1)
        except ValueError:
            return None

        if not hmac.compare_digest(self._sign(body), sig):
            logger.warning("Rejected session cookie with bad signature")
            return None

        try:
            payload = json.loads(_b64decode(body))
            expires = payload["exp"]
            user = User.from_dict(payload["user"])
        except (ValueError, KeyError, TypeError):
            return None

        current = now if now is not None else time.time()
        if current >= expires:
            return None
        return user


def set_session(response: web.StreamResponse, codec: SessionCodec, user: User, secure: bool) -> None:
    response.set_cookie(
        SESSION_COOKIE,
        codec.encode(user),
        max_age=codec.max_age,
        httponly=True,
        samesite="Lax",
        secure=secure,
    )


def clear_session(response: web.StreamResponse) -> None:
    response.del_cookie(SESSION_COOKIE)


def current_user(request: web.Request) -> Optional[User]:
    """Return the signed-in user for a request, if any."""
    token = request.cookies.get(SESSION_COOKIE)
    if not token:
        return None
    codec: SessionCodec = request.app["session_codec"]
    return codec.decode(token)


def is_authenticated(request: web.Request) -> bool:
    return current_user(request) is not None
