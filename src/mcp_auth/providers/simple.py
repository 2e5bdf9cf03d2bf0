"""Ready-made providers for development, testing and simple deployments."""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any

from pydantic import ValidationError
from starlette.authentication import BaseUser
from starlette.requests import Request

from mcp_auth.models.user import User
from mcp_auth.providers.base import AuthProvider

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request) -> str | None:
    """Return the token from an ``Authorization: Bearer`` header, if any."""
    auth_header = request.headers.get("Authorization")
    if not auth_header or not auth_header.startswith("Bearer "):
        return None
    token = auth_header[len("Bearer ") :].strip()
    return token or None


class NoAuth(AuthProvider):
    """Provider that never authenticates anyone."""

    async def authenticate(self, request: Request) -> User | None:
        return None

    def get_user(self, request: Request) -> User | None:
        return None


class DevAuth(AuthProvider):
    """Development provider that treats every request as one mock user.

    Never use this outside local development.
    """

    def __init__(self, mock_user: dict[str, Any] | None = None):
        fields: dict[str, Any] = {
            "id": "dev-user-123",
            "username": "developer",
            "email": "dev@example.com",
            "groups": ["developers"],
        }
        fields.update(mock_user or {})
        self.mock_user = User(**fields)
        logger.warning("DevAuth enabled: all requests authenticate as a mock user")

    async def authenticate(self, request: Request) -> User | None:
        return self.mock_user

    def get_user(self, request: Request) -> User | None:
        return self.mock_user


class BearerTokenAuth(AuthProvider):
    """Provider that authenticates ``Authorization: Bearer`` tokens.

    Subclasses implement verify_token().
    """

    async def authenticate(self, request: Request) -> User | None:
        token = extract_bearer_token(request)
        if token is None:
            return None
        return await self.verify_token(token)

    def get_user(self, request: Request) -> User | None:
        # Tokens cannot be verified without I/O; use authenticate()
        return None

    @abstractmethod
    async def verify_token(self, token: str) -> User | None:
        """Verify a bearer token and return its user, or None if invalid."""


class SessionAuth(AuthProvider):
    """Provider for users established by session or authentication middleware.

    Looks in the starlette session (``SessionMiddleware``) under
    ``session_key`` first, then at ``scope["user"]`` as filled by
    ``AuthenticationMiddleware``. Stored users may be a User, a dict of
    claims, or an authenticated starlette ``BaseUser``.
    """

    def __init__(self, session_key: str = "user"):
        self.session_key = session_key

    def get_user(self, request: Request) -> User | None:
        if "session" in request.scope:
            user = self._to_user(request.session.get(self.session_key))
            if user is not None:
                return user
        return self._to_user(request.scope.get("user"))

    async def authenticate(self, request: Request) -> User | None:
        return self.get_user(request)

    def _to_user(self, stored: Any) -> User | None:
        if isinstance(stored, User):
            return stored
        if isinstance(stored, dict):
            try:
                return User(**stored)
            except ValidationError as e:
                logger.warning(
                    f"Ignoring stored user with {e.error_count()} invalid claim(s)"
                )
                return None
        if isinstance(stored, BaseUser) and stored.is_authenticated:
            return User(id=stored.display_name, username=stored.display_name)
        return None
