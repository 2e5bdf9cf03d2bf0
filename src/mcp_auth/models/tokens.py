"""Token models for the OAuth 2.1 authorization code flow.

Contains the token result handed back to callers, mutable token state for
refresh-on-expiry, and the RFC 6749 request/response shapes used by the
token endpoint client.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from mcp_auth.models.errors import OAuthErrorResponse


class TokenResult(BaseModel):
    """Tokens issued at the end of a successful flow or refresh."""

    access_token: str
    refresh_token: str | None = None
    id_token: str | None = None
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int = Field(ge=0)  # Whole seconds from issuance
    scope: str | None = None

    @field_validator("token_type", mode="before")
    @classmethod
    def normalize_token_type(cls, v: object) -> object:
        # Servers commonly send "bearer"
        if isinstance(v, str) and v.lower() == "bearer":
            return "Bearer"
        return v


@dataclass
class TokenState:
    """Mutable token state with lifecycle management.

    Mutable so a refresh can update tokens in place for whoever holds them.
    """

    access_token: str | None = None
    refresh_token: str | None = None
    token_type: str = "Bearer"
    expires_at: float | None = None  # Unix timestamp
    scope: str | None = None

    @classmethod
    def from_token_result(cls, result: TokenResult) -> TokenState:
        state = cls()
        state.update_from_result(result)
        return state

    def is_valid(self, buffer_seconds: float = 30.0) -> bool:
        """Check if access token is valid with optional buffer.

        Args:
            buffer_seconds: Treat the token as expired this many seconds early
        """
        if not self.access_token:
            return False

        if self.expires_at is None:
            return True  # No expiry means token doesn't expire

        return time.time() < (self.expires_at - buffer_seconds)

    def can_refresh(self) -> bool:
        """Check if token can be refreshed."""
        return bool(self.refresh_token)

    def update_from_result(self, result: TokenResult) -> None:
        """Update token state from a token result.

        Keeps the existing refresh token when the server does not rotate it.
        """
        self.access_token = result.access_token
        self.token_type = result.token_type
        self.scope = result.scope
        if result.refresh_token:
            self.refresh_token = result.refresh_token
        self.expires_at = time.time() + result.expires_in


@dataclass(frozen=True)
class TokenRequest:
    """OAuth 2.1 token exchange request parameters (RFC 6749 Section 4.1.3).

    Includes PKCE code_verifier (RFC 7636) and resource parameter (RFC 8707).
    """

    # Required fields first
    token_endpoint: str
    code: str
    redirect_uri: str
    client_id: str
    code_verifier: str | None = None

    # Optional fields with defaults last
    client_secret: str | None = None
    auth_method: str = "client_secret_post"
    grant_type: str = "authorization_code"
    resource: str | None = None
    scope: str | None = None

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request.

        Token requests must use form encoding, not JSON (RFC 6749 Section 4.1.3).
        """
        data = {
            "grant_type": self.grant_type,
            "code": self.code,
            "redirect_uri": self.redirect_uri,
            "client_id": self.client_id,
        }

        if self.code_verifier:
            data["code_verifier"] = self.code_verifier
        if self.client_secret and self.auth_method == "client_secret_post":
            data["client_secret"] = self.client_secret
        if self.resource:
            data["resource"] = self.resource
        if self.scope:
            data["scope"] = self.scope

        return data


@dataclass(frozen=True)
class RefreshTokenRequest:
    """OAuth 2.1 refresh token request parameters (RFC 6749 Section 6)."""

    # Required fields first
    token_endpoint: str
    refresh_token: str
    client_id: str

    # Optional fields with defaults last
    client_secret: str | None = None
    auth_method: str = "client_secret_post"
    grant_type: str = "refresh_token"
    resource: str | None = None
    scope: str | None = None

    def to_form_data(self) -> dict[str, str]:
        """Convert to form data for application/x-www-form-urlencoded request."""
        data = {
            "grant_type": self.grant_type,
            "refresh_token": self.refresh_token,
            "client_id": self.client_id,
        }

        if self.client_secret and self.auth_method == "client_secret_post":
            data["client_secret"] = self.client_secret
        if self.resource:
            data["resource"] = self.resource
        if self.scope:
            data["scope"] = self.scope

        return data


class TokenResponse(BaseModel):
    """Raw token endpoint response (RFC 6749 Section 5).

    Covers both successful responses (Section 5.1) and error responses
    (Section 5.2).
    """

    # Success response fields
    access_token: str | None = None
    token_type: str = "Bearer"
    expires_in: int | None = None
    refresh_token: str | None = None
    id_token: str | None = None
    scope: str | None = None

    # Error response fields
    error: str | None = None
    error_description: str | None = None
    error_uri: str | None = None

    def is_success(self) -> bool:
        return self.error is None and self.access_token is not None

    def is_error(self) -> bool:
        return self.error is not None

    def to_oauth_error(self) -> OAuthErrorResponse:
        return OAuthErrorResponse(
            error=self.error or "server_error",
            error_description=self.error_description,
            error_uri=self.error_uri,
        )

    def to_token_result(self, default_expires_in: int = 3600) -> TokenResult:
        """Convert a successful response to a TokenResult.

        Args:
            default_expires_in: Lifetime assumed when the server omits
                ``expires_in``

        Raises:
            ValueError: If response is not successful
        """
        if not self.is_success():
            raise ValueError("Cannot convert error response to TokenResult")

        return TokenResult(
            access_token=self.access_token,
            refresh_token=self.refresh_token,
            id_token=self.id_token,
            token_type=self.token_type,
            expires_in=(
                self.expires_in if self.expires_in is not None else default_expires_in
            ),
            scope=self.scope,
        )
