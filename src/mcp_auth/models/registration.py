"""Client registration models for OAuth 2.0 Dynamic Client Registration.

Contains the RFC 7591 request and response payloads. Both accept extra
metadata fields, since servers and clients routinely send more than the
registered names.
"""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


class ClientRegistrationRequest(BaseModel):
    """OAuth 2.0 Client Metadata for dynamic registration (RFC 7591)."""

    model_config = ConfigDict(extra="allow")

    client_name: str
    redirect_uris: list[str] = Field(min_length=1)

    grant_types: list[str] = Field(default_factory=lambda: ["authorization_code"])
    response_types: list[str] = Field(default_factory=lambda: ["code"])
    scope: str | None = None
    token_endpoint_auth_method: str = "none"  # Public client


class ClientRegistrationResponse(BaseModel):
    """OAuth 2.0 Client Information Response (RFC 7591 Section 3.2.1)."""

    model_config = ConfigDict(extra="allow")

    client_id: str
    client_secret: str | None = None  # None for public clients
    registration_access_token: str | None = None
    registration_client_uri: str | None = None
    client_id_issued_at: int | None = None
    client_secret_expires_at: int | None = None

    def is_expired(self) -> bool:
        """Check if the client secret has expired.

        RFC 7591 uses 0 for a secret that never expires.
        """
        if not self.client_secret_expires_at:
            return False
        return time.time() >= self.client_secret_expires_at
