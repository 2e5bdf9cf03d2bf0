"""Discovery-related models for OAuth 2.1 server metadata.

Contains the authorization server discovery document (RFC 8414 / OpenID
Connect Discovery) and Protected Resource Metadata (RFC 9728) that providers
publish on the well-known endpoints.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator


class OAuthDiscovery(BaseModel):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414).

    Describes the endpoints and capabilities of the authorization server
    backing a provider.
    """

    # Required for authorization code flow
    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    userinfo_endpoint: str

    # Optional endpoints
    jwks_uri: str | None = None
    registration_endpoint: str | None = None
    revocation_endpoint: str | None = None
    introspection_endpoint: str | None = None

    scopes_supported: list[str] = Field(
        default_factory=lambda: ["openid", "profile", "email"]
    )
    response_types_supported: list[str] = Field(
        default_factory=lambda: ["code"], min_length=1
    )
    grant_types_supported: list[str] = Field(
        default_factory=lambda: ["authorization_code", "refresh_token"]
    )
    subject_types_supported: list[str] = Field(default_factory=lambda: ["public"])
    id_token_signing_alg_values_supported: list[str] | None = None
    token_endpoint_auth_methods_supported: list[str] | None = None

    # PKCE support (required for OAuth 2.1)
    code_challenge_methods_supported: list[str] = Field(
        default_factory=lambda: ["S256"]
    )

    @field_validator("code_challenge_methods_supported")
    @classmethod
    def validate_pkce_support(cls, v: list[str]) -> list[str]:
        if "S256" not in v:
            raise ValueError("Authorization server must support S256 PKCE method")
        return v

    def endpoint_urls(self) -> dict[str, str]:
        """All endpoint URLs that are set, keyed by field name."""
        names = (
            "issuer",
            "authorization_endpoint",
            "token_endpoint",
            "userinfo_endpoint",
            "jwks_uri",
            "registration_endpoint",
            "revocation_endpoint",
            "introspection_endpoint",
        )
        return {
            name: getattr(self, name)
            for name in names
            if getattr(self, name) is not None
        }


class ProtectedResourceMetadata(BaseModel):
    """OAuth 2.0 Protected Resource Metadata (RFC 9728).

    Tells clients which authorization servers protect a resource.
    """

    resource: str
    authorization_servers: list[str] = Field(min_length=1)

    # Fuller variants
    audience: str | None = None
    issuer: str | None = None
    allowed_scopes: list[str] | None = None

    # Optional fields from RFC 9728
    bearer_methods_supported: list[str] | None = None
    resource_documentation: str | None = None

    @field_validator("authorization_servers")
    @classmethod
    def validate_auth_servers(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one authorization server is required")
        return v
