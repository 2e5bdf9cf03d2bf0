"""Exception hierarchy for the OAuth 2.1 authorization code flow engine.

Provides specific exception types for different failure modes so callers can
tell a missing flow from a rejected URI from an upstream token failure, plus
the RFC 6749 error body used when an error is rendered for a client.
"""

from __future__ import annotations

from pydantic import BaseModel


class OAuthErrorResponse(BaseModel):
    """OAuth 2.0 error response body (RFC 6749 Section 5.2)."""

    error: str
    error_description: str | None = None
    error_uri: str | None = None


def create_oauth_error(
    error: str,
    description: str | None = None,
    uri: str | None = None,
) -> OAuthErrorResponse:
    """Build an RFC 6749 error response.

    Args:
        error: OAuth error code, e.g. ``invalid_grant``
        description: Optional human-readable description
        uri: Optional URI of a page describing the error

    Returns:
        OAuthErrorResponse ready for ``model_dump(exclude_none=True)``
    """
    return OAuthErrorResponse(
        error=error, error_description=description, error_uri=uri
    )


class OAuth2Error(Exception):
    """Base exception for all OAuth 2.1 related errors."""

    pass


class ValidationFailure(OAuth2Error):
    """Raised when a URI does not meet the security policy."""

    pass


class InvalidResourceURIError(ValidationFailure):
    """Raised when a resource indicator (RFC 8707) is rejected."""

    def __init__(self, uri: str):
        self.uri = uri
        super().__init__(f"Invalid resource URI: {uri!r}")


class InvalidEndpointError(ValidationFailure):
    """Raised when an endpoint URL is not HTTPS (or allowed localhost)."""

    def __init__(self, endpoint: str, name: str = "Endpoint"):
        self.endpoint = endpoint
        self.name = name
        super().__init__(f"{name} must use HTTPS: {endpoint!r}")


class FlowStateError(OAuth2Error):
    """Raised when flow state bookkeeping fails."""

    pass


class FlowStateNotFoundError(FlowStateError):
    """Raised when no flow is in progress for a state value.

    The state was never started, was already consumed, was cleared, or
    expired. The caller must restart the flow.
    """

    def __init__(self, state: str):
        self.state = state
        super().__init__(
            "PKCE parameters not found for state. "
            "Did you call start_oauth_flow() first?"
        )


class DuplicateStateError(FlowStateError):
    """Raised when a state value is reused while its flow is still pending."""

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"A flow is already in progress for state {state!r}")


class CapabilityNotImplementedError(OAuth2Error, NotImplementedError):
    """Raised by optional provider capabilities the adapter does not override."""

    def __init__(self, provider_name: str, capability: str, message: str):
        self.provider_name = provider_name
        self.capability = capability
        super().__init__(message)


class PKCEError(OAuth2Error):
    """Raised when PKCE parameter generation fails."""

    pass


class TokenError(OAuth2Error):
    """Raised when token operations fail."""

    def __init__(self, message: str, oauth_error: OAuthErrorResponse | None = None):
        self.oauth_error = oauth_error
        super().__init__(message)


class TokenExchangeError(TokenError):
    """Raised when authorization code to token exchange fails upstream."""

    pass


class TokenRefreshError(TokenError):
    """Raised when token refresh fails."""

    pass


class TokenRevocationError(TokenError):
    """Raised when the authorization server rejects a revocation request."""

    pass


class RegistrationError(OAuth2Error):
    """Raised when dynamic client registration fails."""

    pass
