"""Provider contract and the shared authorization code + PKCE orchestration.

Concrete identity-provider adapters subclass ``OAuthProvider`` and implement
URL construction, the token exchange, and metadata. The flow itself
(PKCE generation, one-shot state bookkeeping, resource validation) lives
here so no adapter re-implements it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from starlette.requests import Request

from mcp_auth.models.discovery import OAuthDiscovery, ProtectedResourceMetadata
from mcp_auth.models.errors import CapabilityNotImplementedError, TokenRefreshError
from mcp_auth.models.registration import (
    ClientRegistrationRequest,
    ClientRegistrationResponse,
)
from mcp_auth.models.security import PKCEParameters
from mcp_auth.models.tokens import TokenResult, TokenState
from mcp_auth.models.user import User
from mcp_auth.primitives.validation import (
    require_https_endpoint,
    require_resource_uri,
)
from mcp_auth.services.flow_store import FlowStateStore
from mcp_auth.settings import AuthSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OAuthFlowStart:
    """Result of starting a flow: where to send the user, and the state."""

    auth_url: str
    state: str


class AuthProvider(ABC):
    """Base authentication provider."""

    @abstractmethod
    async def authenticate(self, request: Request) -> User | None:
        """Authenticate a request and return the user if valid.

        May perform network calls (token introspection, userinfo).
        """

    @abstractmethod
    def get_user(self, request: Request) -> User | None:
        """Return the identity already established for a request.

        Must not perform network calls.
        """

    async def initialize(self) -> None:
        """Prepare the provider before first use."""

    async def shutdown(self) -> None:
        """Release resources held by the provider."""


class OAuthProvider(AuthProvider):
    """OAuth 2.1 authorization code provider with built-in PKCE flow handling.

    Subclasses implement:
    - get_authorization_url(): build the authorization endpoint URL
    - handle_callback(): exchange the authorization code for tokens
    - get_discovery() / get_protected_resource_metadata(): metadata

    and may override refresh_token() and register_client(), whose defaults
    raise CapabilityNotImplementedError naming the adapter.

    Callers drive a login with start_oauth_flow() and complete_oauth_flow().
    """

    def __init__(
        self,
        provider_name: str | None = None,
        flow_store: FlowStateStore | None = None,
        settings: AuthSettings | None = None,
    ):
        """Initialize the provider.

        Args:
            provider_name: Name used in error messages. Defaults to the
                class name.
            flow_store: Store for in-flight flows. Providers sharing a
                callback endpoint should share a store.
            settings: Engine settings; ``flow_state_ttl`` configures a
                store created here.
        """
        self.provider_name = provider_name or type(self).__name__
        self.settings = settings or AuthSettings()
        if flow_store is None:
            flow_store = FlowStateStore(ttl=self.settings.flow_state_ttl)
        self.flow_store = flow_store

    # Adapter contract

    @abstractmethod
    async def get_authorization_url(
        self,
        state: str,
        pkce: PKCEParameters,
        redirect_uri: str,
        resource: str | None = None,
    ) -> str:
        """Build the URL the end user is redirected to.

        Args:
            state: State value to echo back on the callback
            pkce: PKCE parameters; the URL carries the challenge and method
            redirect_uri: Where the authorization server sends the user back
            resource: Optional RFC 8707 resource indicator, already validated
        """

    @abstractmethod
    async def handle_callback(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        resource: str | None = None,
        code_verifier: str | None = None,
    ) -> TokenResult:
        """Exchange an authorization code for tokens.

        Retries, if any, are the adapter's concern. Upstream failures should
        raise TokenExchangeError.
        """

    @abstractmethod
    def get_discovery(self) -> OAuthDiscovery:
        """Authorization server metadata. Must be side-effect free."""

    @abstractmethod
    def get_protected_resource_metadata(
        self, base_url: str
    ) -> ProtectedResourceMetadata:
        """Protected resource metadata for ``base_url``. Must be side-effect free."""

    # Optional capabilities

    async def refresh_token(
        self, token: str, resource: str | None = None
    ) -> TokenResult:
        """Refresh an access token. Not supported unless overridden."""
        raise CapabilityNotImplementedError(
            self.provider_name,
            "refresh_token",
            f"Token refresh not implemented by {self.provider_name}. "
            "Override this method to support token refresh.",
        )

    async def register_client(
        self, request: ClientRegistrationRequest
    ) -> ClientRegistrationResponse:
        """Dynamic client registration (RFC 7591). Not supported unless overridden."""
        raise CapabilityNotImplementedError(
            self.provider_name,
            "register_client",
            f"Dynamic client registration not implemented by {self.provider_name}. "
            "Override this method to support dynamic client registration.",
        )

    def supports_token_refresh(self) -> bool:
        """Whether refresh_token() is implemented. Override alongside it."""
        return False

    def supports_dynamic_registration(self) -> bool:
        """Whether register_client() is implemented. Override alongside it."""
        return False

    # Flow orchestration

    async def start_oauth_flow(
        self, state: str, redirect_uri: str, resource: str | None = None
    ) -> OAuthFlowStart:
        """Start an authorization code flow with PKCE.

        Generates and stores PKCE parameters for ``state`` and returns the
        authorization URL to redirect the user to.

        Args:
            state: Unique, caller-chosen state value for this flow
            redirect_uri: Callback URI registered with the provider
            resource: Optional RFC 8707 resource indicator

        Returns:
            OAuthFlowStart with the authorization URL and the state

        Raises:
            InvalidResourceURIError: If ``resource`` fails validation
            DuplicateStateError: If ``state`` is already in use
        """
        if resource is not None:
            require_resource_uri(resource)

        pkce = self.flow_store.start(state, redirect_uri, resource)

        try:
            auth_url = await self.get_authorization_url(
                state, pkce, redirect_uri, resource
            )
        except Exception:
            # The flow cannot be completed without its URL
            self.flow_store.clear(state)
            raise

        logger.info(f"Started OAuth flow with {self.provider_name}")
        return OAuthFlowStart(auth_url=auth_url, state=state)

    async def complete_oauth_flow(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        resource: str | None = None,
    ) -> TokenResult:
        """Complete a flow started with start_oauth_flow().

        The stored flow is removed before the token exchange begins, so the
        state cannot be used again whether or not the exchange succeeds.

        Args:
            code: Authorization code from the callback
            state: State value from the callback
            redirect_uri: Redirect URI used when the flow started
            resource: Resource indicator; defaults to the one given at start

        Returns:
            TokenResult from the provider

        Raises:
            FlowStateNotFoundError: If no flow is pending for ``state``
            InvalidResourceURIError: If ``resource`` fails validation
            TokenExchangeError: Propagated unchanged from handle_callback()
        """
        flow = self.flow_store.take(state)

        if resource is None:
            resource = flow.resource
        if resource is not None:
            require_resource_uri(resource)

        logger.debug(f"Exchanging authorization code with {self.provider_name}")
        result = await self.handle_callback(
            code,
            state,
            redirect_uri,
            resource,
            flow.pkce.code_verifier,
        )

        logger.info(f"Completed OAuth flow with {self.provider_name}")
        return result

    def clear_flow_state(self, state: str | None = None) -> None:
        """Drop one pending flow, or all of them when ``state`` is None."""
        self.flow_store.clear(state)

    async def ensure_fresh_token(
        self, token_state: TokenState, resource: str | None = None
    ) -> TokenState:
        """Refresh ``token_state`` in place if its access token has expired.

        Returns:
            The same TokenState, refreshed if needed

        Raises:
            TokenRefreshError: If the token expired and cannot be refreshed
            CapabilityNotImplementedError: If the provider cannot refresh
        """
        if token_state.is_valid():
            return token_state

        if not token_state.can_refresh():
            raise TokenRefreshError(
                "Access token expired and no refresh token is available"
            )

        logger.debug(f"Refreshing expired access token with {self.provider_name}")
        result = await self.refresh_token(token_state.refresh_token, resource)
        token_state.update_from_result(result)

        logger.info(f"Refreshed access token with {self.provider_name}")
        return token_state

    # Published metadata

    def discovery_document(self) -> dict[str, Any]:
        """Authorization server metadata as a JSON-ready dict.

        Raises:
            InvalidEndpointError: If any advertised endpoint fails validation
        """
        discovery = self.get_discovery()
        for name, url in discovery.endpoint_urls().items():
            require_https_endpoint(
                url,
                allow_localhost=self.settings.allow_localhost_endpoints,
                name=name,
            )
        return discovery.model_dump(exclude_none=True)

    def protected_resource_document(self, base_url: str) -> dict[str, Any]:
        """Protected resource metadata as a JSON-ready dict.

        Raises:
            InvalidResourceURIError: If the resource fails validation
            InvalidEndpointError: If an authorization server URL fails
                validation
        """
        metadata = self.get_protected_resource_metadata(base_url)
        require_resource_uri(metadata.resource)
        for server in metadata.authorization_servers:
            require_https_endpoint(
                server,
                allow_localhost=self.settings.allow_localhost_endpoints,
                name="Authorization server",
            )
        return metadata.model_dump(exclude_none=True)
