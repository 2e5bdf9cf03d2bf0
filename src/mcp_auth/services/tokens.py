"""OAuth 2.1 token endpoint client for provider adapters.

Implements RFC 6749 token endpoint interactions with PKCE (RFC 7636) and
Resource Indicators (RFC 8707), plus token revocation (RFC 7009). Adapters
call it from handle_callback() and refresh_token(); nothing here is
specific to one identity provider.
"""

from __future__ import annotations

import base64
import logging
from types import TracebackType
from typing import Self

import httpx
from pydantic import ValidationError

from mcp_auth.models.errors import (
    TokenError,
    TokenExchangeError,
    TokenRefreshError,
    TokenRevocationError,
    create_oauth_error,
)
from mcp_auth.models.tokens import (
    RefreshTokenRequest,
    TokenRequest,
    TokenResponse,
    TokenResult,
)
from mcp_auth.primitives.validation import require_https_endpoint

logger = logging.getLogger(__name__)


class TokenEndpointClient:
    """Performs code exchange and refresh against a token endpoint.

    Uses application/x-www-form-urlencoded encoding as required by OAuth 2.1.
    OAuth error responses raise TokenExchangeError / TokenRefreshError with
    the parsed error attached as ``oauth_error``.
    """

    def __init__(self, timeout: float = 30.0, allow_localhost: bool = True):
        """Initialize the token endpoint client.

        Args:
            timeout: HTTP request timeout in seconds
            allow_localhost: Accept plain HTTP token endpoints on localhost
        """
        self.timeout = timeout
        self.allow_localhost = allow_localhost
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def exchange_code(self, token_request: TokenRequest) -> TokenResult:
        """Exchange an authorization code for tokens (RFC 6749 Section 4.1.3).

        Raises:
            InvalidEndpointError: If the token endpoint is not HTTPS
            TokenExchangeError: If the exchange fails
        """
        logger.debug(f"Exchanging authorization code at {token_request.token_endpoint}")
        return await self._post(
            token_request.token_endpoint,
            token_request.to_form_data(),
            token_request.client_id,
            token_request.client_secret,
            token_request.auth_method,
            TokenExchangeError,
            "token exchange",
        )

    async def refresh(self, refresh_request: RefreshTokenRequest) -> TokenResult:
        """Refresh an access token (RFC 6749 Section 6).

        Raises:
            InvalidEndpointError: If the token endpoint is not HTTPS
            TokenRefreshError: If the refresh fails
        """
        logger.debug(f"Refreshing access token at {refresh_request.token_endpoint}")
        return await self._post(
            refresh_request.token_endpoint,
            refresh_request.to_form_data(),
            refresh_request.client_id,
            refresh_request.client_secret,
            refresh_request.auth_method,
            TokenRefreshError,
            "token refresh",
        )

    async def _post(
        self,
        token_endpoint: str,
        form_data: dict[str, str],
        client_id: str,
        client_secret: str | None,
        auth_method: str,
        error_cls: type[TokenError],
        operation: str,
    ) -> TokenResult:
        require_https_endpoint(
            token_endpoint, allow_localhost=self.allow_localhost, name="Token endpoint"
        )

        headers = _form_headers(client_id, client_secret, auth_method)

        # Log request details (without sensitive data)
        logger.debug(
            f"Token request: grant_type={form_data['grant_type']}, "
            f"client_id={client_id}, "
            f"resource={form_data.get('resource', 'none')}"
        )

        try:
            response = await self._http_client.post(
                token_endpoint, data=form_data, headers=headers
            )
        except httpx.HTTPError as e:
            raise error_cls(f"HTTP error during {operation}: {e}") from e

        return self._parse_token_response(response, error_cls, operation)

    def _parse_token_response(
        self,
        response: httpx.Response,
        error_cls: type[TokenError],
        operation: str,
    ) -> TokenResult:
        """Parse a token endpoint response (RFC 6749 Section 5).

        Raises:
            TokenError: Subclass ``error_cls`` for error or malformed responses
        """
        try:
            token_response = TokenResponse(**response.json())
        except (ValueError, TypeError, ValidationError) as e:
            raise error_cls(
                f"Invalid {operation} response (HTTP {response.status_code}): {e}"
            ) from e

        if response.status_code != 200 or token_response.is_error():
            oauth_error = token_response.to_oauth_error()
            logger.warning(
                f"{operation.capitalize()} failed with {response.status_code}: "
                f"{oauth_error.error} - "
                f"{oauth_error.error_description or 'No description provided'}"
            )
            raise error_cls(
                f"{operation.capitalize()} failed: {oauth_error.error}",
                oauth_error=oauth_error,
            )

        if not token_response.is_success():
            raise error_cls(f"{operation.capitalize()} response missing access_token")

        try:
            result = token_response.to_token_result()
        except ValidationError as e:
            raise error_cls(f"Invalid {operation} response: {e}") from e

        logger.info(f"{operation.capitalize()} successful")
        return result

    async def revoke(
        self,
        revocation_endpoint: str,
        token: str,
        client_id: str,
        token_type_hint: str | None = "access_token",
        client_secret: str | None = None,
        auth_method: str = "client_secret_post",
    ) -> None:
        """Revoke an access or refresh token (RFC 7009).

        The server answers 200 whether or not the token was still valid.

        Raises:
            InvalidEndpointError: If the revocation endpoint is not HTTPS
            TokenRevocationError: If the server rejects the request
        """
        require_https_endpoint(
            revocation_endpoint,
            allow_localhost=self.allow_localhost,
            name="Revocation endpoint",
        )

        form_data = {"token": token, "client_id": client_id}
        if token_type_hint:
            form_data["token_type_hint"] = token_type_hint
        if client_secret and auth_method == "client_secret_post":
            form_data["client_secret"] = client_secret

        logger.debug(
            f"Revoking {token_type_hint or 'token'} at {revocation_endpoint}"
        )
        try:
            response = await self._http_client.post(
                revocation_endpoint,
                data=form_data,
                headers=_form_headers(client_id, client_secret, auth_method),
            )
        except httpx.HTTPError as e:
            raise TokenRevocationError(f"HTTP error during token revocation: {e}") from e

        if response.status_code == 200:
            logger.info("Token revocation successful")
            return

        try:
            oauth_error = TokenResponse(**response.json()).to_oauth_error()
        except (ValueError, TypeError, ValidationError):
            oauth_error = create_oauth_error("server_error")
        logger.warning(
            f"Token revocation failed with {response.status_code}: {oauth_error.error}"
        )
        raise TokenRevocationError(
            f"Token revocation failed: {oauth_error.error}", oauth_error=oauth_error
        )

    async def close(self) -> None:
        """Close the HTTP client and clean up resources."""
        await self._http_client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.close()


def _form_headers(
    client_id: str, client_secret: str | None, auth_method: str
) -> dict[str, str]:
    headers = {
        "Content-Type": "application/x-www-form-urlencoded",
        "Accept": "application/json",
    }
    if client_secret and auth_method == "client_secret_basic":
        credentials = base64.b64encode(
            f"{client_id}:{client_secret}".encode()
        ).decode("ascii")
        headers["Authorization"] = f"Basic {credentials}"
    return headers
