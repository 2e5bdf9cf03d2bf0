"""OAuth 2.1 dynamic client registration client for provider adapters.

Implements RFC 7591 (OAuth 2.0 Dynamic Client Registration Protocol) so an
adapter's register_client() can forward requests to its authorization
server.
"""

from __future__ import annotations

import logging
from types import TracebackType
from typing import Self

import httpx
from pydantic import ValidationError

from mcp_auth.models.errors import RegistrationError, create_oauth_error
from mcp_auth.models.registration import (
    ClientRegistrationRequest,
    ClientRegistrationResponse,
)
from mcp_auth.primitives.validation import require_https_endpoint

logger = logging.getLogger(__name__)

# RFC 7591 Section 3.2.2 error codes
_METADATA_ERRORS = {
    "invalid_client_metadata": "Invalid client metadata",
    "invalid_redirect_uri": "Invalid redirect URI",
    "invalid_software_statement": "Invalid software statement",
    "unapproved_software_statement": "Unapproved software statement",
}

_STATUS_ERRORS = {
    401: "Registration endpoint requires authentication (initial access token)",
    403: "Registration forbidden, check authorization server policy",
}


class RegistrationClient:
    """Registers OAuth clients with an authorization server (RFC 7591)."""

    def __init__(self, timeout: float = 30.0, allow_localhost: bool = True):
        """Initialize the registration client.

        Args:
            timeout: HTTP request timeout in seconds
            allow_localhost: Accept plain HTTP registration endpoints on
                localhost
        """
        self.timeout = timeout
        self.allow_localhost = allow_localhost
        self._http_client = httpx.AsyncClient(timeout=timeout)

    async def register(
        self,
        registration_endpoint: str,
        request: ClientRegistrationRequest,
        initial_access_token: str | None = None,
    ) -> ClientRegistrationResponse:
        """Register a new OAuth client with the authorization server.

        Args:
            registration_endpoint: Client registration endpoint URL
            request: Client metadata to register
            initial_access_token: Optional initial access token for protected
                registration endpoints

        Returns:
            The server's client information response

        Raises:
            InvalidEndpointError: If the endpoint is not HTTPS
            RegistrationError: If registration fails
        """
        require_https_endpoint(
            registration_endpoint,
            allow_localhost=self.allow_localhost,
            name="Registration endpoint",
        )
        logger.debug(f"Registering client at {registration_endpoint}")

        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        # RFC 7591 Section 3.1
        if initial_access_token:
            headers["Authorization"] = f"Bearer {initial_access_token}"

        try:
            response = await self._http_client.post(
                registration_endpoint,
                json=request.model_dump(exclude_none=True, mode="json"),
                headers=headers,
            )
        except httpx.HTTPError as e:
            raise RegistrationError(f"HTTP error during registration: {e}") from e

        if response.status_code in (200, 201):
            return self._parse_registration(response, registration_endpoint)
        self._raise_registration_error(response)

    def _parse_registration(
        self, response: httpx.Response, registration_endpoint: str
    ) -> ClientRegistrationResponse:
        try:
            response_data = response.json()
        except ValueError as e:
            raise RegistrationError(f"Invalid registration response format: {e}") from e

        if not isinstance(response_data, dict) or "client_id" not in response_data:
            raise RegistrationError("Registration response missing required client_id")

        try:
            registered = ClientRegistrationResponse(**response_data)
        except ValidationError as e:
            raise RegistrationError(f"Invalid registration response format: {e}") from e

        logger.info(
            f"Successfully registered client {registered.client_id} "
            f"at {registration_endpoint}"
        )
        return registered

    def _raise_registration_error(self, response: httpx.Response) -> None:
        """Raise a RegistrationError describing an error response."""
        try:
            error_data = response.json()
        except ValueError:
            raise RegistrationError(
                f"Registration failed with HTTP {response.status_code}: {response.text}"
            ) from None

        if not isinstance(error_data, dict):
            error_data = {}
        error = create_oauth_error(
            error_data.get("error") or "unknown_error",
            error_data.get("error_description") or "No description provided",
        )
        logger.warning(
            f"Client registration failed with {response.status_code}: "
            f"{error.error} - {error.error_description}"
        )

        if error.error in _METADATA_ERRORS:
            raise RegistrationError(
                f"{_METADATA_ERRORS[error.error]}: {error.error_description}"
            )
        if response.status_code in _STATUS_ERRORS:
            raise RegistrationError(_STATUS_ERRORS[response.status_code])
        raise RegistrationError(
            f"Registration failed ({response.status_code}): {error.error} - "
            f"{error.error_description}"
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
