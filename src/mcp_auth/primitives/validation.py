"""URI validation for OAuth 2.1 flows.

Resource indicators (RFC 8707) and server endpoints must use HTTPS, with
plain HTTP tolerated only on the loopback host for local development.
"""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

from mcp_auth.models.errors import InvalidEndpointError, InvalidResourceURIError

logger = logging.getLogger(__name__)

LOCALHOST_NAMES = frozenset({"localhost", "127.0.0.1"})


def _scheme_allowed(uri: str, allow_localhost: bool) -> bool:
    """Check the HTTPS-or-localhost policy. Malformed URIs are not allowed."""
    try:
        parsed = urlsplit(uri)
        hostname = parsed.hostname
        # Accessing .port validates it
        parsed.port
    except ValueError:
        return False

    if not hostname:
        return False

    if parsed.scheme == "https":
        return True
    if parsed.scheme == "http" and allow_localhost:
        return hostname in LOCALHOST_NAMES
    return False


def validate_resource_uri(uri: str) -> bool:
    """Validate a resource indicator (RFC 8707 Section 2).

    The resource must be an absolute HTTPS URI (or HTTP on localhost) and
    must not include a fragment component.

    Args:
        uri: Resource URI to validate

    Returns:
        True if the URI may be used as a resource indicator
    """
    if not isinstance(uri, str) or not uri:
        return False
    # "#" with an empty fragment is still a fragment component
    if "#" in uri:
        return False
    return _scheme_allowed(uri, allow_localhost=True)


def validate_https_endpoint(endpoint: str, allow_localhost: bool = True) -> bool:
    """Validate an endpoint URL meets OAuth 2.1 transport requirements.

    Args:
        endpoint: Endpoint URL to validate
        allow_localhost: Accept ``http`` for localhost/127.0.0.1

    Returns:
        True if the endpoint is HTTPS, or allowed localhost HTTP
    """
    if not isinstance(endpoint, str) or not endpoint:
        return False
    return _scheme_allowed(endpoint, allow_localhost=allow_localhost)


def require_resource_uri(uri: str) -> str:
    """Return ``uri`` unchanged, or raise if it is not a valid resource.

    Raises:
        InvalidResourceURIError: If validation fails
    """
    if not validate_resource_uri(uri):
        logger.warning(f"Rejected resource URI: {uri!r}")
        raise InvalidResourceURIError(uri)
    return uri


def require_https_endpoint(
    endpoint: str, allow_localhost: bool = True, name: str = "Endpoint"
) -> str:
    """Return ``endpoint`` unchanged, or raise if it fails validation.

    Args:
        endpoint: Endpoint URL to check
        allow_localhost: Accept ``http`` for localhost/127.0.0.1
        name: Label used in the error message, e.g. "Token endpoint"

    Raises:
        InvalidEndpointError: If validation fails
    """
    if not validate_https_endpoint(endpoint, allow_localhost=allow_localhost):
        logger.warning(f"Rejected {name.lower()}: {endpoint!r}")
        raise InvalidEndpointError(endpoint, name=name)
    return endpoint
