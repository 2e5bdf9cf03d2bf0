"""PKCE (Proof Key for Code Exchange) generation for OAuth 2.1 security.

Implements RFC 7636 S256 parameter generation. This is required for OAuth 2.1
and binds an authorization code to the client that requested it.
"""

from __future__ import annotations

import base64
import hashlib
import secrets

from mcp_auth.models.errors import PKCEError
from mcp_auth.models.security import PKCEParameters

# 32 random bytes -> 256 bits of entropy -> 43 base64url characters
CODE_VERIFIER_BYTES = 32


def _base64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def generate_code_verifier() -> str:
    """Generate a cryptographically secure code verifier.

    RFC 7636 Section 4.1: the verifier must be 43-128 characters drawn from
    unreserved characters. Base64url without padding only ever produces
    ``[A-Za-z0-9-_]``, a subset of those.

    Returns:
        A 43-character code verifier
    """
    return _base64url(secrets.token_bytes(CODE_VERIFIER_BYTES))


def generate_code_challenge(code_verifier: str) -> str:
    """Generate code challenge from code verifier using S256 method.

    RFC 7636 Section 4.2: BASE64URL-ENCODE(SHA256(ASCII(code_verifier)))

    Args:
        code_verifier: The code verifier to hash

    Returns:
        Base64url-encoded SHA256 hash of the code verifier
    """
    digest = hashlib.sha256(code_verifier.encode("ascii")).digest()
    return _base64url(digest)


def generate_pkce_parameters() -> PKCEParameters:
    """Generate new PKCE parameters for an authorization flow.

    Returns:
        PKCEParameters: Immutable parameters for the authorization flow

    Raises:
        PKCEError: If parameter generation fails
    """
    try:
        code_verifier = generate_code_verifier()
        return PKCEParameters(
            code_verifier=code_verifier,
            code_challenge=generate_code_challenge(code_verifier),
            code_challenge_method="S256",
        )
    except Exception as e:
        raise PKCEError(f"Failed to generate PKCE parameters: {e}") from e
