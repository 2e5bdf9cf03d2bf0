from urllib.parse import urlencode

import pytest

from mcp_auth.models.discovery import OAuthDiscovery, ProtectedResourceMetadata
from mcp_auth.models.errors import TokenExchangeError
from mcp_auth.models.security import PKCEParameters
from mcp_auth.models.tokens import TokenResult
from mcp_auth.providers.base import OAuthProvider


class StubOAuthProvider(OAuthProvider):
    """Adapter stub with an in-memory token exchange.

    Accepts the code "valid-code" when a code verifier is supplied and
    records every handle_callback() call.
    """

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.callback_calls: list[dict] = []

    async def authenticate(self, request):
        return None

    def get_user(self, request):
        return None

    async def get_authorization_url(
        self,
        state: str,
        pkce: PKCEParameters,
        redirect_uri: str,
        resource: str | None = None,
    ) -> str:
        params = {
            "client_id": "test-client",
            "response_type": "code",
            "redirect_uri": redirect_uri,
            "state": state,
            "code_challenge": pkce.code_challenge,
            "code_challenge_method": pkce.code_challenge_method,
        }
        if resource:
            params["resource"] = resource
        return f"https://auth.example.com/authorize?{urlencode(params)}"

    async def handle_callback(
        self,
        code: str,
        state: str,
        redirect_uri: str,
        resource: str | None = None,
        code_verifier: str | None = None,
    ) -> TokenResult:
        self.callback_calls.append(
            {
                "code": code,
                "state": state,
                "redirect_uri": redirect_uri,
                "resource": resource,
                "code_verifier": code_verifier,
            }
        )
        if code == "valid-code" and code_verifier:
            return TokenResult(
                access_token="test-access-token", token_type="Bearer", expires_in=3600
            )
        raise TokenExchangeError("Invalid authorization code")

    def get_discovery(self) -> OAuthDiscovery:
        return OAuthDiscovery(
            issuer="https://auth.example.com",
            authorization_endpoint="https://auth.example.com/authorize",
            token_endpoint="https://auth.example.com/token",
            userinfo_endpoint="https://auth.example.com/userinfo",
        )

    def get_protected_resource_metadata(
        self, base_url: str
    ) -> ProtectedResourceMetadata:
        return ProtectedResourceMetadata(
            resource=base_url, authorization_servers=["https://auth.example.com"]
        )


@pytest.fixture
def provider_cls() -> type[StubOAuthProvider]:
    return StubOAuthProvider


@pytest.fixture
def provider() -> StubOAuthProvider:
    return StubOAuthProvider()
