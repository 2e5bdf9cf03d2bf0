"""Tests for optional provider capabilities and refresh-on-expiry."""

import time

import pytest

from mcp_auth.models.errors import CapabilityNotImplementedError, TokenRefreshError
from mcp_auth.models.registration import (
    ClientRegistrationRequest,
    ClientRegistrationResponse,
)
from mcp_auth.models.tokens import TokenResult, TokenState


class TestDefaultCapabilities:
    """Unimplemented optional capabilities fail loudly, naming the adapter."""

    async def test_refresh_token_names_adapter(self, provider):
        # Act & Assert
        with pytest.raises(CapabilityNotImplementedError) as exc_info:
            await provider.refresh_token("test-refresh-token")

        assert str(exc_info.value) == (
            "Token refresh not implemented by StubOAuthProvider. "
            "Override this method to support token refresh."
        )
        assert exc_info.value.capability == "refresh_token"

    async def test_refresh_token_with_resource_has_same_message(self, provider):
        # Act & Assert
        with pytest.raises(
            CapabilityNotImplementedError,
            match="Token refresh not implemented by StubOAuthProvider",
        ):
            await provider.refresh_token("test-refresh-token", "https://api.test.com")

    async def test_register_client_names_adapter(self, provider):
        # Arrange
        request = ClientRegistrationRequest(
            client_name="Test Client",
            redirect_uris=["https://app.test.com/callback"],
            application_type="web",
        )

        # Act & Assert
        with pytest.raises(CapabilityNotImplementedError) as exc_info:
            await provider.register_client(request)

        assert str(exc_info.value) == (
            "Dynamic client registration not implemented by StubOAuthProvider. "
            "Override this method to support dynamic client registration."
        )

    async def test_subclass_name_is_used(self, provider_cls):
        # Arrange
        class CustomAuthProvider(provider_cls):
            pass

        custom = CustomAuthProvider()

        # Act & Assert
        with pytest.raises(NotImplementedError, match="by CustomAuthProvider\\."):
            await custom.refresh_token("token")

    async def test_explicit_provider_name_wins(self, provider_cls):
        # Arrange
        keycloak = provider_cls(provider_name="KeycloakProvider")

        # Act & Assert
        with pytest.raises(
            CapabilityNotImplementedError, match="by KeycloakProvider\\."
        ) as exc_info:
            await keycloak.refresh_token("token")

        assert exc_info.value.provider_name == "KeycloakProvider"

    def test_capability_queries_default_to_false(self, provider):
        assert provider.supports_token_refresh() is False
        assert provider.supports_dynamic_registration() is False


class TestOverriddenCapabilities:
    async def test_overridden_refresh_and_registration(self, provider_cls):
        # Arrange
        class FullProvider(provider_cls):
            async def refresh_token(self, token, resource=None):
                return TokenResult(
                    access_token="refreshed-token",
                    refresh_token="new-refresh-token",
                    expires_in=3600,
                )

            async def register_client(self, request):
                return ClientRegistrationResponse(
                    client_id="new-client-id",
                    client_secret="new-client-secret",
                    client_secret_expires_at=0,
                )

            def supports_token_refresh(self):
                return True

            def supports_dynamic_registration(self):
                return True

        full = FullProvider()

        # Act
        refreshed = await full.refresh_token("old-token")
        registered = await full.register_client(
            ClientRegistrationRequest(
                client_name="Test", redirect_uris=["https://app.test.com/cb"]
            )
        )

        # Assert
        assert refreshed.access_token == "refreshed-token"
        assert refreshed.refresh_token == "new-refresh-token"
        assert registered.client_id == "new-client-id"
        assert not registered.is_expired()
        assert full.supports_token_refresh()
        assert full.supports_dynamic_registration()


class TestEnsureFreshToken:
    def setup_method(self):
        self.refresh_calls = []

    def _refreshing_provider(self, provider_cls):
        calls = self.refresh_calls

        class RefreshingProvider(provider_cls):
            async def refresh_token(self, token, resource=None):
                calls.append((token, resource))
                return TokenResult(access_token="new-access", expires_in=600)

        return RefreshingProvider()

    async def test_valid_token_is_returned_untouched(self, provider_cls):
        # Arrange
        provider = self._refreshing_provider(provider_cls)
        token_state = TokenState(
            access_token="current", refresh_token="r1", expires_at=time.time() + 3600
        )

        # Act
        result = await provider.ensure_fresh_token(token_state)

        # Assert
        assert result is token_state
        assert result.access_token == "current"
        assert self.refresh_calls == []

    async def test_expired_token_is_refreshed_in_place(self, provider_cls):
        # Arrange
        provider = self._refreshing_provider(provider_cls)
        token_state = TokenState(
            access_token="stale", refresh_token="r1", expires_at=time.time() - 10
        )

        # Act
        result = await provider.ensure_fresh_token(
            token_state, "https://mcp.example.com"
        )

        # Assert
        assert result is token_state
        assert token_state.access_token == "new-access"
        # Server did not rotate the refresh token
        assert token_state.refresh_token == "r1"
        assert token_state.is_valid()
        assert self.refresh_calls == [("r1", "https://mcp.example.com")]

    async def test_expired_token_without_refresh_token_raises(self, provider_cls):
        # Arrange
        provider = self._refreshing_provider(provider_cls)
        token_state = TokenState(access_token="stale", expires_at=time.time() - 10)

        # Act & Assert
        with pytest.raises(TokenRefreshError):
            await provider.ensure_fresh_token(token_state)

    async def test_provider_without_refresh_support_raises(self, provider):
        # Arrange
        token_state = TokenState(
            access_token="stale", refresh_token="r1", expires_at=time.time() - 10
        )

        # Act & Assert
        with pytest.raises(CapabilityNotImplementedError):
            await provider.ensure_fresh_token(token_state)
