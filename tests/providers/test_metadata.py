"""Tests for published discovery and protected resource metadata."""

import pytest

from mcp_auth.models.discovery import OAuthDiscovery, ProtectedResourceMetadata
from mcp_auth.models.errors import InvalidEndpointError, InvalidResourceURIError
from mcp_auth.settings import AuthSettings


class TestDiscoveryDocument:
    def test_document_contains_endpoints_and_pkce_support(self, provider):
        # Act
        document = provider.discovery_document()

        # Assert
        assert document["issuer"] == "https://auth.example.com"
        assert document["token_endpoint"] == "https://auth.example.com/token"
        assert document["code_challenge_methods_supported"] == ["S256"]
        assert document["response_types_supported"] == ["code"]
        assert "jwks_uri" not in document  # Unset optional fields are dropped

    def test_http_endpoint_is_rejected(self, provider_cls):
        # Arrange
        class InsecureProvider(provider_cls):
            def get_discovery(self):
                return OAuthDiscovery(
                    issuer="https://auth.example.com",
                    authorization_endpoint="https://auth.example.com/authorize",
                    token_endpoint="http://auth.example.com/token",
                    userinfo_endpoint="https://auth.example.com/userinfo",
                )

        # Act & Assert
        with pytest.raises(InvalidEndpointError) as exc_info:
            InsecureProvider().discovery_document()

        assert exc_info.value.endpoint == "http://auth.example.com/token"

    def test_localhost_endpoints_follow_settings(self, provider_cls):
        # Arrange
        class LocalProvider(provider_cls):
            def get_discovery(self):
                return OAuthDiscovery(
                    issuer="http://localhost:9000",
                    authorization_endpoint="http://localhost:9000/authorize",
                    token_endpoint="http://localhost:9000/token",
                    userinfo_endpoint="http://localhost:9000/userinfo",
                )

        # Act
        document = LocalProvider().discovery_document()

        # Assert
        assert document["issuer"] == "http://localhost:9000"
        strict = LocalProvider(settings=AuthSettings(allow_localhost_endpoints=False))
        with pytest.raises(InvalidEndpointError):
            strict.discovery_document()

    def test_get_discovery_is_pure(self, provider):
        assert provider.get_discovery() == provider.get_discovery()


class TestProtectedResourceDocument:
    def test_document_names_resource_and_servers(self, provider):
        # Act
        document = provider.protected_resource_document("https://mcp.example.com")

        # Assert
        assert document == {
            "resource": "https://mcp.example.com",
            "authorization_servers": ["https://auth.example.com"],
        }

    def test_http_base_url_is_rejected(self, provider):
        with pytest.raises(InvalidResourceURIError):
            provider.protected_resource_document("http://mcp.example.com")

    def test_insecure_authorization_server_is_rejected(self, provider_cls):
        # Arrange
        class InsecureProvider(provider_cls):
            def get_protected_resource_metadata(self, base_url):
                return ProtectedResourceMetadata(
                    resource=base_url,
                    authorization_servers=["http://auth.example.com"],
                )

        # Act & Assert
        with pytest.raises(InvalidEndpointError):
            InsecureProvider().protected_resource_document("https://mcp.example.com")

    def test_fuller_variant_fields_are_published(self, provider_cls):
        # Arrange
        class AudienceProvider(provider_cls):
            def get_protected_resource_metadata(self, base_url):
                return ProtectedResourceMetadata(
                    resource=base_url,
                    authorization_servers=["https://auth.example.com"],
                    audience=base_url,
                    issuer="https://auth.example.com",
                    allowed_scopes=["read", "write"],
                )

        # Act
        document = AudienceProvider().protected_resource_document(
            "https://mcp.example.com"
        )

        # Assert
        assert document["audience"] == "https://mcp.example.com"
        assert document["allowed_scopes"] == ["read", "write"]
