"""Tests for ProviderRegistry."""

import pytest
from unittest.mock import Mock

from devimage.models.config import DevImageConfig
from devimage.providers.apt import AptProvider
from devimage.providers.base import BaseProvider
from devimage.providers.debconf import DebconfAnswerStore
from devimage.providers.docker import DockerImageProvider
from devimage.providers.registry import ProviderRegistry


class MockProvider(BaseProvider):
    """Mock provider for testing registry."""

    def __init__(self):
        self.initialized = False
        self.registry_ref = None
        self.config_ref = None

    async def initialize(self, config, registry):
        self.initialized = True
        self.config_ref = config
        self.registry_ref = registry


class TestProviderRegistry:
    """Test ProviderRegistry initialization and injection."""

    @pytest.mark.asyncio
    async def test_initialization_injection(self):
        """Test that registry injects itself into providers."""
        registry = ProviderRegistry()
        registry._provider_classes = {
            "mock": MockProvider
        }

        mock_config = Mock()
        await registry.initialize(mock_config)

        provider = registry.get_provider("mock")
        assert provider is not None
        assert isinstance(provider, MockProvider)

        assert provider.initialized is True
        assert provider.config_ref == mock_config
        assert provider.registry_ref == registry

    @pytest.mark.asyncio
    async def test_default_providers(self):
        """Test the default collaborators are wired from configuration."""
        config = DevImageConfig(engine={"binary": "podman", "shell": "/bin/bash"})
        registry = ProviderRegistry()
        await registry.initialize(config)

        assert registry.list_providers() == ["image", "answers", "packages"]
        image = registry.get_provider("image")
        assert isinstance(image, DockerImageProvider)
        assert image.binary == "podman"
        assert isinstance(registry.get_provider("answers"), DebconfAnswerStore)
        packages = registry.get_provider("packages")
        assert isinstance(packages, AptProvider)
        assert packages.shell == "/bin/bash"

    @pytest.mark.asyncio
    async def test_get_provider(self):
        """Test retrieving providers."""
        registry = ProviderRegistry()
        registry._provider_classes = {"mock": MockProvider}
        await registry.initialize(Mock())

        assert registry.get_provider("mock") is not None
        assert registry.get_provider("nonexistent") is None

    def test_register_replaces_provider(self):
        """Test an initialized provider can be substituted."""
        registry = ProviderRegistry()
        provider = MockProvider()

        registry.register("answers", provider)

        assert registry.get_provider("answers") is provider

    def test_list_providers_before_initialize(self):
        """Test nothing is listed until providers are created."""
        registry = ProviderRegistry()
        assert registry.list_providers() == []
