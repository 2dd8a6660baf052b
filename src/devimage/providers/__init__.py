"""Provisioning collaborators."""

from devimage.providers.base import (
    AnswerStore,
    BaseProvider,
    BuildTarget,
    ImageProvider,
    PackageManager,
    ProviderStatus,
)
from devimage.providers.memory import InMemoryAnswerStore
from devimage.providers.registry import ProviderRegistry

__all__ = [
    "AnswerStore",
    "BaseProvider",
    "BuildTarget",
    "ImageProvider",
    "PackageManager",
    "ProviderStatus",
    "InMemoryAnswerStore",
    "ProviderRegistry",
]
