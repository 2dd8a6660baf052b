"""Pydantic models for configuration and validation."""

from devimage.models.config import DevImageConfig, ProvisionerConfig, ProxyConfig, EngineConfig
from devimage.models.spec import ProvisioningSpec, PreseedAnswer

__all__ = [
    "DevImageConfig",
    "ProvisionerConfig",
    "ProxyConfig",
    "EngineConfig",
    "ProvisioningSpec",
    "PreseedAnswer",
]
