"""
devimage - reproducible development-environment images.

Provisions container images from declarative specs: a base image, debconf
pre-seed answers, a package set and cleanup steps, applied in that order.
"""

__version__ = "1.0.0"

from devimage.models.config import DevImageConfig
from devimage.models.spec import ProvisioningSpec, PreseedAnswer

__all__ = [
    "DevImageConfig",
    "ProvisioningSpec",
    "PreseedAnswer",
]
