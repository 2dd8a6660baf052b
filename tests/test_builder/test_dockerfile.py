"""Tests for Dockerfile rendering."""

from devimage.builder.dockerfile import render_dockerfile
from devimage.models.spec import ProvisioningSpec


def test_render_full_spec():
    """Test pre-seed, install and cleanup are rendered in build order."""
    spec = ProvisioningSpec(
        name="rust",
        base_image="mcr.microsoft.com/devcontainers/rust:1-bullseye",
        preseed=[
            {"package": "iptables-persistent", "question": "autosave_v4", "type": "boolean", "value": True},
            {"package": "iptables-persistent", "question": "autosave_v6", "type": "boolean", "value": True},
        ],
        packages=["iproute2", "iptables-persistent"],
    )

    dockerfile = render_dockerfile(spec)

    assert dockerfile == (
        "# Generated by devimage from spec rust\n"
        "FROM mcr.microsoft.com/devcontainers/rust:1-bullseye\n"
        "ARG DEBIAN_FRONTEND=noninteractive\n"
        "\n"
        "RUN echo 'iptables-persistent iptables-persistent/autosave_v4 boolean true'"
        " | debconf-set-selections && \\\n"
        "    echo 'iptables-persistent iptables-persistent/autosave_v6 boolean true'"
        " | debconf-set-selections\n"
        "\n"
        "RUN apt-get update && \\\n"
        "    apt-get -y install iproute2 iptables-persistent && \\\n"
        "    apt-get clean && \\\n"
        "    rm -rf /var/lib/apt/lists/*\n"
    )


def test_render_without_preseed_or_packages():
    """Test empty sections are dropped but the index refresh stays."""
    spec = ProvisioningSpec(name="bare", base_image="debian:bookworm", cleanup=[])

    dockerfile = render_dockerfile(spec)

    assert "debconf-set-selections" not in dockerfile
    assert "install" not in dockerfile
    assert dockerfile.endswith("\nRUN apt-get update\n")
