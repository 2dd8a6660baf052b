"""Tests for the apt provider."""

import subprocess

import pytest
from unittest.mock import AsyncMock

from devimage.errors import CleanupWarning, PackageInstallFailed
from devimage.models.config import ProxyConfig
from devimage.providers.apt import AptProvider, failed_packages, summarize_error
from devimage.providers.memory import InMemoryAnswerStore
from devimage.utils.process import CommandResult


def called_process_error(stderr, stdout=""):
    """Build a CalledProcessError carrying output."""
    error = subprocess.CalledProcessError(100, ["apt-get"])
    error.stdout = stdout
    error.stderr = stderr
    return error


@pytest.fixture
def target():
    """Build target whose exec succeeds."""
    mock = AsyncMock()
    mock.exec.return_value = CommandResult(returncode=0)
    return mock


class TestFailedPackages:
    """Test recovering package names from apt output."""

    def test_unable_to_locate(self):
        """Test the common missing-package error."""
        output = "Reading package lists...\nE: Unable to locate package pkg-b\n"
        assert failed_packages(output, ["pkg-a", "pkg-b"]) == ["pkg-b"]

    def test_no_installation_candidate(self):
        """Test virtual packages without a provider."""
        output = "E: Package 'netcat' has no installation candidate\n"
        assert failed_packages(output, ["git", "netcat"]) == ["netcat"]

    def test_unmet_dependencies(self):
        """Test dependency failures name the package."""
        output = (
            "The following packages have unmet dependencies:\n"
            " tcpdump : Depends: libpcap0.8 (>= 1.9.1) but it is not going to be installed\n"
            "E: Unable to correct problems, you have held broken packages.\n"
        )
        assert failed_packages(output, ["tcpdump", "vim"]) == ["tcpdump"]

    def test_dpkg_error_maps_qualified_name(self):
        """Test dpkg errors are mapped back to requested names."""
        output = "dpkg: error processing package iptables-persistent:all (--configure):\n"
        assert failed_packages(output, ["iptables-persistent"]) == ["iptables-persistent"]

    def test_unknown_failure_blames_everything(self):
        """Test the whole transaction is blamed when nothing matches."""
        assert failed_packages("Killed\n", ["a1", "b2"]) == ["a1", "b2"]

    def test_summarize_prefers_error_lines(self):
        """Test E: lines are kept over progress noise."""
        stderr = "W: some warning\nE: Unable to locate package pkg-b\n"
        assert summarize_error(stderr) == "E: Unable to locate package pkg-b"
        assert summarize_error("") is None


class TestAptCommands:
    """Test command construction."""

    def test_install_command(self):
        """Test all packages go into one invocation."""
        apt = AptProvider()
        assert apt.install_command(["git", "zsh"]) == ["apt-get", "-y", "install", "git", "zsh"]

    def test_cleanup_commands(self):
        """Test cleanup directives map to commands."""
        apt = AptProvider()
        assert apt.cleanup_command("clean-cache") == ["apt-get", "clean"]
        assert apt.cleanup_command("remove-index-lists") == ["/bin/sh", "-c", "rm -rf /var/lib/apt/lists/*"]
        assert apt.cleanup_command("autoremove") == ["apt-get", "-y", "autoremove"]
        with pytest.raises(ValueError):
            apt.cleanup_command("defrag")

    def test_environment_includes_proxy(self):
        """Test proxy settings reach apt."""
        apt = AptProvider()
        apt.proxy_config = ProxyConfig(https_proxy="http://proxy:3128")

        env = apt.environment()

        assert env["DEBIAN_FRONTEND"] == "noninteractive"
        assert env["https_proxy"] == "http://proxy:3128"


@pytest.mark.asyncio
class TestAptProvider:
    """Test apt operations against a mocked target."""

    async def test_update_index(self, target):
        """Test the index refresh command."""
        await AptProvider().update_index(target)

        argv = target.exec.call_args[0][0]
        assert argv == ["apt-get", "update"]
        assert target.exec.call_args[1]["env"]["DEBIAN_FRONTEND"] == "noninteractive"

    async def test_update_failure(self, target):
        """Test a failed refresh is an install failure."""
        target.exec.side_effect = called_process_error("E: Failed to fetch http://deb.debian.org\n")

        with pytest.raises(PackageInstallFailed) as exc_info:
            await AptProvider().update_index(target)

        assert exc_info.value.refresh is True
        assert "index refresh" in str(exc_info.value)

    async def test_install_empty_is_noop(self, target):
        """Test nothing runs for an empty package set."""
        await AptProvider().install(target, [], InMemoryAnswerStore())

        target.exec.assert_not_called()

    async def test_install(self, target):
        """Test packages are installed in one call."""
        await AptProvider().install(target, ["git", "zsh"], InMemoryAnswerStore())

        target.exec.assert_called_once()
        assert target.exec.call_args[0][0] == ["apt-get", "-y", "install", "git", "zsh"]

    async def test_install_failure_names_package(self, target):
        """Test the failing package is named."""
        target.exec.side_effect = called_process_error("E: Unable to locate package pkg-b\n")

        with pytest.raises(PackageInstallFailed) as exc_info:
            await AptProvider().install(target, ["pkg-a", "pkg-b"], InMemoryAnswerStore())

        assert exc_info.value.packages == ["pkg-b"]
        assert exc_info.value.phase == "install"
        assert "pkg-b" in str(exc_info.value)

    async def test_cleanup_failure_is_warning(self, target):
        """Test cleanup failures become CleanupWarning."""
        target.exec.side_effect = called_process_error("rm: cannot remove\n")

        with pytest.raises(CleanupWarning) as exc_info:
            await AptProvider().run_cleanup(target, "remove-index-lists")

        assert exc_info.value.step == "remove-index-lists"
        assert exc_info.value.fatal is False

    async def test_update_timeout(self, target):
        """Test a stalled refresh is an install failure."""
        target.exec.side_effect = subprocess.TimeoutExpired(["apt-get", "update"], 600)

        with pytest.raises(PackageInstallFailed) as exc_info:
            await AptProvider().update_index(target)

        assert exc_info.value.refresh is True
        assert "timed out after 600s" in str(exc_info.value)

    async def test_install_timeout(self, target):
        """Test a stalled install blames every requested package."""
        target.exec.side_effect = subprocess.TimeoutExpired(["apt-get", "-y", "install", "git"], 600)

        with pytest.raises(PackageInstallFailed) as exc_info:
            await AptProvider().install(target, ["git"], InMemoryAnswerStore())

        assert exc_info.value.packages == ["git"]
        assert "timed out after 600s" in str(exc_info.value)

    async def test_cleanup_timeout_is_warning(self, target):
        """Test a stalled cleanup step is only a warning."""
        target.exec.side_effect = subprocess.TimeoutExpired(["apt-get", "clean"], 600)

        with pytest.raises(CleanupWarning) as exc_info:
            await AptProvider().run_cleanup(target, "clean-cache")

        assert exc_info.value.step == "clean-cache"
        assert "timed out" in str(exc_info.value)
