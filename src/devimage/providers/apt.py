"""APT package manager provider."""

import logging
import re
import subprocess
from typing import Dict, List, Optional, TYPE_CHECKING

from devimage.errors import CleanupWarning, PackageInstallFailed
from devimage.models.spec import base_package_name
from devimage.providers.base import AnswerStore, BuildTarget, PackageManager
from devimage.utils.process import describe_timeout

if TYPE_CHECKING:
    from devimage.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


# apt-get / dpkg diagnostics naming the package that broke the transaction
FAILURE_PATTERNS = [
    re.compile(r"^E: Unable to locate package (\S+)", re.MULTILINE),
    re.compile(r"^E: Package '([^']+)' has no installation candidate", re.MULTILINE),
    re.compile(r"^E: Version '[^']+' for '([^']+)' was not found", re.MULTILINE),
    re.compile(r"^dpkg: error processing package (\S+) \(", re.MULTILINE),
    re.compile(r"^ (\S+) : (?:Pre)?Depends: ", re.MULTILINE),
]


def failed_packages(output: str, requested: List[str]) -> List[str]:
    """Work out which packages an apt failure is about.

    Names found in the output are mapped back onto the requested names. When
    nothing can be identified every requested package is blamed, since the
    install ran as a single transaction.
    """
    found = []
    for pattern in FAILURE_PATTERNS:
        for match in pattern.finditer(output):
            name = base_package_name(match.group(1))
            if name not in found:
                found.append(name)

    if not found:
        return list(requested)

    by_name = {base_package_name(p): p for p in requested}
    return [by_name.get(name, name) for name in found]


def summarize_error(output: Optional[str], lines: int = 5) -> Optional[str]:
    """Keep the tail of a command's error output."""
    if not output:
        return None
    errors = [line for line in output.strip().splitlines() if line.startswith("E: ")]
    tail = errors or output.strip().splitlines()[-lines:]
    return "\n".join(tail[-lines:])


class AptProvider(PackageManager):
    """Provider driving apt-get inside the build target."""

    def __init__(self):
        """Initialize apt provider."""
        self.shell = "/bin/sh"
        self.proxy_config = None

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration."""
        self.shell = config.engine.shell
        self.proxy_config = config.proxy

    def environment(self) -> Dict[str, str]:
        """Environment for apt commands."""
        env = {"DEBIAN_FRONTEND": "noninteractive"}
        if self.proxy_config:
            env.update(self.proxy_config.environment())
        return env

    def update_command(self) -> List[str]:
        return ["apt-get", "update"]

    def install_command(self, packages: List[str]) -> List[str]:
        return ["apt-get", "-y", "install", *packages]

    def cleanup_command(self, directive: str) -> List[str]:
        if directive == "clean-cache":
            return ["apt-get", "clean"]
        if directive == "remove-index-lists":
            return [self.shell, "-c", "rm -rf /var/lib/apt/lists/*"]
        if directive == "autoremove":
            return ["apt-get", "-y", "autoremove"]
        raise ValueError(f"Unknown cleanup directive: {directive}")

    async def update_index(self, target: BuildTarget) -> None:
        """Refresh the package index."""
        logger.info("Refreshing package index")
        try:
            await target.exec(self.update_command(), env=self.environment())
        except subprocess.CalledProcessError as e:
            raise PackageInstallFailed([], summarize_error(e.stderr), refresh=True) from e
        except subprocess.TimeoutExpired as e:
            raise PackageInstallFailed([], describe_timeout(e), refresh=True) from e

    async def install(self, target: BuildTarget, packages: List[str], answers: AnswerStore) -> None:
        """Install all packages in a single apt-get invocation."""
        if not packages:
            logger.info("No packages to install")
            return

        selections = await answers.selections(target)
        preseeded = sorted({pkg for pkg, _ in selections} & {base_package_name(p) for p in packages})
        if preseeded:
            logger.debug(f"Pre-seeded answers present for: {', '.join(preseeded)}")

        logger.info(f"Installing {len(packages)} packages: {' '.join(packages)}")
        try:
            await target.exec(self.install_command(packages), env=self.environment())
        except subprocess.CalledProcessError as e:
            output = f"{e.stdout or ''}\n{e.stderr or ''}"
            raise PackageInstallFailed(
                failed_packages(output, packages),
                summarize_error(e.stderr),
            ) from e
        except subprocess.TimeoutExpired as e:
            raise PackageInstallFailed(list(packages), describe_timeout(e)) from e

    async def run_cleanup(self, target: BuildTarget, directive: str) -> None:
        """Run one cleanup directive."""
        try:
            command = self.cleanup_command(directive)
        except ValueError as e:
            raise CleanupWarning(directive, str(e)) from e

        logger.debug(f"Running cleanup step {directive}")
        try:
            await target.exec(command, env=self.environment())
        except subprocess.CalledProcessError as e:
            raise CleanupWarning(directive, summarize_error(e.stderr)) from e
        except subprocess.TimeoutExpired as e:
            raise CleanupWarning(directive, describe_timeout(e)) from e
