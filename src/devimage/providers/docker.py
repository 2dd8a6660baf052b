"""Docker-backed base-image resolver and image-build engine."""

import json
import logging
import subprocess
from typing import Dict, List, Optional, TYPE_CHECKING

from devimage.errors import BaseImageUnavailable, ImageCommitFailed
from devimage.providers.base import BuildTarget, ImageProvider, ProviderStatus
from devimage.utils.process import CommandResult, describe_timeout, run_command

if TYPE_CHECKING:
    from devimage.providers.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class DockerTarget(BuildTarget):
    """Working container the build runs its commands in."""

    def __init__(
        self,
        container_id: str,
        reference: str,
        binary: str = "docker",
        timeout: Optional[int] = None,
        entrypoint: Optional[List[str]] = None,
        cmd: Optional[List[str]] = None,
    ):
        self.container_id = container_id
        self.reference = reference
        self.binary = binary
        self.timeout = timeout
        # Base image process settings, restored on commit
        self.entrypoint = entrypoint
        self.cmd = cmd

    def exec_command(
        self,
        argv: List[str],
        interactive: bool = False,
        env: Optional[Dict[str, str]] = None,
    ) -> List[str]:
        """Build the ``docker exec`` invocation for argv."""
        cmd = [self.binary, "exec"]
        if interactive:
            cmd.append("--interactive")
        for key, value in sorted((env or {}).items()):
            cmd.extend(["--env", f"{key}={value}"])
        cmd.append(self.container_id)
        cmd.extend(argv)
        return cmd

    async def exec(
        self,
        argv: List[str],
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None,
    ) -> CommandResult:
        """Run argv inside the working container."""
        cmd = self.exec_command(argv, interactive=input_text is not None, env=env)
        return await run_command(cmd, input_text=input_text, timeout=self.timeout)

    def __repr__(self) -> str:
        return f"DockerTarget({self.container_id[:12]!r}, {self.reference!r})"


class DockerImageProvider(ImageProvider):
    """Provider pulling base images and committing results with the Docker CLI."""

    def __init__(self):
        """Initialize docker provider."""
        self.binary = "docker"
        self.shell = "/bin/sh"
        self.keep_container = False
        self.timeout: Optional[int] = None

    async def initialize(self, config, registry: "ProviderRegistry") -> None:
        """Initialize provider with configuration."""
        self.binary = config.engine.binary
        self.shell = config.engine.shell
        self.keep_container = config.engine.keep_container
        self.timeout = config.provisioner.command_timeout

    async def status(self, reference: str) -> ProviderStatus:
        """Check if an image is available locally."""
        try:
            result = await run_command(
                [self.binary, "image", "inspect", reference],
                check=False
            )
        except OSError as e:
            logger.error(f"Error checking image {reference}: {e}")
            return ProviderStatus.ERROR

        if result.returncode == 0:
            return ProviderStatus.PRESENT
        return ProviderStatus.ABSENT

    async def resolve(self, reference: str) -> DockerTarget:
        """Pull the base image and start a working container on it."""
        logger.info(f"Pulling base image {reference}")
        try:
            await run_command([self.binary, "pull", reference], timeout=self.timeout)
        except OSError as e:
            raise BaseImageUnavailable(reference, str(e)) from e
        except subprocess.TimeoutExpired as e:
            raise BaseImageUnavailable(reference, describe_timeout(e)) from e
        except subprocess.CalledProcessError as e:
            if await self.status(reference) != ProviderStatus.PRESENT:
                raise BaseImageUnavailable(reference, (e.stderr or "").strip() or None) from e
            logger.warning(f"Pull of {reference} failed, using local copy")

        entrypoint, cmd = await self._image_process(reference)

        try:
            result = await run_command([
                self.binary, "run", "--detach",
                "--entrypoint", self.shell,
                reference, "-c", "sleep infinity",
            ], timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            raise BaseImageUnavailable(reference, (e.stderr or "").strip() or None) from e
        except subprocess.TimeoutExpired as e:
            raise BaseImageUnavailable(reference, describe_timeout(e)) from e

        container_id = result.stdout.strip()
        logger.debug(f"Started working container {container_id[:12]} from {reference}")
        return DockerTarget(
            container_id,
            reference,
            binary=self.binary,
            timeout=self.timeout,
            entrypoint=entrypoint,
            cmd=cmd,
        )

    async def commit(self, target: DockerTarget, tag: Optional[str] = None) -> str:
        """Commit the working container as a new image."""
        cmd = [self.binary, "commit"]
        cmd.extend(["--change", f"ENTRYPOINT {json.dumps(target.entrypoint or [])}"])
        cmd.extend(["--change", f"CMD {json.dumps(target.cmd or [])}"])
        cmd.append(target.container_id)
        if tag:
            cmd.append(tag)

        try:
            result = await run_command(cmd, timeout=self.timeout)
        except subprocess.CalledProcessError as e:
            raise ImageCommitFailed(
                f"Failed to commit container {target.container_id[:12]}",
                (e.stderr or "").strip() or None,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ImageCommitFailed(
                f"Failed to commit container {target.container_id[:12]}",
                describe_timeout(e),
            ) from e

        image_id = result.stdout.strip()
        logger.info(f"Committed image {image_id}" + (f" as {tag}" if tag else ""))
        return image_id

    async def release(self, target: DockerTarget) -> None:
        """Remove the working container."""
        if self.keep_container:
            logger.info(f"Keeping working container {target.container_id[:12]}")
            return

        try:
            result = await run_command(
                [self.binary, "rm", "--force", target.container_id],
                check=False,
                timeout=self.timeout
            )
        except (OSError, subprocess.TimeoutExpired) as e:
            logger.error(f"Error removing working container {target.container_id[:12]}: {e}")
            return

        if result.returncode != 0:
            logger.warning(
                f"Failed to remove working container {target.container_id[:12]}: "
                f"{result.stderr.strip()}"
            )

    async def _image_process(self, reference: str):
        """Read the entrypoint and command configured on an image."""
        result = await run_command([
            self.binary, "image", "inspect",
            "--format", "{{json .Config.Entrypoint}}\t{{json .Config.Cmd}}",
            reference,
        ], check=False)
        if result.returncode != 0:
            return None, None

        entrypoint, _, cmd = result.stdout.strip().partition("\t")
        return json.loads(entrypoint or "null"), json.loads(cmd or "null")
