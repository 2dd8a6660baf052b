"""Subprocess helpers."""

import asyncio
import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Dict, List, Optional


logger = logging.getLogger(__name__)


@dataclass
class CommandResult:
    """Result from running a command."""
    returncode: int
    stdout: str = ""
    stderr: str = ""


def format_command(cmd: List[str]) -> str:
    """Quote a command for display."""
    return " ".join(shlex.quote(part) for part in cmd)


def describe_timeout(error: subprocess.TimeoutExpired) -> str:
    """Cause text for a command that ran out of time."""
    cmd = error.cmd if isinstance(error.cmd, str) else format_command(error.cmd)
    return f"{cmd} timed out after {error.timeout}s"


async def run_command(
    cmd: List[str],
    check: bool = True,
    capture_output: bool = True,
    timeout: Optional[int] = None,
    input_text: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
) -> CommandResult:
    """Run a command asynchronously."""
    logger.debug(f"Running command: {format_command(cmd)}")

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input_text is not None else None,
        stdout=asyncio.subprocess.PIPE if capture_output else None,
        stderr=asyncio.subprocess.PIPE if capture_output else None,
        env=dict(os.environ, **env) if env else None,
    )

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(input_text.encode() if input_text is not None else None),
            timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise subprocess.TimeoutExpired(cmd, timeout)

    result = CommandResult(
        returncode=process.returncode,
        stdout=stdout.decode() if stdout else "",
        stderr=stderr.decode() if stderr else "",
    )

    if result.stderr:
        logger.debug(f"STDERR {result.stderr.strip()}")

    if check and process.returncode != 0:
        error = subprocess.CalledProcessError(
            process.returncode, cmd
        )
        error.stdout = result.stdout
        error.stderr = result.stderr
        raise error

    return result
