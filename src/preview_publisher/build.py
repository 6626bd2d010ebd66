"""Invocation of the external build command."""

import asyncio
import logging
from pathlib import Path

from preview_publisher.errors import BuildError

logger = logging.getLogger(__name__)


async def build_packages(packages_dir: Path, command: str) -> None:
    """Run the build command through the shell inside packages_dir.

    Output is streamed to the parent process's stdout/stderr.

    Args:
        packages_dir: Working directory for the build.
        command: Shell command, e.g. "yarn build".

    Raises:
        BuildError: If the command cannot be started or exits non-zero.
    """
    logger.info("Running build command '%s' in %s", command, packages_dir)

    try:
        process = await asyncio.create_subprocess_shell(command, cwd=packages_dir)
    except OSError as e:
        raise BuildError(f"Failed to start build command '{command}': {e}") from e

    returncode = await process.wait()
    if returncode != 0:
        raise BuildError(f"Build command '{command}' exited with code {returncode}")
