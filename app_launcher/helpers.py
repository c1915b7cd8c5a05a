"""
Short-lived helper commands (icacls, isolate, activate...).
"""

import asyncio
import logging
import subprocess
from typing import Optional, Sequence

from .errors import HelperCommandFailed

logger = logging.getLogger(__name__)


async def get_output(
    argv: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
) -> str:
    """Run a helper command and return its stripped stdout.

    Raises:
        HelperCommandFailed: if the helper exits with a non-zero code
        FileNotFoundError: if the helper binary does not exist
    """
    result = await run_helper(argv, cwd=cwd, env=env)
    if result.returncode != 0:
        raise HelperCommandFailed(argv, result.returncode, result.stderr or result.stdout)
    return result.stdout.strip()


async def run_helper(
    argv: Sequence[str],
    cwd: Optional[str] = None,
    env: Optional[dict[str, str]] = None,
) -> subprocess.CompletedProcess:
    """Run a helper command to completion without checking its exit code."""
    logger.debug(f"helper command: {' '.join(argv)}")
    return await asyncio.to_thread(
        subprocess.run,
        list(argv),
        capture_output=True,
        text=True,
        cwd=cwd,
        env=env,
        check=False,
    )
