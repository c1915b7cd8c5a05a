"""
Non-isolated launch plans per platform.

These are what runs when isolation is off, and the base plans that
sandbox backends rewrite when it is on.
"""

import logging
import re
from typing import Optional

from .classifier import unsupported_platform
from .helpers import get_output
from .types import LaunchPlan, ResolvedExecutable

logger = logging.getLogger(__name__)

SUPPORTED_PLATFORMS = ("windows", "macos", "linux")


def is_app_bundle(path: str) -> bool:
    return re.search(r"\.app/?$", path.lower()) is not None


async def bundle_executable(bundle_path: str) -> str:
    """Ask the activate helper for the binary inside an .app bundle."""
    return await get_output(["activate", "--print-bundle-executable-path", bundle_path])


async def build_plan(
    resolved: ResolvedExecutable,
    platform: str,
    env: Optional[dict[str, str]] = None,
) -> LaunchPlan:
    """
    Build the plain invocation for a resolved executable.

    Args:
        resolved: The executable, its arguments and working directory
        platform: Host platform name
        env: Environment overrides for the child

    Returns:
        LaunchPlan ready for the spawner or a sandbox backend

    Raises:
        UnsupportedPlatform: if the platform has no launch strategy
    """
    if platform not in SUPPORTED_PLATFORMS:
        raise unsupported_platform(platform)

    plan = LaunchPlan(
        target=resolved.path,
        argv=[resolved.path, *resolved.args],
        env=dict(env or {}),
        cwd=resolved.cwd,
        console=resolved.console,
    )

    if platform == "macos" and is_app_bundle(resolved.path):
        # open -W returns when the app quits, but the app itself is not our child
        plan.target = await bundle_executable(resolved.path)
        plan.argv = ["open", "-W", resolved.path]
        if resolved.args:
            plan.argv += ["--args", *resolved.args]
        plan.indirect = True
        logger.debug(f"bundle executable: {plan.target}")

    return plan
