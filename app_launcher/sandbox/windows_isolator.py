"""
Windows app isolation using a restricted player account (isolate.exe + icacls).
"""

import logging
from dataclasses import replace
from typing import Iterable

from ..errors import HelperCommandFailed
from ..helpers import get_output, run_helper
from ..types import (
    InstallReport,
    IsolationContext,
    LaunchPlan,
    SandboxCapabilityReport,
    SandboxGrant,
)
from .base import SandboxBackend

logger = logging.getLogger(__name__)

ISOLATE = "isolate.exe"
ELEVATE = "elevate.exe"


async def share_with(sid: str, path: str):
    """Grant the account read/execute access to a directory tree."""
    logger.info(f"Sharing {path} with {sid}")
    await get_output(["icacls", path, "/grant", f"{sid}:(OI)(CI)RX", "/T", "/Q"])


async def unshare_with(sid: str, path: str):
    """Remove every grant previously given to the account on a directory tree."""
    logger.info(f"Unsharing {path} with {sid}")
    await get_output(["icacls", path, "/remove:g", sid, "/T", "/Q"])


class AccountIsolationBackend(SandboxBackend):
    """Runs apps under a restricted local account that only sees the install."""

    docs_url = "https://itch.io/docs/itch/using/sandbox/windows.html"

    def get_platform(self) -> str:
        """Get the platform this backend supports."""
        return "windows"

    async def check(self) -> SandboxCapabilityReport:
        """Check whether the restricted player account has been set up."""
        try:
            result = await run_helper([ISOLATE, "--check"])
        except OSError as e:
            return SandboxCapabilityReport(errors=[f"{ISOLATE} unavailable: {e}"])

        if result.returncode != 0:
            logger.info(f"player account missing ({ISOLATE} --check: {result.returncode})")
            return SandboxCapabilityReport(needs={"player_account"})
        return SandboxCapabilityReport()

    async def install(self, needs: Iterable[str]) -> InstallReport:
        """Create the restricted player account, elevating once."""
        if "player_account" not in set(needs):
            return InstallReport()

        try:
            await get_output([ELEVATE, ISOLATE, "--setup"])
        except (OSError, HelperCommandFailed) as e:
            return InstallReport(errors=[str(e)])
        return InstallReport()

    async def acquire(self, context: IsolationContext) -> tuple[LaunchPlan, SandboxGrant]:
        """
        Share the install directory with the player account.

        The returned grant revokes the share when released.
        """
        details = await get_output([ISOLATE, "--print-itch-player-details"])
        player = details.split("\n")[0].strip()
        grant_path = context.app_path

        try:
            await share_with(player, grant_path)
        except (HelperCommandFailed, OSError) as e:
            # icacls /T may have granted part of the tree before failing
            logger.warning(f"sharing {grant_path} failed, removing partial grant: {e}")
            try:
                await unshare_with(player, grant_path)
            except (HelperCommandFailed, OSError) as cleanup_error:
                logger.warning(f"could not remove partial grant: {cleanup_error}")
            raise

        async def revoke():
            await unshare_with(player, grant_path)

        env = dict(context.plan.env)
        if context.plan.console:
            # isolate would otherwise capture the child's standard streams
            env["ISOLATE_DISABLE_REDIRECTS"] = "1"

        plan = replace(
            context.plan,
            argv=["isolate", *context.plan.argv],
            env=env,
            isolated=True,
        )
        return plan, SandboxGrant(f"{player} on {grant_path}", revoke=revoke)
