"""
Linux app isolation using firejail profiles.
"""

import logging
import os
import shutil
from dataclasses import replace
from pathlib import Path
from typing import Iterable

from ..types import (
    InstallReport,
    IsolationContext,
    LaunchPlan,
    SandboxCapabilityReport,
    SandboxGrant,
)
from .base import DEFAULT_DENIED_PATHS, SandboxBackend

logger = logging.getLogger(__name__)

PROFILE_NAME = "isolate-app.profile"

PROFILE_TEMPLATE = """# Generated before each isolated launch, do not edit
include /etc/firejail/disable-common.inc
include /etc/firejail/disable-programs.inc
include /etc/firejail/disable-devel.inc

caps.drop all
noroot
seccomp
nonewprivs
private-tmp

"""


def profile_path(app_path: str) -> Path:
    """Where the firejail profile for an install lives."""
    return Path(app_path) / ".itch" / PROFILE_NAME


class NamespaceIsolationBackend(SandboxBackend):
    """Namespace isolation using firejail on Linux."""

    docs_url = "https://itch.io/docs/itch/using/sandbox/linux.html"

    def get_platform(self) -> str:
        """Get the platform this backend supports."""
        return "linux"

    def is_available(self) -> bool:
        """Check if firejail is available on the system."""
        return shutil.which("firejail") is not None

    async def check(self) -> SandboxCapabilityReport:
        if self.is_available():
            return SandboxCapabilityReport()
        return SandboxCapabilityReport(needs={"firejail"})

    async def install(self, needs: Iterable[str]) -> InstallReport:
        # firejail comes from the distribution's package manager
        if not self.is_available():
            return InstallReport(
                errors=["firejail is not installed, install it with your package manager"]
            )
        return InstallReport()

    def _generate_profile(self, app_path: str) -> str:
        app_path = os.path.abspath(app_path)
        profile = PROFILE_TEMPLATE

        for denied_path in DEFAULT_DENIED_PATHS:
            profile += f"blacklist {denied_path}\n"

        profile += f"\n# The app may only write to its own install directory\nread-write {app_path}\n"
        return profile

    async def acquire(self, context: IsolationContext) -> tuple[LaunchPlan, SandboxGrant]:
        """
        Write the firejail profile and wrap the launch command.

        The profile is overwritten on every launch and left in place
        afterwards for inspection.
        """
        path = profile_path(context.app_path)
        logger.info(f"generating firejail profile at {path}")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self._generate_profile(context.app_path))

        plan = replace(
            context.plan,
            argv=["firejail", f"--profile={path}", "--", *context.plan.argv],
            isolated=True,
        )
        return plan, SandboxGrant(f"firejail profile {path}")
