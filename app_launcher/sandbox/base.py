"""
Base classes and interfaces for sandbox backends.
"""

import logging
import platform
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable

from ..types import (
    InstallReport,
    IsolationContext,
    LaunchPlan,
    SandboxCapabilityReport,
    SandboxGrant,
)

logger = logging.getLogger(__name__)

# Paths no isolated app should be able to read, on any platform
DEFAULT_DENIED_PATHS = [
    "~/.ssh",
    "~/.aws",
    "~/.gnupg",
    "~/.config/gcloud",
]


class SandboxBackend(ABC):
    """Abstract base class for per-platform app isolation."""

    # Docs page explaining the one-time setup, shown in the consent dialog
    docs_url: str = ""

    @abstractmethod
    def get_platform(self) -> str:
        """Get the platform this backend supports."""
        pass

    @abstractmethod
    async def check(self) -> SandboxCapabilityReport:
        """Report which isolation prerequisites are missing on this host."""
        pass

    @abstractmethod
    async def install(self, needs: Iterable[str]) -> InstallReport:
        """
        Install missing isolation prerequisites.

        Args:
            needs: Capabilities reported missing by check()

        Returns:
            InstallReport listing any setup errors
        """
        pass

    @abstractmethod
    async def acquire(self, context: IsolationContext) -> tuple[LaunchPlan, SandboxGrant]:
        """
        Prepare an isolated execution context for one launch.

        Args:
            context: The install being launched and its non-isolated plan

        Returns:
            Tuple of (isolated_plan, grant). The grant is released by within().
        """
        pass

    @asynccontextmanager
    async def within(self, context: IsolationContext) -> AsyncIterator[LaunchPlan]:
        """
        Run a block inside an isolated execution context.

        The grant is released when the block exits, whether it returned,
        raised, or was cancelled.
        """
        plan, grant = await self.acquire(context)
        logger.info(f"app isolation enabled ({grant.describe})")
        try:
            yield plan
        finally:
            await grant.release()


def get_current_platform() -> str:
    """Get the current platform name."""
    system = platform.system().lower()
    if system == "darwin":
        return "macos"
    return system
