"""
Launcher for installed applications.

Resolves the executable for an install, optionally runs it inside an
OS-level sandbox after asking the user, and reports how it exited.
"""

from .config import LauncherConfig
from .errors import (
    HelperCommandFailed,
    LaunchError,
    NoExecutableFound,
    SandboxCheckFailed,
    SandboxInstallFailed,
    UnsupportedPlatform,
)
from .orchestrator import LaunchOrchestrator
from .spawner import ProcessSpawner
from .types import (
    CancelToken,
    InstallRecord,
    LaunchOutcome,
    LaunchPreferences,
    LaunchRequest,
    ManifestAction,
)

__all__ = [
    "CancelToken",
    "HelperCommandFailed",
    "InstallRecord",
    "LaunchError",
    "LaunchOrchestrator",
    "LaunchOutcome",
    "LaunchPreferences",
    "LaunchRequest",
    "LauncherConfig",
    "ManifestAction",
    "NoExecutableFound",
    "ProcessSpawner",
    "SandboxCheckFailed",
    "SandboxInstallFailed",
    "UnsupportedPlatform",
]
