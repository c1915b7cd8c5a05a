"""
Factory for selecting the platform-specific sandbox backend.
"""

from typing import Optional

from ..errors import UnsupportedPlatform
from .base import SandboxBackend, get_current_platform
from .linux_isolator import NamespaceIsolationBackend
from .macos_isolator import BundleIsolationBackend
from .windows_isolator import AccountIsolationBackend

BACKENDS = {
    "windows": AccountIsolationBackend,
    "macos": BundleIsolationBackend,
    "linux": NamespaceIsolationBackend,
}


def get_sandbox_backend(platform: Optional[str] = None) -> SandboxBackend:
    """
    Get the sandbox backend for the current platform.

    Args:
        platform: Override platform detection (mainly for testing)

    Returns:
        SandboxBackend instance for the platform

    Raises:
        UnsupportedPlatform: if no backend exists for the platform
    """
    if platform is None:
        platform = get_current_platform()

    backend_class = BACKENDS.get(platform)
    if backend_class is None:
        raise UnsupportedPlatform(platform)
    return backend_class()
