"""
App isolation backends.

Supports:
- Windows: a restricted player account (isolate.exe + icacls)
- macOS: sandbox-exec behind a proxy .app bundle
- Linux: firejail profiles generated under the install directory
"""

from .backends import get_sandbox_backend
from .base import SandboxBackend, get_current_platform
from .linux_isolator import NamespaceIsolationBackend
from .macos_isolator import BundleIsolationBackend
from .windows_isolator import AccountIsolationBackend

__all__ = [
    "AccountIsolationBackend",
    "BundleIsolationBackend",
    "NamespaceIsolationBackend",
    "SandboxBackend",
    "get_current_platform",
    "get_sandbox_backend",
]
