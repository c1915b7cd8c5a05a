"""
macOS app isolation: a proxy .app bundle that relaunches the real
executable under sandbox-exec.
"""

import logging
import os
import shlex
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

INFO_PLIST = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" "http://www.apple.com/DTDs/PropertyList-1.0.dtd">
<plist version="1.0">
<dict>
  <key>CFBundleExecutable</key>
  <string>{name}</string>
  <key>CFBundleIdentifier</key>
  <string>io.itch.isolated.{name}</string>
  <key>CFBundleName</key>
  <string>{name}</string>
  <key>CFBundlePackageType</key>
  <string>APPL</string>
</dict>
</plist>
"""


class BundleIsolationBackend(SandboxBackend):
    """Filesystem isolation using sandbox-exec behind a proxy bundle."""

    docs_url = "https://itch.io/docs/itch/using/sandbox/osx.html"

    def get_platform(self) -> str:
        """Get the platform this backend supports."""
        return "macos"

    def is_available(self) -> bool:
        """Check if sandbox-exec is available on the system."""
        return shutil.which("sandbox-exec") is not None

    async def check(self) -> SandboxCapabilityReport:
        if self.is_available():
            return SandboxCapabilityReport()
        return SandboxCapabilityReport(needs={"sandbox-exec"})

    async def install(self, needs: Iterable[str]) -> InstallReport:
        # Nothing persistent to set up; sandbox-exec ships with the OS
        if not self.is_available():
            return InstallReport(errors=["sandbox-exec is not available on this system"])
        return InstallReport()

    def _generate_sandbox_profile(self, app_path: str) -> str:
        """
        Generate a sandbox profile in Scheme for sandbox-exec.

        Args:
            app_path: Install directory the app may write to

        Returns:
            Sandbox profile as a string
        """
        app_path = os.path.abspath(app_path)

        profile = """(version 1)
(deny default)

;; Allow basic system operations
(allow process-exec*)
(allow process-fork)
(allow signal)
(allow sysctl-read)
(allow mach-lookup)
(allow ipc-posix-shm)
(allow iokit-open)

;; Games need the network and the window server
(allow network*)

;; Allow reading the system and the app itself
(allow file-read*)

"""
        for denied_path in DEFAULT_DENIED_PATHS:
            expanded_path = os.path.expanduser(denied_path)
            profile += f""";; Deny access to: {expanded_path}
(deny file-read*
    (subpath "{expanded_path}")
)

"""

        profile += f""";; Allow read-write access to the install directory
(allow file*
    (subpath "{app_path}")
)

;; Allow write access to temporary directories
(allow file*
    (subpath "/tmp")
    (subpath "/private/tmp")
    (subpath "/var/tmp")
    (subpath "/private/var/folders")
)
"""
        return profile

    def _write_proxy_bundle(
        self,
        bundle_path: Path,
        name: str,
        profile_file: Path,
        plan: LaunchPlan,
        args: list[str],
    ):
        macos_dir = bundle_path / "Contents" / "MacOS"
        macos_dir.mkdir(parents=True, exist_ok=True)
        (bundle_path / "Contents" / "Info.plist").write_text(INFO_PLIST.format(name=name))

        command = " ".join(
            shlex.quote(arg)
            for arg in ["sandbox-exec", "-f", str(profile_file), plan.target, *args]
        )
        script = macos_dir / name
        cwd = shlex.quote(plan.cwd or os.path.dirname(plan.target))
        script.write_text(f"#!/bin/bash\ncd {cwd}\nexec {command}\n")
        script.chmod(0o755)

    async def acquire(self, context: IsolationContext) -> tuple[LaunchPlan, SandboxGrant]:
        """
        Build a proxy bundle aliasing the real app into the sandbox.

        The proxy bundle is removed when the grant is released; the
        sandbox itself ends with the process.
        """
        itch_dir = Path(context.app_path) / ".itch"
        itch_dir.mkdir(parents=True, exist_ok=True)

        profile_file = itch_dir / "isolate-app.sb"
        profile_file.write_text(self._generate_sandbox_profile(context.app_path))

        name = Path(context.plan.target).stem or "app"
        bundle_path = itch_dir / f"{name}.app"
        if bundle_path.exists():
            shutil.rmtree(bundle_path)
        self._write_proxy_bundle(
            bundle_path, name, profile_file, context.plan, context.args
        )
        logger.debug(f"proxy bundle written to {bundle_path}")

        async def remove_proxy():
            shutil.rmtree(bundle_path, ignore_errors=True)

        plan = replace(
            context.plan,
            argv=["open", "-W", str(bundle_path)],
            isolated=True,
            indirect=True,
        )
        return plan, SandboxGrant(f"proxy bundle {bundle_path}", revoke=remove_proxy)
