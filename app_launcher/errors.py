"""
Error taxonomy for launch attempts.

Resolution and isolation failures are raised and abort the attempt.
Crashes and soft stops are returned as outcomes instead (see classifier).
"""

from typing import Optional, Sequence


class LaunchError(Exception):
    """Base class for fatal launch errors."""

    reason: str = "game.install.could_not_launch"


class NoExecutableFound(LaunchError):
    """Resolution exhausted, including the one reconfigure retry."""

    reason = "game.install.no_executables_found"

    def __init__(self, has_manifest: bool = False):
        self.has_manifest = has_manifest
        super().__init__(
            f"No executables found ({'with' if has_manifest else 'without'} manifest)"
        )


class SandboxCheckFailed(LaunchError):
    """The isolation capability check reported setup errors."""

    reason = "sandbox.check_failed"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(
            f"error(s) while checking for sandbox: {', '.join(self.errors)}"
        )


class SandboxInstallFailed(LaunchError):
    """Installing the missing isolation capabilities failed."""

    reason = "sandbox.install_failed"

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__(
            f"error(s) while installing sandbox: {', '.join(self.errors)}"
        )


class UnsupportedPlatform(LaunchError):
    """No isolation backend or launch plan exists for the host platform."""

    reason = "launch.unsupported_platform"

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"unsupported platform: {platform}")


class HelperCommandFailed(LaunchError):
    """A short-lived helper command (icacls, isolate, activate...) failed."""

    def __init__(self, command: Sequence[str], code: Optional[int], output: str = ""):
        self.command = list(command)
        self.code = code
        self.output = output
        super().__init__(
            f"'{' '.join(self.command)}' exited with code {code}: {output.strip()}"
        )
