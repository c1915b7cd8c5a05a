"""
Maps resolution, isolation and spawn results onto the error taxonomy.

Everything here is pure: it builds exceptions and outcomes, callers
decide whether to raise or return them.
"""

from typing import Sequence

from .errors import (
    NoExecutableFound,
    SandboxCheckFailed,
    SandboxInstallFailed,
    UnsupportedPlatform,
)
from .types import LaunchOutcome, SpawnOutcome


def no_executable(has_manifest: bool) -> NoExecutableFound:
    return NoExecutableFound(has_manifest=has_manifest)


def check_failed(errors: Sequence[str]) -> SandboxCheckFailed:
    return SandboxCheckFailed(errors)


def install_failed(errors: Sequence[str]) -> SandboxInstallFailed:
    return SandboxInstallFailed(errors)


def unsupported_platform(platform: str) -> UnsupportedPlatform:
    return UnsupportedPlatform(platform)


def consent_denied(exe_path: str) -> LaunchOutcome:
    """The user declined sandbox setup. Not an error."""
    return LaunchOutcome(status="cancelled", exe_path=exe_path, reason="sandbox.setup.declined")


def cancelled(exe_path: str | None = None) -> LaunchOutcome:
    return LaunchOutcome(status="cancelled", exe_path=exe_path, reason="launch.cancelled")


def missing_runtime(exe_path: str, runtime: str) -> LaunchOutcome:
    """An archive executable needs a runtime the host lacks. A soft stop."""
    return LaunchOutcome(
        status="needs_reconfiguration",
        exe_path=exe_path,
        reason=f"missing_runtime:{runtime}",
    )


def classify_spawn(outcome: SpawnOutcome) -> LaunchOutcome:
    """
    Turn a spawn outcome into a launch outcome.

    Args:
        outcome: What the spawner reported

    Returns:
        LaunchOutcome with status success, crash or cancelled
    """
    if outcome.cancelled:
        return LaunchOutcome(
            status="cancelled",
            reason="launch.cancelled",
            exit_code=outcome.exit_code,
            output_tail=outcome.output_tail,
        )

    if outcome.crash is not None:
        return LaunchOutcome(
            status="crash",
            exe_path=outcome.crash.exe_path,
            reason=outcome.crash.error,
            exit_code=outcome.exit_code,
            output_tail=outcome.output_tail,
        )

    return LaunchOutcome(
        status="success",
        exit_code=outcome.exit_code,
        output_tail=outcome.output_tail,
    )
