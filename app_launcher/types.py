"""
Data model shared by the orchestrator, the sandbox backends and the spawner.
"""

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)


class ManifestAction(BaseModel):
    """A pre-selected action from the app manifest, bypassing resolution."""

    model_config = ConfigDict(frozen=True)

    name: str = "play"
    path: str
    sandbox: bool = False
    console: bool = False
    args: list[str] = Field(default_factory=list)


class InstallRecord(BaseModel):
    """Persisted metadata describing one installed application."""

    model_config = ConfigDict(frozen=True)

    id: str
    install_location: str
    install_folder: str
    app_id: int | None = None
    app: dict[str, Any] = Field(default_factory=dict)
    upload: dict[str, Any] = Field(default_factory=dict)
    # Relative paths of executables found by the last configure pass
    candidates: list[str] = Field(default_factory=list)

    @property
    def install_path(self) -> str:
        return os.path.join(self.install_location, self.install_folder)

    @property
    def title(self) -> str:
        return self.app.get("title") or self.install_folder


class LaunchPreferences(BaseModel):
    model_config = ConfigDict(frozen=True)

    isolate_apps: bool = False
    success_notification: bool = False


class LaunchRequest(BaseModel):
    """Everything needed for one launch attempt.

    Frozen: a retry builds a new request with ``model_copy(update=...)``
    from a freshly reloaded install record.
    """

    model_config = ConfigDict(frozen=True)

    install: InstallRecord
    manifest_action: Optional[ManifestAction] = None
    preferences: LaunchPreferences = Field(default_factory=LaunchPreferences)
    env: dict[str, str] = Field(default_factory=dict)
    args: list[str] = Field(default_factory=list)
    # Set once the single reconfigure retry has been consumed
    last_resort: bool = False


class ResolvedExecutable(BaseModel):
    path: str
    cwd: Optional[str] = None
    args: list[str] = Field(default_factory=list)
    console: bool = False
    isolate: bool = False


class SandboxCapabilityReport(BaseModel):
    """Result of a capability check. Empty ``needs`` means no consent step."""

    needs: set[str] = Field(default_factory=set)
    errors: list[str] = Field(default_factory=list)


class InstallReport(BaseModel):
    errors: list[str] = Field(default_factory=list)


class Crash(BaseModel):
    exe_path: str
    error: str


class SpawnOutcome(BaseModel):
    exit_code: Optional[int] = None
    output_tail: list[str] = Field(default_factory=list)
    cancelled: bool = False
    crash: Optional[Crash] = None


class LaunchOutcome(BaseModel):
    status: Literal["success", "crash", "cancelled", "needs_reconfiguration"]
    exe_path: Optional[str] = None
    reason: Optional[str] = None
    exit_code: Optional[int] = None
    output_tail: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status == "success"


class ModalButton(BaseModel):
    label: str
    key: str
    url: Optional[str] = None


class ModalRequest(BaseModel):
    title: str
    message: str
    detail: str = ""
    buttons: list[ModalButton] = Field(default_factory=list)


class NotificationAction(BaseModel):
    kind: Literal["open-url", "navigate"]
    url: Optional[str] = None


class Notification(BaseModel):
    body: str
    on_click: Optional[NotificationAction] = None


@dataclass
class LaunchPlan:
    """A concrete invocation, ready to hand to the spawner."""

    # Real executable; cancellation on indirect launches matches this path
    target: str
    argv: list[str]
    env: dict[str, str] = field(default_factory=dict)
    cwd: Optional[str] = None
    console: bool = False
    isolated: bool = False
    # Launched through a wrapper that execs the target out-of-tree
    indirect: bool = False


@dataclass
class IsolationContext:
    """What a sandbox backend needs to know to wrap one launch."""

    install: InstallRecord
    plan: LaunchPlan
    # Arguments for the real executable, without any wrapper
    args: list[str] = field(default_factory=list)
    app_path: str = ""

    def __post_init__(self):
        if not self.app_path:
            self.app_path = self.install.install_path


class SandboxGrant:
    """An active isolation grant for a single launch attempt.

    ``release()`` runs the revoke callback at most once, however many
    times it is called.
    """

    def __init__(
        self,
        describe: str,
        revoke: Optional[Callable[[], Awaitable[None]]] = None,
    ):
        self.describe = describe
        self._revoke = revoke
        self.released = False

    async def release(self):
        if self.released:
            return
        self.released = True
        if self._revoke is not None:
            logger.info(f"Releasing sandbox grant: {self.describe}")
            await self._revoke()

    def __repr__(self):
        return f"SandboxGrant({self.describe!r}, released={self.released})"


class CancelToken:
    """Cancellation signal passed down the launch call chain."""

    def __init__(self):
        self._event = asyncio.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self):
        await self._event.wait()
