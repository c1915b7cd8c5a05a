"""
Launch orchestration: resolve, isolate if asked to, spawn, report.
"""

import asyncio
import logging
import os
import shutil
from typing import Awaitable, Optional, TypeVar

from . import classifier
from .collaborators import (
    CANCEL,
    PROCEED,
    ExecutableResolver,
    InstallReloader,
    ModalService,
    Notifier,
    Reconfigurer,
)
from .config import JAVA_DOWNLOAD_URL
from .i18n import t
from .plans import build_plan
from .sandbox import SandboxBackend, get_current_platform, get_sandbox_backend
from .spawner import ProcessSpawner
from .types import (
    CancelToken,
    IsolationContext,
    LaunchOutcome,
    LaunchRequest,
    ModalButton,
    ModalRequest,
    Notification,
    NotificationAction,
    ResolvedExecutable,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

MANIFEST_NAME = ".itch.toml"

# Archive extensions that run through an external interpreter
ARCHIVE_RUNTIMES = {
    ".jar": "java",
}

_CANCELLED = object()


class LaunchOrchestrator:
    """
    Drives one launch attempt from resolution to exit.

    All side effects outside the child process go through the injected
    collaborators; the sandbox backend is selected for the host platform
    the first time isolation is needed.
    """

    def __init__(
        self,
        resolver: ExecutableResolver,
        reconfigure: Reconfigurer,
        reload_install: InstallReloader,
        modal: ModalService,
        notifier: Notifier,
        backend: Optional[SandboxBackend] = None,
        spawner: Optional[ProcessSpawner] = None,
        platform: Optional[str] = None,
        java_download_url: str = JAVA_DOWNLOAD_URL,
        lang: str = "en",
    ):
        self.resolver = resolver
        self.reconfigure = reconfigure
        self.reload_install = reload_install
        self.modal = modal
        self.notifier = notifier
        self.platform = platform or get_current_platform()
        self.spawner = spawner or ProcessSpawner(platform=self.platform)
        self.java_download_url = java_download_url
        self.lang = lang
        self._backend = backend
        # One isolation grant per install directory at a time
        self._grant_locks: dict[str, asyncio.Lock] = {}

    def _get_backend(self) -> SandboxBackend:
        """Get or create the sandbox backend."""
        if self._backend is None:
            self._backend = get_sandbox_backend(self.platform)
            logger.info(
                f"Using sandbox backend: {self._backend.__class__.__name__} "
                f"(platform: {self._backend.get_platform()})"
            )
        return self._backend

    async def launch(
        self,
        request: LaunchRequest,
        cancel: Optional[CancelToken] = None,
    ) -> LaunchOutcome:
        """
        Launch an installed application.

        Args:
            request: What to launch and how
            cancel: Optional token the caller sets to abort the attempt

        Returns:
            LaunchOutcome: success, crash, cancelled or needs_reconfiguration

        Raises:
            NoExecutableFound: nothing to launch, even after reconfiguring
            SandboxCheckFailed: the isolation check reported errors
            SandboxInstallFailed: installing isolation failed
            UnsupportedPlatform: no launch strategy for this host
            OSError: the child process could not be started
        """
        if cancel is None:
            cancel = CancelToken()

        install = request.install
        app_path = install.install_path
        logger.info(f'install location: "{app_path}"')

        resolved = await self._resolve(request)

        if resolved is None:
            if request.last_resort:
                logger.info("no candidates after reconfiguration, giving up")
                raise classifier.no_executable(self._has_manifest(app_path))

            logger.info("reconfiguring because no candidates were found")
            await self.reconfigure(install)
            install = await self.reload_install(install.id)
            retry = request.model_copy(update={"install": install, "last_resort": True})
            return await self.launch(retry, cancel)

        if cancel.cancelled:
            return classifier.cancelled(resolved.path)

        runtime = ARCHIVE_RUNTIMES.get(os.path.splitext(resolved.path)[1].lower())
        if runtime is not None:
            substituted = self._substitute_runtime(resolved, runtime)
            if substituted is None:
                self._notify_missing_runtime(request, resolved, runtime)
                return classifier.missing_runtime(resolved.path, runtime)
            resolved = substituted

        logger.info(
            f"executing '{resolved.path}' on '{self.platform}' "
            f"with args '{' '.join(resolved.args)}'"
        )

        backend = None
        if resolved.isolate:
            backend = self._get_backend()
            proceed = await self._ensure_isolation(backend, cancel)
            if proceed is _CANCELLED:
                return classifier.cancelled(resolved.path)
            if not proceed:
                return classifier.consent_denied(resolved.path)

        plan = await build_plan(resolved, self.platform, env=request.env)
        if cancel.cancelled:
            return classifier.cancelled(resolved.path)

        if backend is not None:
            lock = self._grant_lock(install.install_path)
            if lock.locked():
                logger.info(f"waiting for another launch of {install.install_path} to end")
            acquired = await self._unless_cancelled(lock.acquire(), cancel)
            if acquired is _CANCELLED:
                return classifier.cancelled(resolved.path)
            try:
                context = IsolationContext(install=install, plan=plan, args=resolved.args)
                async with backend.within(context) as isolated_plan:
                    spawn_outcome = await self.spawner.spawn(isolated_plan, cancel)
            finally:
                lock.release()
        else:
            logger.info("no app isolation")
            spawn_outcome = await self.spawner.spawn(plan, cancel)

        outcome = classifier.classify_spawn(spawn_outcome)
        if outcome.exe_path is None:
            outcome = outcome.model_copy(update={"exe_path": plan.target})

        if outcome.ok and request.preferences.success_notification:
            self.notifier.notify(
                Notification(
                    body=t("notification.launch_ended", self.lang, title=install.title),
                    on_click=NotificationAction(kind="navigate"),
                )
            )
        return outcome

    async def _resolve(self, request: LaunchRequest) -> Optional[ResolvedExecutable]:
        app_path = request.install.install_path
        isolate = request.preferences.isolate_apps

        action = request.manifest_action
        if action is not None:
            logger.info(f"manifest action picked: {action.model_dump_json()}")
            return ResolvedExecutable(
                path=os.path.join(app_path, action.path),
                args=[*action.args, *request.args],
                console=action.console,
                # Manifest opt-in turns isolation on, never off
                isolate=isolate or action.sandbox,
            )

        logger.info("no manifest action picked")
        exe_path = await self.resolver(app_path, None)
        if not exe_path:
            return None
        return ResolvedExecutable(path=exe_path, args=list(request.args), isolate=isolate)

    def _substitute_runtime(
        self, resolved: ResolvedExecutable, runtime: str
    ) -> Optional[ResolvedExecutable]:
        """Run an archive through its interpreter, or None if the host lacks it."""
        logger.info(f"checking existence of {runtime} before launching {resolved.path}")
        runtime_path = shutil.which(runtime)
        if runtime_path is None:
            return None

        return resolved.model_copy(
            update={
                "path": runtime_path,
                "args": ["-jar", resolved.path, *resolved.args],
                "cwd": os.path.dirname(resolved.path),
            }
        )

    def _notify_missing_runtime(
        self, request: LaunchRequest, resolved: ResolvedExecutable, runtime: str
    ):
        title = request.install.title
        logger.warning(f"{runtime} not found, cannot launch {resolved.path}")
        body = "\n".join([
            t("game.install.could_not_launch", self.lang, title=title),
            t("game.install.could_not_launch.missing_jre", self.lang, title=title),
        ])
        self.notifier.notify(
            Notification(
                body=body,
                on_click=NotificationAction(kind="open-url", url=self.java_download_url),
            )
        )

    async def _ensure_isolation(self, backend: SandboxBackend, cancel: CancelToken):
        """
        Check, ask for consent if needed, and install isolation.

        Returns:
            True to proceed, False if the user declined, _CANCELLED if the
            caller cancelled while waiting
        """
        check = await self._unless_cancelled(backend.check(), cancel)
        if check is _CANCELLED:
            return _CANCELLED
        if check.errors:
            raise classifier.check_failed(check.errors)

        if not check.needs:
            return True

        logger.info(f"sandbox needs: {sorted(check.needs)}")
        response = await self._unless_cancelled(
            self.modal.ask(self._consent_request(backend)), cancel
        )
        if response is _CANCELLED:
            return _CANCELLED
        if response != PROCEED:
            logger.info("sandbox setup declined by user")
            return False

        # Install only what the check reported missing, and only after consent
        result = await self._unless_cancelled(backend.install(check.needs), cancel)
        if result is _CANCELLED:
            return _CANCELLED
        if result.errors:
            raise classifier.install_failed(result.errors)
        return True

    def _grant_lock(self, app_path: str) -> asyncio.Lock:
        key = os.path.normcase(os.path.normpath(app_path))
        if key not in self._grant_locks:
            self._grant_locks[key] = asyncio.Lock()
        return self._grant_locks[key]

    def _consent_request(self, backend: SandboxBackend) -> ModalRequest:
        platform = backend.get_platform()
        return ModalRequest(
            title=t("sandbox.setup.title", self.lang),
            message=t(f"sandbox.setup.{platform}.message", self.lang),
            detail=t(f"sandbox.setup.{platform}.detail", self.lang),
            buttons=[
                ModalButton(label=t("sandbox.setup.proceed", self.lang), key=PROCEED),
                ModalButton(
                    label=t("docs.learn_more", self.lang),
                    key="learn_more",
                    url=backend.docs_url or None,
                ),
                ModalButton(label=t("prompt.action.cancel", self.lang), key=CANCEL),
            ],
        )

    @staticmethod
    async def _unless_cancelled(awaitable: Awaitable[T], cancel: CancelToken):
        """Await something, giving up early if the token is cancelled."""
        if cancel.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            return _CANCELLED

        task = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(cancel.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task in done:
            return task.result()
        return _CANCELLED

    @staticmethod
    def _has_manifest(app_path: str) -> bool:
        return os.path.exists(os.path.join(app_path, MANIFEST_NAME))
