"""
Interfaces to the world outside the orchestrator, plus console-based
implementations used by the command line.
"""

import asyncio
import json
import logging
import os
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Awaitable, Callable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from .types import InstallRecord, ManifestAction, ModalRequest, Notification

logger = logging.getLogger(__name__)

# (install_path, manifest_action) -> absolute executable path or None
ExecutableResolver = Callable[[str, Optional[ManifestAction]], Awaitable[Optional[str]]]
# Re-runs the configure pass for an install
Reconfigurer = Callable[[InstallRecord], Awaitable[None]]
# Reloads an install record from persistent storage
InstallReloader = Callable[[str], Awaitable[InstallRecord]]

PROCEED = "proceed"
CANCEL = "cancel"


class ModalService(ABC):
    """Presents a modal dialog and returns the key of the chosen button."""

    @abstractmethod
    async def ask(self, request: ModalRequest) -> str:
        pass


class Notifier(ABC):
    """Shows user-visible messages after a launch."""

    @abstractmethod
    def notify(self, notification: Notification) -> None:
        pass


class ConsoleModalService(ModalService):
    """Asks modal questions on a terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    async def ask(self, request: ModalRequest) -> str:
        body = Text()
        body.append(request.message + "\n", style="bold")
        if request.detail:
            body.append("\n" + request.detail + "\n", style="dim")
        for index, button in enumerate(request.buttons, start=1):
            body.append(f"\n  {index}. {button.label}", style="cyan")
            if button.url:
                body.append(f"  {button.url}", style="dim")

        self.console.print(Panel(body, title=request.title, border_style="yellow"))

        keys = [button.key for button in request.buttons]
        while True:
            try:
                response = await asyncio.to_thread(self.console.input, "Choice: ")
            except EOFError:
                return CANCEL
            response = response.strip()
            if response.isdigit() and 1 <= int(response) <= len(keys):
                return keys[int(response) - 1]
            if response in keys:
                return response
            self.console.print(f"[red]Pick a number between 1 and {len(keys)}[/red]")


class ConsoleNotifier(Notifier):
    """Prints notifications to the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def notify(self, notification: Notification) -> None:
        self.console.print(f"[bold green]🔔 {notification.body}[/bold green]")
        if notification.on_click and notification.on_click.url:
            self.console.print(f"   [dim]{notification.on_click.url}[/dim]")


class JsonInstallStore:
    """Install records persisted as a single JSON file."""

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            path = Path.home() / ".app_launcher" / "installs.json"
        self.path = path

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            return json.load(f)

    def all(self) -> list[InstallRecord]:
        return [InstallRecord.model_validate(raw) for raw in self._load().values()]

    def get(self, install_id: str) -> InstallRecord:
        records = self._load()
        if install_id not in records:
            raise KeyError(f"unknown install: {install_id}")
        return InstallRecord.model_validate(records[install_id])

    def save(self, record: InstallRecord):
        records = self._load()
        records[record.id] = record.model_dump()
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(records, f, indent=2)

    async def reload(self, install_id: str) -> InstallRecord:
        return self.get(install_id)


class CandidateResolver:
    """Picks the first configured candidate that still exists on disk."""

    def __init__(self, store: JsonInstallStore):
        self.store = store

    async def __call__(
        self, install_path: str, manifest_action: Optional[ManifestAction] = None
    ) -> Optional[str]:
        for record in self.store.all():
            if os.path.normpath(record.install_path) != os.path.normpath(install_path):
                continue
            for candidate in record.candidates:
                path = os.path.join(install_path, candidate)
                if os.path.isfile(path) or path.lower().rstrip("/").endswith(".app"):
                    return path
        return None


class ScanReconfigurer:
    """Refreshes an install's candidates by scanning for executable files."""

    def __init__(self, store: JsonInstallStore):
        self.store = store

    async def __call__(self, install: InstallRecord) -> None:
        candidates = await asyncio.to_thread(self._scan, install.install_path)
        logger.info(f"reconfigured {install.id}: {len(candidates)} candidate(s)")
        self.store.save(install.model_copy(update={"candidates": candidates}))

    @staticmethod
    def _scan(root: str) -> list[str]:
        found = []
        for dirpath, dirnames, filenames in os.walk(root):
            # Skip our own generated files
            dirnames[:] = [d for d in dirnames if d != ".itch"]
            for name in filenames:
                path = os.path.join(dirpath, name)
                if name.lower().endswith((".exe", ".jar")) or (
                    # Every file passes X_OK on Windows
                    not sys.platform.startswith("win") and os.access(path, os.X_OK)
                ):
                    found.append(os.path.relpath(path, root))
        return sorted(found)
