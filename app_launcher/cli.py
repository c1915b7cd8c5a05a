"""Command line entry point: ``app-launcher`` / ``python -m app_launcher``."""

import argparse
import asyncio
import logging
import signal
import uuid
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .collaborators import (
    CandidateResolver,
    ConsoleModalService,
    ConsoleNotifier,
    JsonInstallStore,
    ScanReconfigurer,
)
from .config import LauncherConfig
from .errors import LaunchError
from .orchestrator import LaunchOrchestrator
from .sandbox import get_current_platform, get_sandbox_backend
from .spawner import ProcessSpawner
from .types import CancelToken, InstallRecord, LaunchRequest, ManifestAction

logger = logging.getLogger(__name__)

console = Console()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="app-launcher",
        description="Launch installed applications, optionally sandboxed",
    )
    parser.add_argument("--config-dir", type=Path, default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    register = sub.add_parser("register", help="Record an installed application")
    register.add_argument("path", help="Install directory")
    register.add_argument("--title", default=None)
    register.add_argument("--id", dest="install_id", default=None)

    launch = sub.add_parser("launch", help="Launch an installed application")
    launch.add_argument("install_id")
    launch.add_argument("--exe", default=None, help="Path relative to the install, skips resolution")
    launch.add_argument("--isolate", action="store_true", default=None)
    launch.add_argument("--console", action="store_true")
    # Everything after the install id goes to the app
    launch.add_argument("args", nargs=argparse.REMAINDER)

    sub.add_parser("status", help="Show launcher settings and sandbox backend")

    isolation = sub.add_parser("isolation", help="Turn default app isolation on or off")
    isolation.add_argument("state", choices=["enable", "disable"])

    return parser


def _install_cancel_handler(cancel: CancelToken):
    """Ctrl-C cancels the launch instead of tearing down the launcher."""
    loop = asyncio.get_running_loop()

    def handle_sigint(*_):
        console.print("\n[yellow]🛑 Ctrl-C detected! Cancelling launch...[/yellow]")
        cancel.cancel()

    try:
        loop.add_signal_handler(signal.SIGINT, handle_sigint)
    except (NotImplementedError, RuntimeError):
        # Windows event loops have no add_signal_handler
        try:
            signal.signal(signal.SIGINT, handle_sigint)
        except (ValueError, OSError):
            pass


async def _launch(args, config: LauncherConfig, store: JsonInstallStore) -> int:
    install = store.get(args.install_id)

    manifest_action = None
    if args.exe:
        manifest_action = ManifestAction(path=args.exe, console=args.console)

    preferences = config.to_preferences()
    if args.isolate is not None:
        preferences = preferences.model_copy(update={"isolate_apps": args.isolate})

    extra_args = [a for a in args.args if a != "--"]
    request = LaunchRequest(
        install=install,
        manifest_action=manifest_action,
        preferences=preferences,
        args=extra_args,
    )

    orchestrator = LaunchOrchestrator(
        resolver=CandidateResolver(store),
        reconfigure=ScanReconfigurer(store),
        reload_install=store.reload,
        modal=ConsoleModalService(console),
        notifier=ConsoleNotifier(console),
        spawner=ProcessSpawner(
            output_tail_lines=config.output_tail_lines,
            on_token=lambda tok: console.print(tok, markup=False, highlight=False),
            on_err_token=lambda tok: console.print(tok, style="red", markup=False, highlight=False),
        ),
        java_download_url=config.java_download_url,
    )

    cancel = CancelToken()
    _install_cancel_handler(cancel)

    try:
        outcome = await orchestrator.launch(request, cancel)
    except LaunchError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        return 1

    if outcome.status == "success":
        console.print(f"[green]✓ {install.title} exited cleanly[/green]")
        return 0
    if outcome.status == "crash":
        console.print(f"[bold red]✗ {install.title} crashed: {outcome.reason}[/bold red]")
        for line in outcome.output_tail[-10:]:
            console.print(f"  {line}", style="dim", markup=False, highlight=False)
        return outcome.exit_code or 1
    console.print(f"[yellow]{install.title}: {outcome.status} ({outcome.reason})[/yellow]")
    return 0


def _status(config: LauncherConfig):
    table = Table(title="Launcher status", show_header=False)
    for key, value in config.get_status().items():
        table.add_row(key, str(value))

    platform = get_current_platform()
    table.add_row("platform", platform)
    try:
        backend = get_sandbox_backend(platform)
        table.add_row("sandbox_backend", backend.__class__.__name__)
    except LaunchError as e:
        table.add_row("sandbox_backend", f"[red]{e}[/red]")
    console.print(table)


def _register(args, store: JsonInstallStore):
    path = Path(args.path).resolve()
    record = InstallRecord(
        id=args.install_id or uuid.uuid4().hex[:8],
        install_location=str(path.parent),
        install_folder=path.name,
        app={"title": args.title or path.name},
    )
    store.save(record)
    console.print(f"[green]Registered {record.title} as {record.id}[/green]")


def main(argv: Optional[list[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    config = LauncherConfig(config_dir=args.config_dir)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO))

    store = JsonInstallStore(
        path=(args.config_dir / "installs.json") if args.config_dir else None
    )

    if args.command == "register":
        _register(args, store)
        return 0
    if args.command == "status":
        _status(config)
        return 0
    if args.command == "isolation":
        config.isolate_apps = args.state == "enable"
        state = "enabled" if config.isolate_apps else "disabled"
        console.print(f"[green]App isolation {state} by default[/green]")
        return 0

    try:
        return asyncio.run(_launch(args, config, store))
    except KeyError as e:
        console.print(f"[red]{e}[/red]")
        return 1
