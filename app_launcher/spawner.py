"""
Child process spawning for launched applications.

Builds a quoted command line for the host platform, starts the child,
streams its output, and reports how it exited. Cancellation is
best-effort and never blocks the caller waiting for the child to die.
"""

import asyncio
import logging
import os
import re
import signal
import subprocess
import sys
import threading
import time
from collections import deque
from typing import Callable, Optional

from .quoting import join_command, split_command
from .sandbox.base import get_current_platform
from .types import CancelToken, Crash, LaunchPlan, SpawnOutcome

logger = logging.getLogger(__name__)

# Lines longer than this are cut before they go into the output tail
MAX_LINE_LENGTH = 256
DEFAULT_TAIL_LINES = 256
POLL_INTERVAL = 0.1


def _truncate_line(line: str) -> str:
    """Truncate a line to MAX_LINE_LENGTH if it exceeds the limit."""
    if len(line) > MAX_LINE_LENGTH:
        return line[:MAX_LINE_LENGTH] + "... [truncated]"
    return line


def _kill_process_group(proc: subprocess.Popen) -> None:
    """Attempt to terminate a process and its group.

    Cross-platform best-effort. On POSIX, uses process groups. On Windows,
    tries taskkill with /T flag for tree kill.
    """
    if sys.platform.startswith("win"):
        try:
            # /F = force, /T = kill tree (children)
            subprocess.run(
                ["taskkill", "/F", "/T", "/PID", str(proc.pid)],
                capture_output=True,
                timeout=2,
                check=False,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning(f"taskkill failed for pid {proc.pid}: {e}")
        if proc.poll() is None:
            try:
                proc.kill()
            except OSError:
                pass
        return

    try:
        pgid = os.getpgid(proc.pid)
        os.killpg(pgid, signal.SIGTERM)
        time.sleep(1.0)
        if proc.poll() is None:
            os.killpg(pgid, signal.SIGKILL)
    except (OSError, ProcessLookupError):
        # Fall back to direct kill of the process
        try:
            if proc.poll() is None:
                proc.kill()
        except (OSError, ProcessLookupError):
            pass


def _kill_by_target_path(target: str, wrapper: subprocess.Popen) -> None:
    """Kill the real target of an indirect launch, matching its path.

    Killing the wrapper alone (e.g. ``open -W``) leaves the target running,
    so the wrapper is only signalled when no process matched.
    """
    logger.info(f"asked to cancel, calling pkill with {target}")
    try:
        result = subprocess.run(
            ["pkill", "-f", re.escape(target)],
            capture_output=True,
            text=True,
            check=False,
        )
        code = result.returncode
    except OSError as e:
        logger.warning(f"pkill unavailable: {e}")
        code = None

    if code != 0:
        logger.warning(
            f"Failed to kill {target} with code {code}, killing wrapper process instead"
        )
        _kill_process_group(wrapper)


class ProcessSpawner:
    """Starts launch plans as child processes and waits for them to exit."""

    def __init__(
        self,
        platform: Optional[str] = None,
        output_tail_lines: int = DEFAULT_TAIL_LINES,
        on_token: Optional[Callable[[str], None]] = None,
        on_err_token: Optional[Callable[[str], None]] = None,
    ):
        self.platform = platform or get_current_platform()
        self.output_tail_lines = output_tail_lines
        self.on_token = on_token or (lambda tok: logger.debug(f"out: {tok}"))
        self.on_err_token = on_err_token or (lambda tok: logger.debug(f"err: {tok}"))

    def build_command(self, plan: LaunchPlan) -> tuple[list[str] | str, bool]:
        """
        Turn a plan into what Popen receives.

        Returns:
            Tuple of (popen_args, inherit_std)
        """
        command_line = join_command(plan.argv, self.platform)
        logger.debug(f"spawn command: {command_line}")

        inherit_std = False
        if plan.console:
            logger.info("(in console mode)")
            if self.platform == "windows":
                inherit_std = True
                if not plan.isolated:
                    # Visible terminal that stays open after the app exits.
                    # cmd /k takes the rest of the line as-is, backslashes included
                    console_command = " ".join(f'"{arg}"' for arg in plan.argv)
                    command_line = f"cmd.exe /c start /wait cmd.exe /k {console_command}"
            else:
                logger.warning(f"console mode not supported on {self.platform}")

        if self.platform == "windows":
            return command_line, inherit_std
        return split_command(command_line, self.platform), inherit_std

    async def spawn(
        self,
        plan: LaunchPlan,
        cancel: Optional[CancelToken] = None,
    ) -> SpawnOutcome:
        """
        Spawn a plan and wait for the child to exit.

        Args:
            plan: The invocation to run
            cancel: Optional token; once cancelled the child is killed

        Returns:
            SpawnOutcome with the exit code and output tail, or a Crash

        Raises:
            OSError: if the child could not be started at all
        """
        popen_args, inherit_std = self.build_command(plan)
        cwd = plan.cwd or os.path.dirname(plan.target)
        env = {**os.environ, **plan.env}

        logger.debug(f"working directory: {cwd}")
        logger.debug(f"env keys: {sorted(plan.env)}")

        creationflags = 0
        start_new_session = False
        if self.platform == "windows":
            creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
        else:
            start_new_session = True

        pipe = None if inherit_std else subprocess.PIPE
        process = subprocess.Popen(
            popen_args,
            stdout=pipe,
            stderr=pipe,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            cwd=cwd,
            env=env,
            start_new_session=start_new_session,
            creationflags=creationflags,
        )

        tail: deque[str] = deque(maxlen=self.output_tail_lines)
        readers = []
        if not inherit_std:
            readers = [
                threading.Thread(
                    target=self._read_stream,
                    args=(process.stdout, self.on_token, tail),
                    daemon=True,
                ),
                threading.Thread(
                    target=self._read_stream,
                    args=(process.stderr, self.on_err_token, tail),
                    daemon=True,
                ),
            ]
            for reader in readers:
                reader.start()

        watcher = None
        if cancel is not None:
            watcher = asyncio.ensure_future(self._watch_cancel(cancel, process, plan))

        try:
            while process.poll() is None:
                await asyncio.sleep(POLL_INTERVAL)
        except asyncio.CancelledError:
            self._kill_in_background(process, plan)
            raise
        finally:
            if watcher is not None:
                watcher.cancel()

        for reader in readers:
            reader.join(timeout=5)
        self._close_pipes(process)

        code = process.returncode
        output_tail = list(tail)

        if cancel is not None and cancel.cancelled:
            logger.info(f"{plan.target} exited after cancellation (code {code})")
            return SpawnOutcome(exit_code=code, output_tail=output_tail, cancelled=True)

        if code != 0:
            return SpawnOutcome(
                exit_code=code,
                output_tail=output_tail,
                crash=Crash(exe_path=plan.target, error=f"process exited with code {code}"),
            )

        logger.info("child completed successfully")
        return SpawnOutcome(exit_code=code, output_tail=output_tail)

    async def _watch_cancel(
        self,
        cancel: CancelToken,
        process: subprocess.Popen,
        plan: LaunchPlan,
    ):
        await cancel.wait()
        if process.poll() is not None:
            return
        logger.info(f"cancel acknowledged for {plan.target}")
        self._kill_in_background(process, plan)

    def _kill_in_background(self, process: subprocess.Popen, plan: LaunchPlan):
        if plan.indirect:
            target, args = _kill_by_target_path, (plan.target, process)
        else:
            target, args = _kill_process_group, (process,)
        threading.Thread(
            target=target, args=args, name="launch-cancel", daemon=True
        ).start()

    @staticmethod
    def _read_stream(stream, on_token: Callable[[str], None], tail: deque):
        try:
            for line in iter(stream.readline, ""):
                line = line.rstrip("\n\r")
                tail.append(_truncate_line(line))
                on_token(line)
        except (OSError, ValueError):
            # Pipe closed underneath us after a kill
            pass

    @staticmethod
    def _close_pipes(process: subprocess.Popen):
        try:
            if process.stdout and not process.stdout.closed:
                process.stdout.close()
            if process.stderr and not process.stderr.closed:
                process.stderr.close()
        except (OSError, ValueError):
            pass
