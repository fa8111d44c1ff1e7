"""
Debounced Maintenance.

Coalesces bursts of file system activity into one run of the project's
maintenance script (permissions fix-up followed by an optional restart).
"""

import asyncio
import logging
import os
import stat
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


@dataclass
class MaintenanceResult:
    """Outcome of one maintenance run"""
    success: bool
    script_path: Optional[Path] = None
    returncode: Optional[int] = None
    restart_returncode: Optional[int] = None
    output: str = ""
    error: Optional[str] = None
    skipped: bool = False
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if self.finished_at is None:
            self.finished_at = datetime.now()


class MaintenanceScriptRunner:
    """
    Runs `<project root>/<script name>`, then the restart command.

    The script is made executable, then run with `sh` from the project root.
    The restart command only runs after the script succeeded. Failures are
    logged and reported to the notifier; they never raise.
    """

    def __init__(
        self,
        project_root: Path,
        script_name: str = "set_permissions.sh",
        restart_command: Optional[str] = None,
        notifier: Optional[Callable[[str], None]] = None
    ):
        self.project_root = Path(project_root)
        self.script_name = script_name
        self.restart_command = restart_command
        self.notifier = notifier

    @property
    def script_path(self) -> Path:
        return self.project_root / self.script_name

    def _notify_failure(self, message: str) -> None:
        logger.error(message)
        if self.notifier:
            try:
                self.notifier(message)
            except Exception as e:
                logger.warning(f"Error in maintenance notifier: {e}")

    @staticmethod
    def ensure_executable(path: Path) -> None:
        mode = path.stat().st_mode
        wanted = mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH
        if wanted != mode:
            os.chmod(path, wanted)
            logger.debug(f"Made {path} executable")

    async def _run(self, *args: str, shell: bool = False) -> tuple:
        if shell:
            process = await asyncio.create_subprocess_shell(
                args[0],
                cwd=str(self.project_root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        else:
            process = await asyncio.create_subprocess_exec(
                *args,
                cwd=str(self.project_root),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT
            )
        stdout, _ = await process.communicate()
        return process.returncode, stdout.decode(errors='replace') if stdout else ""

    async def run(self) -> MaintenanceResult:
        """Run the maintenance script if the project has one"""
        script = self.script_path
        if not script.is_file():
            logger.debug(f"No maintenance script at {script}")
            return MaintenanceResult(success=True, skipped=True)

        try:
            self.ensure_executable(script)
            # Through sh, so scripts without an interpreter line run too
            returncode, output = await self._run("sh", str(script))
        except OSError as e:
            message = f"Error running maintenance script {script}: {e}"
            self._notify_failure(message)
            return MaintenanceResult(success=False, script_path=script, error=str(e))

        if returncode != 0:
            message = f"Maintenance script {script.name} exited with status {returncode}"
            self._notify_failure(message)
            return MaintenanceResult(
                success=False,
                script_path=script,
                returncode=returncode,
                output=output,
                error=message
            )

        result = MaintenanceResult(
            success=True,
            script_path=script,
            returncode=returncode,
            output=output
        )

        if self.restart_command:
            try:
                restart_code, restart_output = await self._run(self.restart_command, shell=True)
            except OSError as e:
                message = f"Error running restart command '{self.restart_command}': {e}"
                self._notify_failure(message)
                result.success = False
                result.error = str(e)
                return result

            result.restart_returncode = restart_code
            result.output += restart_output
            if restart_code != 0:
                message = f"Restart command '{self.restart_command}' exited with status {restart_code}"
                self._notify_failure(message)
                result.success = False
                result.error = message
                return result

        logger.info(f"Maintenance completed for {self.project_root}")
        return result


class DebouncedMaintenanceTrigger:
    """
    Single-shot delay timer around a maintenance action.

    Every `trigger()` restarts the timer. When it elapses the action runs
    once in its own task; later triggers start a new window and never
    cancel a run that has already begun, so runs from separate windows
    may overlap.
    """

    def __init__(
        self,
        action: Callable[[], Awaitable[Any]],
        delay_seconds: float = 1.0
    ):
        self.action = action
        self.delay_seconds = delay_seconds

        self._timer: Optional[asyncio.Task] = None
        self._running: Set[asyncio.Task] = set()

        self.trigger_count = 0
        self.fire_count = 0
        self.last_result: Any = None
        self.last_error: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def running_count(self) -> int:
        return len(self._running)

    def trigger(self) -> None:
        """(Re)start the debounce timer; needs a running event loop"""
        self.cancel()
        self.trigger_count += 1
        self._timer = asyncio.get_running_loop().create_task(self._wait_then_fire())

    def cancel(self) -> None:
        """Cancel the pending timer, if any"""
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None

    async def _wait_then_fire(self) -> None:
        try:
            await asyncio.sleep(self.delay_seconds)
        except asyncio.CancelledError:
            return
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.fire())
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def fire(self) -> Any:
        """Run the action now; errors are logged, never raised"""
        self.fire_count += 1
        try:
            self.last_result = await self.action()
            self.last_error = None
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"Maintenance action failed: {e}")
            return None
        return self.last_result

    async def wait_idle(self) -> None:
        """Wait for the pending timer and all runs it started"""
        while self.is_pending or self._running:
            if self.is_pending:
                # A restarted timer replaces this one; the loop picks it up
                await asyncio.wait([self._timer])
            if self._running:
                await asyncio.gather(*list(self._running), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel the pending timer and let running actions finish"""
        self.cancel()
        if self._running:
            await asyncio.gather(*list(self._running), return_exceptions=True)
