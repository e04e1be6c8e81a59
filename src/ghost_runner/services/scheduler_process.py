import asyncio
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path

from ghost_runner.services.notifications import NotificationEvent, NotificationHub

logger = logging.getLogger(__name__)

SCHEDULER_MODULE = "ghost_runner.scheduler_main"


def default_scheduler_command(python: str = sys.executable) -> list[str]:
    return [python, "-m", SCHEDULER_MODULE]


class SchedulerProcess:
    """Holder of the long-lived scheduler OS process.

    The dashboard server starts, stops and restarts the scheduler as a
    whole; its output is forwarded to observers as ``log`` notifications
    and every start and exit is announced as ``scheduler-status``.
    """

    def __init__(
        self,
        notifier: NotificationHub,
        command: Sequence[str] | None = None,
        cwd: Path | None = None,
        env: dict[str, str] | None = None,
        restart_delay: float = 1.0,
        stop_timeout: float = 5.0,
    ) -> None:
        self._notifier = notifier
        self._command = list(command) if command else default_scheduler_command()
        self._cwd = cwd
        self._env = env
        self._restart_delay = restart_delay
        self._stop_timeout = stop_timeout
        self._process: asyncio.subprocess.Process | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._lock = asyncio.Lock()

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def env(self) -> dict[str, str]:
        """Variables added to the inherited environment of the scheduler."""
        return dict(self._env or {})

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    async def start(self) -> bool:
        """Start the scheduler process.

        Returns:
            False if it was already running or could not be spawned
        """
        async with self._lock:
            if self.is_running():
                return False
            env = {**os.environ, **self._env} if self._env else None
            try:
                process = await asyncio.create_subprocess_exec(
                    *self._command,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.STDOUT,
                    cwd=self._cwd,
                    env=env,
                )
            except OSError as e:
                logger.error(f"Failed to spawn scheduler: {e}")
                await self._notifier.log(f"[Scheduler ERROR] Failed to spawn scheduler: {e}", "error")
                await self._publish_status(False)
                return False

            self._process = process
            self._watcher = asyncio.create_task(self._watch(process))

        logger.info(f"Scheduler process started (pid {process.pid})")
        await self._publish_status(True)
        return True

    async def _watch(self, process: asyncio.subprocess.Process) -> None:
        if process.stdout is not None:
            async for raw in process.stdout:
                line = raw.decode("utf-8", errors="replace").rstrip()
                if line:
                    await self._notifier.log(f"[Scheduler] {line}")
        return_code = await process.wait()

        await self._notifier.log(f"[Scheduler] process exited with code {return_code}")
        logger.info(f"Scheduler process exited with code {return_code}")
        if self._process is process:
            self._process = None
            await self._publish_status(False)

    async def stop(self) -> bool:
        """Terminate the scheduler process.

        Returns:
            False if it was not running
        """
        async with self._lock:
            process, watcher = self._process, self._watcher
            self._process = None
            self._watcher = None
            if process is None or process.returncode is not None:
                return False

            try:
                process.terminate()
            except ProcessLookupError:
                pass
            try:
                async with asyncio.timeout(self._stop_timeout):
                    await process.wait()
            except TimeoutError:
                logger.warning("Scheduler did not exit after SIGTERM, killing it")
                process.kill()
                await process.wait()
            if watcher is not None:
                await asyncio.gather(watcher, return_exceptions=True)

        await self._notifier.log("[Scheduler] Stopped.")
        await self._publish_status(False)
        return True

    async def restart(self) -> None:
        """Stop the scheduler if it is running, then start it again."""
        if self.is_running():
            await self._notifier.log("[System] Restarting scheduler to apply changes...")
            await self.stop()
            await asyncio.sleep(self._restart_delay)
        else:
            await self._notifier.log("[System] Starting scheduler to apply changes...")
        await self.start()

    async def _publish_status(self, running: bool) -> None:
        await self._notifier.publish(NotificationEvent.SCHEDULER_STATUS, {"running": running})
