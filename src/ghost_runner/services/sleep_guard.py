import asyncio
import logging
import os
import signal
from collections.abc import Sequence

logger = logging.getLogger(__name__)


class SleepGuard:
    """Holder of the auxiliary process that keeps the host awake.

    Best effort: if the guard command cannot be started, start() logs a
    warning and returns False, and the caller carries on without it.
    """

    def __init__(self, command: Sequence[str], stop_timeout: float = 5.0) -> None:
        self._command = list(command)
        self._stop_timeout = stop_timeout
        self._process: asyncio.subprocess.Process | None = None

    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> int | None:
        return self._process.pid if self.is_running() and self._process else None

    async def start(self) -> bool:
        if self.is_running():
            return True
        if not self._command:
            return False

        logger.info("Starting sleep guard to prevent system sleep...")
        try:
            self._process = await asyncio.create_subprocess_exec(
                *self._command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
                start_new_session=True,
            )
        except OSError as e:
            logger.warning(f"Error starting sleep guard ({self._command[0]}): {e}")
            self._process = None
            return False
        return True

    async def stop(self) -> None:
        process = self._process
        self._process = None
        if process is None or process.returncode is not None:
            return

        logger.info("Stopping sleep guard...")
        try:
            # The guard runs in its own session; signal the whole group
            os.killpg(process.pid, signal.SIGTERM)
        except (OSError, AttributeError):
            try:
                process.terminate()
            except ProcessLookupError:
                return
        try:
            async with asyncio.timeout(self._stop_timeout):
                await process.wait()
        except TimeoutError:
            logger.warning("Sleep guard did not exit, killing it")
            process.kill()
            await process.wait()
