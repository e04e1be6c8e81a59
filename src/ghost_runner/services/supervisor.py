"""Launching worker processes and turning their output into typed events."""

import asyncio
import logging
import os
import sys
from collections.abc import AsyncIterator, Sequence
from datetime import datetime, timezone
from pathlib import Path

from ghost_runner import protocol
from ghost_runner.errors import WorkerSpawnError
from ghost_runner.models.events import (
    Completed,
    CompletedWithData,
    ErrorType,
    Failed,
    LogLine,
    ParseError,
    WorkerEvent,
    WorkerExited,
)
from ghost_runner.models.records import RunHandle, TriggerKind

logger = logging.getLogger(__name__)

WORKER_MODULE = "ghost_runner.worker"

# Info-gathering payloads travel on one line, so allow long lines
STREAM_LIMIT = 16 * 1024 * 1024

PREVIEW_BYTES = 120


async def read_line(stream: asyncio.StreamReader) -> tuple[bytes | None, bool]:
    """Read the next line, discarding it whole if it exceeds the stream limit.

    Returns:
        The line (None at end of stream), or a short prefix of it when it was
        too long to keep, and whether it was discarded
    """
    preview: bytes | None = None
    while True:
        try:
            line = await stream.readuntil(b"\n")
        except asyncio.IncompleteReadError as e:
            # End of stream; a last line may lack its newline
            if preview is not None:
                return preview, True
            return e.partial or None, False
        except asyncio.LimitOverrunError as e:
            # Nothing was consumed yet; drop what is buffered and keep reading
            chunk = await stream.readexactly(e.consumed)
            if preview is None:
                preview = chunk[:PREVIEW_BYTES]
            continue
        if preview is not None:
            return preview, True
        return line, False


class WorkerRun:
    """A launched worker process and the single reader of its output."""

    def __init__(self, handle: RunHandle, process: asyncio.subprocess.Process) -> None:
        self.handle = handle
        self._process = process

    @property
    def process(self) -> asyncio.subprocess.Process:
        return self._process

    async def _pump(
        self,
        stream: asyncio.StreamReader | None,
        name: str,
        queue: "asyncio.Queue[WorkerEvent | None]",
    ) -> None:
        try:
            if stream is None:
                return
            while True:
                raw, oversized = await read_line(stream)
                if raw is None:
                    break
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                if oversized:
                    logger.warning(
                        f"[Task: {self.handle.task_name}] discarded {name} line "
                        "longer than the stream limit"
                    )
                    if name == "stderr":
                        await queue.put(LogLine(text=f"{line}... (truncated)", stream="stderr"))
                    else:
                        await queue.put(ParseError(line=line, reason="line too long"))
                    continue
                if not line.strip():
                    continue
                if name == "stderr":
                    await queue.put(LogLine(text=line, stream="stderr"))
                    continue
                decoded = protocol.decode(line)
                await queue.put(decoded if decoded is not None else LogLine(text=line))
        finally:
            await queue.put(None)

    async def events(self) -> AsyncIterator[WorkerEvent]:
        """Yield the worker's events in the order it emitted them.

        Ends with a WorkerExited event. A non-zero exit without a FAILED
        marker is reported as a synthesized FAILED (unknown, with the exit
        code as context) just before it.
        """
        queue: asyncio.Queue[WorkerEvent | None] = asyncio.Queue()
        readers = [
            asyncio.create_task(self._pump(self._process.stdout, "stdout", queue)),
            asyncio.create_task(self._pump(self._process.stderr, "stderr", queue)),
        ]
        open_streams = len(readers)
        saw_terminal = False
        saw_failed = False
        try:
            while open_streams:
                event = await queue.get()
                if event is None:
                    open_streams -= 1
                    continue
                if isinstance(event, (Completed, CompletedWithData)):
                    saw_terminal = True
                elif isinstance(event, Failed):
                    saw_terminal = saw_failed = True
                yield event
            return_code = await self._process.wait()
        finally:
            for reader in readers:
                if not reader.done():
                    reader.cancel()

        task_name = self.handle.task_name
        if return_code != 0 and not saw_failed:
            logger.warning(
                f"[Task: {task_name}] exited with code {return_code} without a failure report"
            )
            yield Failed(
                task_name=task_name,
                error_type=ErrorType.UNKNOWN,
                context={"exitCode": return_code},
            )
        elif return_code == 0 and not saw_terminal:
            logger.warning(
                f"[Task: {task_name}] exited cleanly without a completion report; "
                "treating as success"
            )
        yield WorkerExited(return_code=return_code)


class WorkerSupervisor:
    """Starts one OS process per task run.

    Launches of the same task are not serialized: a second launch while a
    previous run is alive starts a second, independent worker.
    """

    def __init__(
        self,
        python: str = sys.executable,
        cwd: Path | None = None,
        tasks_dir: Path | None = None,
        env: dict[str, str] | None = None,
        worker_module: str = WORKER_MODULE,
    ) -> None:
        self._python = python
        self._cwd = cwd
        self._tasks_dir = tasks_dir
        self._env = env
        self._worker_module = worker_module

    def build_command(self, task_name: str, args: Sequence[str] = ()) -> list[str]:
        command = [self._python, "-m", self._worker_module, f"--task={task_name}"]
        if self._tasks_dir is not None:
            command.append(f"--tasks-dir={self._tasks_dir}")
        command.extend(args)
        return command

    async def launch(
        self,
        task_name: str,
        args: Sequence[str] = (),
        trigger: TriggerKind = TriggerKind.MANUAL,
    ) -> WorkerRun:
        """Start a worker for a task.

        Raises:
            WorkerSpawnError: If the process could not be started
        """
        command = self.build_command(task_name, args)
        env = {**os.environ, **self._env} if self._env else None
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self._cwd,
                env=env,
                limit=STREAM_LIMIT,
            )
        except OSError as e:
            logger.error(f"Error spawning task '{task_name}': {e}")
            raise WorkerSpawnError(task_name, e) from e

        handle = RunHandle(
            task_name=task_name,
            process_id=process.pid,
            started_at=datetime.now(timezone.utc),
            trigger=trigger,
        )
        logger.info(f"Starting task: '{task_name}' (pid {process.pid}, {trigger.value})")
        return WorkerRun(handle, process)
