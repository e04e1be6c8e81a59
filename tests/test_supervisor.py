"""Tests for the WorkerSupervisor using real worker processes."""

import asyncio
import sys

import pytest

from ghost_runner.errors import WorkerSpawnError
from ghost_runner.models.events import (
    Completed,
    CompletedWithData,
    ErrorType,
    Failed,
    LogLine,
    ParseError,
    Started,
    WorkerExited,
)
from ghost_runner.models.records import TriggerKind
from ghost_runner.services import supervisor as supervisor_module
from ghost_runner.services.supervisor import WorkerSupervisor, read_line


async def collect(run):
    return [event async for event in run.events()]


def of_type(events, cls):
    return [e for e in events if isinstance(e, cls)]


class TestBuildCommand:
    """Tests for the worker command line."""

    def test_binds_task_name(self, tmp_path):
        supervisor = WorkerSupervisor(python="/usr/bin/python3", tasks_dir=tmp_path)

        command = supervisor.build_command("login")

        assert command[:3] == ["/usr/bin/python3", "-m", "ghost_runner.worker"]
        assert "--task=login" in command
        assert f"--tasks-dir={tmp_path}" in command

    def test_extra_args_are_appended(self):
        supervisor = WorkerSupervisor(python="python")

        command = supervisor.build_command("login", ["--headless"])

        assert command[-1] == "--headless"


class TestLaunch:
    """Tests for launching workers and reading their events."""

    async def test_successful_task(self, supervisor, write_task):
        write_task(
            "hello",
            """
            def run(context):
                print("hello from task", flush=True)
            """,
        )

        run = await supervisor.launch("hello", trigger=TriggerKind.CRON)
        events = await collect(run)

        assert run.handle.task_name == "hello"
        assert run.handle.trigger is TriggerKind.CRON
        assert run.handle.process_id > 0
        assert isinstance(events[0], Started)
        assert any(isinstance(e, LogLine) and e.text == "hello from task" for e in events)
        assert len(of_type(events, Completed)) == 1
        assert of_type(events, Failed) == []
        assert events[-1] == WorkerExited(return_code=0)

    async def test_events_keep_emission_order(self, supervisor, write_task):
        write_task(
            "ordered",
            """
            def run(context):
                for i in range(5):
                    print(f"step {i}", flush=True)
            """,
        )

        events = await collect(await supervisor.launch("ordered"))
        steps = [e.text for e in of_type(events, LogLine) if e.text.startswith("step")]

        assert steps == [f"step {i}" for i in range(5)]
        started = events.index(of_type(events, Started)[0])
        completed = events.index(of_type(events, Completed)[0])
        assert started < completed

    async def test_crash_after_started_synthesizes_unknown_failure(self, supervisor, write_task):
        """A worker that dies with code 1 after STARTED yields a FAILED(unknown)."""
        write_task(
            "crash",
            """
            import os

            def run(context):
                os._exit(1)
            """,
        )

        events = await collect(await supervisor.launch("crash"))
        failures = of_type(events, Failed)

        assert isinstance(events[0], Started)
        assert len(failures) == 1
        assert failures[0].error_type is ErrorType.UNKNOWN
        assert failures[0].context == {"exitCode": 1}
        assert failures[0].task_name == "crash"
        assert events[-1] == WorkerExited(return_code=1)

    async def test_reported_failure_is_not_duplicated(self, supervisor, write_task):
        write_task(
            "missing_button",
            """
            from ghost_runner.worker import ElementNotFoundError

            def run(context):
                raise ElementNotFoundError("#submit", 5000, context.task_name, "https://example.com")
            """,
        )

        events = await collect(await supervisor.launch("missing_button"))
        failures = of_type(events, Failed)

        assert len(failures) == 1
        assert failures[0].error_type is ErrorType.ELEMENT_NOT_FOUND
        assert failures[0].context["selector"] == "#submit"
        assert failures[0].context["pageUrl"] == "https://example.com"
        assert events[-1] == WorkerExited(return_code=1)

    async def test_clean_exit_without_terminal_marker_is_not_a_failure(
        self, supervisor, write_task
    ):
        write_task(
            "vanish",
            """
            import os

            def run(context):
                os._exit(0)
            """,
        )

        events = await collect(await supervisor.launch("vanish"))

        assert of_type(events, Failed) == []
        assert of_type(events, Completed) == []
        assert events[-1] == WorkerExited(return_code=0)

    async def test_stderr_lines_are_tagged(self, supervisor, write_task):
        write_task(
            "noisy",
            """
            import sys

            def run(context):
                print("something odd", file=sys.stderr, flush=True)
            """,
        )

        events = await collect(await supervisor.launch("noisy"))

        assert LogLine(text="something odd", stream="stderr") in events

    async def test_malformed_marker_is_parse_error_and_run_continues(
        self, supervisor, write_task
    ):
        write_task(
            "garbled",
            """
            def run(context):
                print('[TASK_STATUS:COMPLETED]{"taskName": ', flush=True)
            """,
        )

        events = await collect(await supervisor.launch("garbled"))
        parse_errors = of_type(events, ParseError)

        assert len(parse_errors) == 1
        assert len(of_type(events, Completed)) == 1
        assert events[-1] == WorkerExited(return_code=0)

    async def test_concurrent_launches_of_same_task(self, supervisor, write_task):
        """Launching a task twice starts two independent workers."""
        write_task(
            "slow",
            """
            import time

            def run(context):
                time.sleep(0.3)
            """,
        )

        first = await supervisor.launch("slow")
        second = await supervisor.launch("slow")
        results = await asyncio.gather(collect(first), collect(second))

        assert first.handle.process_id != second.handle.process_id
        for events in results:
            assert events[-1] == WorkerExited(return_code=0)

    async def test_spawn_failure_raises_supervisor_error(self, tasks_dir):
        supervisor = WorkerSupervisor(
            python=str(tasks_dir / "no-such-python"), tasks_dir=tasks_dir
        )

        with pytest.raises(WorkerSpawnError) as exc_info:
            await supervisor.launch("anything")

        assert exc_info.value.task_name == "anything"
        assert isinstance(exc_info.value.cause, OSError)


class TestWorkerEntryPoint:
    """Tests for the worker process itself."""

    async def test_unknown_task_exits_non_zero(self, supervisor):
        events = await collect(await supervisor.launch("does_not_exist"))

        assert of_type(events, Started) == []
        assert len(of_type(events, Failed)) == 1
        assert events[-1] == WorkerExited(return_code=1)

    async def test_runs_with_current_interpreter(self, supervisor):
        assert supervisor.build_command("a")[0] == sys.executable


class TestLongLines:
    """Tests for output lines longer than the stream limit."""

    @pytest.fixture
    def small_limit(self, monkeypatch):
        monkeypatch.setattr(supervisor_module, "STREAM_LIMIT", 1024)

    async def test_read_line_discards_oversized_lines(self):
        reader = asyncio.StreamReader(limit=16)
        reader.feed_data(b"short\n" + b"y" * 100 + b"\nafter\n" + b"z" * 50)
        reader.feed_eof()

        assert await read_line(reader) == (b"short\n", False)
        assert await read_line(reader) == (b"y" * 100, True)
        assert await read_line(reader) == (b"after\n", False)
        assert await read_line(reader) == (b"z" * 50, True)
        assert await read_line(reader) == (None, False)

    async def test_terminal_marker_after_long_line_is_kept(
        self, supervisor, write_task, small_limit
    ):
        write_task(
            "big_output",
            """
            from ghost_runner.worker import TaskData

            def run(context):
                print("x" * 4096, flush=True)
                return TaskData({"rows": 1})
            """,
        )

        events = await collect(await supervisor.launch("big_output"))
        parse_errors = of_type(events, ParseError)

        assert len(parse_errors) == 1
        assert parse_errors[0].line.startswith("xxx")
        assert len(of_type(events, CompletedWithData)) == 1
        assert events[-1] == WorkerExited(return_code=0)

    async def test_output_after_long_line_is_still_drained(
        self, supervisor, write_task, small_limit
    ):
        write_task(
            "chatty",
            """
            def run(context):
                print("x" * 4096, flush=True)
                for i in range(20000):
                    print(f"line {i}")
            """,
        )

        async with asyncio.timeout(30):
            events = await collect(await supervisor.launch("chatty"))

        lines = [e for e in of_type(events, LogLine) if e.text.startswith("line ")]
        assert len(lines) == 20000
        assert len(of_type(events, Completed)) == 1
        assert events[-1] == WorkerExited(return_code=0)
