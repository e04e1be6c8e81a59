"""Tests for the worker side of the status protocol."""

import io

import pytest

from ghost_runner import protocol
from ghost_runner.models.events import (
    Completed,
    CompletedWithData,
    ErrorType,
    Failed,
    Started,
)
from ghost_runner.worker import (
    ElementNotFoundError,
    NavigationFailureError,
    TaskReporter,
    TaskTimeoutError,
    run_task,
)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def reporter(output):
    def _reporter(task_name):
        return TaskReporter(task_name, stream=output)

    return _reporter


def decoded(output):
    return [protocol.decode(line) for line in output.getvalue().splitlines()]


class TestTaskErrors:
    """Tests for structured task errors."""

    def test_element_not_found(self):
        error = ElementNotFoundError("#submit", 5000, "login", "https://example.com")

        assert error.error_type is ErrorType.ELEMENT_NOT_FOUND
        assert str(error) == (
            "Element not found: selector '#submit' did not appear within 5000ms "
            "on https://example.com"
        )
        data = error.to_dict()
        assert data["selector"] == "#submit"
        assert data["pageUrl"] == "https://example.com"
        assert data["name"] == "ElementNotFoundError"

    def test_navigation_failure_omits_missing_fields(self):
        error = NavigationFailureError("https://example.com", "login", response_status=503)

        assert str(error) == "Navigation failed to https://example.com (status: 503)"
        data = error.to_dict()
        assert data["responseStatus"] == 503
        assert "details" not in data

    def test_timeout(self):
        error = TaskTimeoutError("login", 30, "s")

        assert error.error_type is ErrorType.TIMEOUT
        assert str(error) == "Task 'login' timed out after 30s"
        assert error.to_dict()["unit"] == "s"


class TestRunTask:
    """Tests for run_task()."""

    async def test_plain_task(self, tasks_dir, write_task, reporter, output):
        write_task("hello", "def run(context):\n    return None\n")

        code = await run_task("hello", tasks_dir, reporter("hello"))
        events = decoded(output)

        assert code == 0
        assert isinstance(events[0], Started)
        assert isinstance(events[1], Completed)
        assert events[1].duration_ms is not None

    async def test_async_task(self, tasks_dir, write_task, reporter, output):
        write_task(
            "waits",
            """
            import asyncio

            async def run(context):
                await asyncio.sleep(0)
            """,
        )

        assert await run_task("waits", tasks_dir, reporter("waits")) == 0
        assert isinstance(decoded(output)[-1], Completed)

    async def test_info_gathering_task(self, tasks_dir, write_task, reporter, output):
        write_task(
            "weather",
            """
            METADATA = {"type": "info-gathering", "category": "Weather", "ttlSeconds": 900}

            def run(context):
                return {"temp": 21}
            """,
        )

        assert await run_task("weather", tasks_dir, reporter("weather")) == 0
        event = decoded(output)[-1]

        assert isinstance(event, CompletedWithData)
        assert event.task_name == "weather"
        assert event.data == {"temp": 21}
        assert event.metadata.category == "Weather"
        assert event.metadata.ttl_seconds == 900

    async def test_task_data_return(self, tasks_dir, write_task, reporter, output):
        write_task(
            "prices",
            """
            from ghost_runner.worker import TaskData

            def run(context):
                return TaskData([{"item": "milk"}], category="Shopping", data_type="table")
            """,
        )

        assert await run_task("prices", tasks_dir, reporter("prices")) == 0
        event = decoded(output)[-1]

        assert isinstance(event, CompletedWithData)
        assert event.metadata.data_type == "table"

    async def test_structured_failure(self, tasks_dir, write_task, reporter, output):
        write_task(
            "login",
            """
            from ghost_runner.worker import ElementNotFoundError

            def run(context):
                raise ElementNotFoundError("#submit", 5000, context.task_name)
            """,
        )

        code = await run_task("login", tasks_dir, reporter("login"))
        event = decoded(output)[-1]

        assert code == 1
        assert isinstance(event, Failed)
        assert event.error_type is ErrorType.ELEMENT_NOT_FOUND
        assert event.context["selector"] == "#submit"
        assert event.error_message.startswith("Element not found")

    async def test_unexpected_exception(self, tasks_dir, write_task, reporter, output):
        write_task("oops", "def run(context):\n    raise ValueError('bad value')\n")

        code = await run_task("oops", tasks_dir, reporter("oops"))
        event = decoded(output)[-1]

        assert code == 1
        assert event.error_type is ErrorType.UNKNOWN
        assert event.context["name"] == "ValueError"
        assert "bad value" in event.context["stack"]
        assert event.error_message == "bad value"

    async def test_task_without_run(self, tasks_dir, write_task, reporter, output):
        write_task("empty", "VALUE = 1\n")

        assert await run_task("empty", tasks_dir, reporter("empty")) == 1
        assert isinstance(decoded(output)[-1], Failed)

    async def test_unknown_task(self, tasks_dir, reporter, output):
        assert await run_task("missing", tasks_dir, reporter("missing")) == 1
        assert [type(e) for e in decoded(output)] == [Failed]

    async def test_invalid_metadata_is_reported_as_failure(
        self, tasks_dir, write_task, reporter, output
    ):
        write_task(
            "odd",
            """
            METADATA = {"type": "info-gathering", "dataType": "hologram"}

            def run(context):
                return 1
            """,
        )

        assert await run_task("odd", tasks_dir, reporter("odd")) == 1
        assert isinstance(decoded(output)[-1], Failed)
