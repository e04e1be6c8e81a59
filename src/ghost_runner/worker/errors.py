"""Structured task failures.

Raising one of these from a task's ``run`` reports a FAILED event with a
specific error type and a context the failure store can fingerprint.
"""

from datetime import datetime, timezone
from typing import Any

from ghost_runner.models.events import ErrorType


class TaskError(Exception):
    """Base class for failures a task reports with structured context."""

    error_type: ErrorType = ErrorType.UNKNOWN

    def __init__(self, message: str, task_name: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.task_name = task_name
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def get_context(self) -> dict[str, Any]:
        return {}

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": type(self).__name__,
            "message": self.message,
            "errorType": self.error_type.value,
            "taskName": self.task_name,
            "timestamp": self.timestamp,
            **{k: v for k, v in self.get_context().items() if v is not None},
        }


class ElementNotFoundError(TaskError):
    """A selector did not appear within the timeout; the page has likely changed."""

    error_type = ErrorType.ELEMENT_NOT_FOUND

    def __init__(
        self,
        selector: str,
        timeout: int,
        task_name: str = "",
        page_url: str | None = None,
    ) -> None:
        message = f"Element not found: selector '{selector}' did not appear within {timeout}ms"
        if page_url:
            message += f" on {page_url}"
        super().__init__(message, task_name)
        self.selector = selector
        self.timeout = timeout
        self.page_url = page_url

    def get_context(self) -> dict[str, Any]:
        return {"selector": self.selector, "timeout": self.timeout, "pageUrl": self.page_url}


class NavigationFailureError(TaskError):
    error_type = ErrorType.NAVIGATION_FAILURE

    def __init__(
        self,
        url: str,
        task_name: str = "",
        details: str | None = None,
        response_status: int | None = None,
    ) -> None:
        message = f"Navigation failed to {url}"
        if response_status:
            message += f" (status: {response_status})"
        if details:
            message += f": {details}"
        super().__init__(message, task_name)
        self.url = url
        self.details = details
        self.response_status = response_status

    def get_context(self) -> dict[str, Any]:
        return {"url": self.url, "details": self.details, "responseStatus": self.response_status}


class TaskTimeoutError(TaskError):
    error_type = ErrorType.TIMEOUT

    def __init__(self, task_name: str, timeout: float, unit: str = "ms") -> None:
        super().__init__(f"Task '{task_name}' timed out after {timeout}{unit}", task_name)
        self.timeout = timeout
        self.unit = unit

    def get_context(self) -> dict[str, Any]:
        return {"timeout": self.timeout, "unit": self.unit}
