"""Fails with navigation context when the configured page cannot be loaded."""

import os
import urllib.error
import urllib.request

from ghost_runner.worker import NavigationFailureError

URL = os.environ.get("GHOST_RUNNER_CHECK_URL", "https://example.com/")


def run(context):
    try:
        with urllib.request.urlopen(URL, timeout=30) as response:
            body = response.read(65536).decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        raise NavigationFailureError(URL, context.task_name, details=str(e.reason), response_status=e.code)
    except urllib.error.URLError as e:
        raise NavigationFailureError(URL, context.task_name, details=str(e.reason))

    if "<title>" not in body.lower():
        raise NavigationFailureError(URL, context.task_name, details="page has no title")
    context.logger.info(f"Page at {URL} loaded")
