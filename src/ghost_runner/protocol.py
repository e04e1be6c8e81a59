"""Line codec for the worker status protocol.

A worker reports lifecycle events by writing lines of the form::

    [TASK_STATUS:<STATUS>]<json>

to its standard output, where ``<STATUS>`` is one of ``STARTED``,
``COMPLETED``, ``COMPLETED_WITH_DATA`` or ``FAILED`` and ``<json>`` is a
single-line JSON object with that status's payload (an empty payload reads
as ``{}``). Every other line is an opaque log line. The worker side encodes
through :func:`encode` and the supervisor side decodes through
:func:`decode`, so the grammar lives only here.
"""

import json
import re

from pydantic import ValidationError

from ghost_runner.models.events import (
    STATUS_EVENT_TYPES,
    ParseError,
    StatusEvent,
    StatusKind,
)

STATUS_PREFIX = "[TASK_STATUS:"

_MARKER_RE = re.compile(r"\[TASK_STATUS:([A-Za-z_]*)\](.*)$")


def is_status_line(line: str) -> bool:
    """Check whether a line carries the status marker prefix."""
    return STATUS_PREFIX in line


def encode(event: StatusEvent) -> str:
    """Render a status event as a single protocol line (no trailing newline)."""
    payload = event.model_dump_json(by_alias=True, exclude_none=True)
    return f"{STATUS_PREFIX}{event.status.value}]{payload}"


def decode(line: str) -> StatusEvent | ParseError | None:
    """Decode one output line.

    Returns:
        None for an ordinary log line, the typed status event for a valid
        protocol line, or a ParseError when the line carries the marker but
        its status or payload is malformed.
    """
    if not is_status_line(line):
        return None

    match = _MARKER_RE.search(line.rstrip("\r\n"))
    if match is None:
        return ParseError(line=line, reason="unterminated status marker")

    raw_status, raw_payload = match.groups()
    try:
        kind = StatusKind(raw_status)
    except ValueError:
        return ParseError(line=line, reason=f"unknown status '{raw_status}'")

    raw_payload = raw_payload.strip()
    try:
        payload = json.loads(raw_payload) if raw_payload else {}
    except json.JSONDecodeError as e:
        return ParseError(line=line, reason=f"malformed JSON payload: {e.msg}")
    if not isinstance(payload, dict):
        return ParseError(line=line, reason="payload is not a JSON object")

    try:
        return STATUS_EVENT_TYPES[kind].model_validate(payload)  # type: ignore[return-value]
    except ValidationError as e:
        return ParseError(line=line, reason=f"invalid {kind.value} payload: {e.error_count()} error(s)")
