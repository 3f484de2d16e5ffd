"""Deploy event types and their wire encoding.

A run emits exactly one ``StartEvent``, any number of ``OutputEvent``s, then
exactly one terminal ``CompleteEvent`` or ``ErrorEvent``. On the wire every
event is one JSON object, either newline-delimited or framed as server-sent
events.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Literal

OutputSource = Literal["stdout", "stderr"]

_ANSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
_VERSION_RE = re.compile(r"Version:\s*(\S+)")


def strip_ansi(text: str) -> str:
    """Remove terminal colour/control sequences."""
    return _ANSI_RE.sub("", text)


def extract_reported_version(output: str) -> str | None:
    """Version the publish program printed as ``Version: <token>``, sanitised."""
    m = _VERSION_RE.search(strip_ansi(output))
    if m is None:
        return None
    return m.group(1) or None


@dataclass(frozen=True, slots=True)
class StartEvent:
    message: str

    @property
    def type(self) -> str:
        return "start"

    def to_dict(self) -> dict[str, object]:
        return {"type": "start", "message": self.message}


@dataclass(frozen=True, slots=True)
class OutputEvent:
    source: OutputSource
    data: str

    @property
    def type(self) -> str:
        return "output"

    def to_dict(self) -> dict[str, object]:
        return {"type": "output", "source": self.source, "data": self.data}


@dataclass(frozen=True, slots=True)
class CompleteEvent:
    success: bool
    exit_code: int
    platforms: tuple[str, ...]
    tag_created: bool
    resolved_version: str | None = None
    rolled_back: bool = False
    tag_error: str | None = None

    @property
    def type(self) -> str:
        return "complete"

    def to_dict(self) -> dict[str, object]:
        out: dict[str, object] = {
            "type": "complete",
            "success": self.success,
            "exitCode": self.exit_code,
            "platforms": list(self.platforms),
            "tagCreated": self.tag_created,
            "rolledBack": self.rolled_back,
        }
        if self.resolved_version is not None:
            out["resolvedVersion"] = self.resolved_version
        if self.tag_error is not None:
            out["tagError"] = self.tag_error
        return out


@dataclass(frozen=True, slots=True)
class ErrorEvent:
    message: str

    @property
    def type(self) -> str:
        return "error"

    def to_dict(self) -> dict[str, object]:
        return {"type": "error", "message": self.message}


type DeployEvent = StartEvent | OutputEvent | CompleteEvent | ErrorEvent
type TerminalEvent = CompleteEvent | ErrorEvent


def is_terminal(event: DeployEvent) -> bool:
    return isinstance(event, (CompleteEvent, ErrorEvent))


def to_json(event: DeployEvent) -> str:
    return json.dumps(event.to_dict(), ensure_ascii=False)


def to_ndjson(event: DeployEvent) -> str:
    """One event per line."""
    return to_json(event) + "\n"


def to_sse(event: DeployEvent) -> str:
    """Server-sent-events frame (``data: {...}`` followed by a blank line)."""
    return f"data: {to_json(event)}\n\n"
