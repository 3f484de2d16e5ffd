from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class TagError:
    kind: Literal[
        "invalid_version",
        "tag_exists",
        "fetch_failed",
        "create_failed",
        "push_failed",
    ]
    message: str
    tag: str
    hint: str | None = None


@dataclass(frozen=True, slots=True)
class DeployError:
    kind: Literal[
        "invalid_input",
        "unsupported_environment",
        "tag_failed",
        "spawn_failed",
        "timed_out",
        "cancelled",
    ]
    message: str
    hint: str | None = None
