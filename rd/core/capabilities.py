"""Host capability detection.

rd can run on a developer machine (full access) or inside a stateless
serverless host where there is no checkout, no build directory and no way to
spawn the publish program. Components never probe the environment themselves;
they receive a ``Capabilities`` value at construction time.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

__all__ = ["Capabilities", "detect_capabilities"]

_STATELESS_MARKERS = ("VERCEL", "RD_STATELESS")


@dataclass(frozen=True, slots=True)
class Capabilities:
    """What the current host allows the release engine to touch."""

    can_access_filesystem: bool = True
    can_access_source_control: bool = True
    can_spawn_processes: bool = True

    @classmethod
    def full(cls) -> Capabilities:
        return cls()

    @classmethod
    def none(cls) -> Capabilities:
        return cls(
            can_access_filesystem=False,
            can_access_source_control=False,
            can_spawn_processes=False,
        )

    @property
    def is_local(self) -> bool:
        """True when every capability is available."""
        return (
            self.can_access_filesystem
            and self.can_access_source_control
            and self.can_spawn_processes
        )

    @property
    def environment(self) -> str:
        return "local" if self.is_local else "stateless"


def detect_capabilities(env: Mapping[str, str] | None = None) -> Capabilities:
    """Derive capabilities from environment markers.

    A host that sets ``VERCEL=1`` or ``RD_STATELESS=1`` is treated as stateless.
    """
    source = os.environ if env is None else env
    if any(source.get(name) == "1" for name in _STATELESS_MARKERS):
        return Capabilities.none()
    return Capabilities.full()
