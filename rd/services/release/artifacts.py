from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)


def format_size(size: int) -> str:
    """Human-readable byte count (``512 B``, ``1.5 KB``, ``2.00 GB``)."""
    if size < 1024:
        return f"{size} B"
    if size < 1024**2:
        return f"{size / 1024:.1f} KB"
    if size < 1024**3:
        return f"{size / 1024**2:.1f} MB"
    return f"{size / 1024**3:.2f} GB"


@dataclass(frozen=True, slots=True)
class BuildArtifactInfo:
    """Snapshot of one platform's build output directory."""

    exists: bool
    path: Path
    total_size_bytes: int
    file_count: int
    primary_artifact_name: str | None = None
    last_modified_at: str | None = None

    @property
    def size_formatted(self) -> str:
        return format_size(self.total_size_bytes)


def _walk_files(root: Path) -> tuple[int, int]:
    """Total size and count of regular files below ``root``; unreadable files are skipped."""
    total = 0
    count = 0

    def on_error(err: OSError) -> None:
        logger.debug("skipping unreadable path: %s", err)

    for dirpath, _dirnames, filenames in os.walk(root, onerror=on_error):
        for name in filenames:
            try:
                st = (Path(dirpath) / name).stat()
            except OSError:
                continue
            total += st.st_size
            count += 1
    return total, count


def _find_primary(root: Path, suffix: str) -> str | None:
    """First top-level entry (file or bundle directory) ending with ``suffix``."""
    if not suffix:
        return None
    try:
        names = sorted(p.name for p in root.iterdir())
    except OSError:
        return None
    for name in names:
        if name.endswith(suffix):
            return name
    return None


def _last_modified(path: Path) -> str | None:
    try:
        mtime = path.stat().st_mtime
    except OSError:
        return None
    return datetime.fromtimestamp(mtime, tz=timezone.utc).isoformat()


def inspect_artifacts(path: Path, *, artifact_suffix: str) -> BuildArtifactInfo | None:
    """Inspect a platform build directory; None if it does not exist."""
    if not path.is_dir():
        return None

    size, count = _walk_files(path)
    return BuildArtifactInfo(
        exists=True,
        path=path,
        total_size_bytes=size,
        file_count=count,
        primary_artifact_name=_find_primary(path, artifact_suffix),
        last_modified_at=_last_modified(path),
    )
