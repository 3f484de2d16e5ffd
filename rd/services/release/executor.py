"""Deployment executor: tag, run the publish program, stream its output.

Sequencing for one run::

    start -> [tagging] -> running -> complete(success)
                       \          \-> rolling_back -> complete(failure)
                        \-> error (tag failed, spawn failed, timeout, cancel)

The tag is created before the publish program starts so the program can read
its own version from source control. A run only ever rolls back a tag it
created itself.

stdout and stderr are drained by two reader threads into one queue; the
consuming generator yields chunks as they arrive and emits the terminal event
once both streams reached EOF and the exit status is known, or once the
deadline passes after the process already exited. Closing the stream early
terminates the process and rolls back an owned tag.
"""

from __future__ import annotations

import codecs
import logging
import queue
import subprocess
import threading
import time
from collections.abc import Callable, Generator, Iterator, Sequence
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import IO

from rd.core.capabilities import Capabilities
from rd.core.config import ReleaseConfig
from rd.core.result import Err, Result
from rd.git.repository import Repository
from rd.platform.process import ProcessError, spawn, terminate
from rd.services.release.errors import DeployError
from rd.services.release.events import (
    CompleteEvent,
    DeployEvent,
    ErrorEvent,
    OutputEvent,
    OutputSource,
    StartEvent,
    extract_reported_version,
    is_terminal,
)
from rd.services.release.tags import RollbackOutcome, TagManager

logger = logging.getLogger(__name__)

SpawnFn = Callable[[list[str], Path], Result[subprocess.Popen[bytes], ProcessError]]

_CHUNK_SIZE = 4096
# Upper bound on how long the consumer blocks before re-checking deadline/cancel
_POLL_SECONDS = 0.1
_READER_JOIN_SECONDS = 2.0


class DeployPhase(StrEnum):
    STARTING = "starting"
    TAGGING = "tagging"
    RUNNING = "running"
    ROLLING_BACK = "rolling_back"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class DeployOptions:
    notify: bool = True
    publish_notes: bool = True


class OutputBuffer:
    """Append-only text buffer shared by the stdout and stderr producers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._chunks: list[str] = []

    def append(self, text: str) -> None:
        with self._lock:
            self._chunks.append(text)

    def text(self) -> str:
        with self._lock:
            return "".join(self._chunks)


def _default_spawn(cmd: list[str], cwd: Path) -> Result[subprocess.Popen[bytes], ProcessError]:
    return spawn(cmd, cwd)


_Chunks = queue.Queue[tuple[OutputSource, bytes | None]]


def _pump(stream: IO[bytes] | None, source: OutputSource, sink: _Chunks) -> None:
    """Forward raw chunks from one pipe to the queue, then an EOF marker."""
    try:
        if stream is None:
            return
        read = getattr(stream, "read1", stream.read)
        while True:
            chunk = read(_CHUNK_SIZE)
            if not chunk:
                break
            sink.put((source, chunk))
    except (OSError, ValueError) as e:
        # Pipe closed underneath us while the process was being terminated.
        logger.debug("%s reader stopped: %s", source, e)
    finally:
        sink.put((source, None))


class DeploymentRun:
    """State of one execute-and-stream invocation.

    Iterate the run to drive it; it can be iterated only once. ``cancel()``
    may be called from another thread and behaves like a timeout.
    """

    def __init__(
        self,
        *,
        config: ReleaseConfig,
        capabilities: Capabilities,
        tags: TagManager,
        spawn_fn: SpawnFn,
        platforms: Sequence[str],
        version: str | None,
        options: DeployOptions,
        timeout: float,
    ) -> None:
        self._config = config
        self._caps = capabilities
        self._tags = tags
        self._spawn = spawn_fn
        self._options = options
        self._timeout = timeout
        self._cancel = threading.Event()
        self._started = False
        self._closed = False

        self.selected_platforms: tuple[str, ...] = tuple(dict.fromkeys(platforms))
        self.target_version: str | None = version.strip() if version and version.strip() else None
        self.tag_owned = False
        self.rollback: RollbackOutcome | None = None
        self.exit_code: int | None = None
        self.output = OutputBuffer()
        self.phase = DeployPhase.STARTING
        self.history: list[DeployEvent] = []

    @property
    def closed(self) -> bool:
        """True once the terminal event has been delivered."""
        return self._closed

    @property
    def terminal_event(self) -> CompleteEvent | ErrorEvent | None:
        if not self.history:
            return None
        match self.history[-1]:
            case CompleteEvent() | ErrorEvent() as last:
                return last
            case _:
                return None

    def cancel(self) -> None:
        self._cancel.set()

    def command(self) -> list[str]:
        """Publish command line for the selected platforms and options."""
        publish = self._config.publish
        cmd = list(publish.command)
        if len(self.selected_platforms) == 1:
            platform = self._config.platform(self.selected_platforms[0])
            if platform is not None:
                cmd.append(platform.flag)
        if not self._options.publish_notes:
            cmd.append(publish.no_notes_flag)
        if not self._options.notify:
            cmd.append(publish.no_notify_flag)
        return cmd

    def __iter__(self) -> Generator[DeployEvent, None, None]:
        if self._started:
            raise RuntimeError("a deployment run can only be iterated once")
        self._started = True
        stream = self._stream()
        try:
            for event in stream:
                self.history.append(event)
                if is_terminal(event):
                    self._closed = True
                yield event
                if self._closed:
                    return
        finally:
            stream.close()

    # -- stream -------------------------------------------------------------

    def _stream(self) -> Iterator[DeployEvent]:
        yield StartEvent(message="Starting deployment...")

        invalid = self._validate()
        if invalid is not None:
            yield self._fail(invalid)
            return

        proc: subprocess.Popen[bytes] | None = None
        try:
            if self.target_version is not None:
                self.phase = DeployPhase.TAGGING
                tag = self._tags.tag_name(self.target_version)
                yield OutputEvent("stdout", f"Creating release tag {tag} before deployment...\n")
                ensured = self._tags.ensure_tag(self.target_version)
                if isinstance(ensured, Err):
                    e = ensured.error
                    detail = f"{e.message}: {e.hint}" if e.hint else e.message
                    yield self._fail(
                        DeployError(kind="tag_failed", message=f"Failed to create tag: {detail}")
                    )
                    return
                outcome = ensured.value
                self.tag_owned = outcome.created
                if outcome.already_existed:
                    yield OutputEvent("stdout", f"Tag {tag} already exists\n")
                else:
                    yield OutputEvent("stdout", f"Tag {tag} created and pushed\n")

            self.phase = DeployPhase.RUNNING
            cmd = self.command()
            logger.info("running publish command: %s", " ".join(cmd))
            spawned = self._spawn(cmd, self._config.repo_path)
            if isinstance(spawned, Err):
                yield from self._rollback_events()
                yield self._fail(
                    DeployError(
                        kind="spawn_failed",
                        message=f"Failed to start process: {spawned.error.detail}",
                    )
                )
                return

            proc = spawned.value
            yield from self._supervise(proc)
        finally:
            if not self._closed:
                self._abandon(proc)

    def _abandon(self, proc: subprocess.Popen[bytes] | None) -> None:
        """Clean up after a consumer that stopped iterating before the terminal event."""
        logger.warning("deployment stream abandoned in phase %s", self.phase)
        if proc is not None and proc.poll() is None:
            terminate(proc)
        # A run that already reported success keeps its tag.
        if self.phase is DeployPhase.COMPLETED:
            return
        if self.tag_owned and self.target_version is not None:
            self.rollback = self._tags.rollback(self.target_version)
            self.tag_owned = False

    def _supervise(self, proc: subprocess.Popen[bytes]) -> Iterator[DeployEvent]:
        chunks: _Chunks = queue.Queue()
        readers = [
            threading.Thread(target=_pump, args=(proc.stdout, "stdout", chunks), daemon=True),
            threading.Thread(target=_pump, args=(proc.stderr, "stderr", chunks), daemon=True),
        ]
        for reader in readers:
            reader.start()

        decoders = {
            "stdout": codecs.getincrementaldecoder("utf-8")(errors="replace"),
            "stderr": codecs.getincrementaldecoder("utf-8")(errors="replace"),
        }
        deadline = time.monotonic() + self._timeout
        open_streams = len(readers)
        code: int | None = None

        while open_streams:
            stop = self._stop_reason(deadline)
            if stop is not None:
                code = self._exited_before(proc, stop)
                if code is None:
                    yield from self._abort(proc, readers, stop)
                    return
                # Something the program started still holds its pipes; the
                # reader threads are daemons and are left to drain them.
                logger.warning(
                    "publish process exited with code %d but its output is still open; "
                    "not waiting for it",
                    code,
                )
                break
            try:
                source, chunk = chunks.get(timeout=self._wait_budget(deadline))
            except queue.Empty:
                continue
            if chunk is None:
                open_streams -= 1
                tail = decoders[source].decode(b"", final=True)
                if tail:
                    yield self._output(source, tail)
                continue
            text = decoders[source].decode(chunk)
            if text:
                yield self._output(source, text)
        else:
            for reader in readers:
                reader.join(timeout=_READER_JOIN_SECONDS)

        while code is None:
            stop = self._stop_reason(deadline)
            if stop is not None:
                code = self._exited_before(proc, stop)
                if code is None:
                    yield from self._abort(proc, readers, stop)
                    return
                break
            try:
                code = proc.wait(timeout=self._wait_budget(deadline))
            except subprocess.TimeoutExpired:
                continue

        self.exit_code = code
        yield from self._finish(code)

    @staticmethod
    def _exited_before(proc: subprocess.Popen[bytes], stop: DeployError) -> int | None:
        """Exit code of a process that finished before the deadline was noticed.

        Only a timeout yields to the real exit status; a cancel always aborts.
        """
        if stop.kind != "timed_out":
            return None
        return proc.poll()

    def _finish(self, code: int) -> Iterator[DeployEvent]:
        resolved = extract_reported_version(self.output.text()) or self.target_version
        platforms = self.selected_platforms

        if code == 0:
            self.phase = DeployPhase.COMPLETED
            logger.info("deployment succeeded (version %s)", resolved or "unknown")
            if self.target_version is not None:
                tag = self._tags.tag_name(self.target_version)
                yield OutputEvent("stdout", f"\nRelease {tag} complete!\n")
            yield CompleteEvent(
                success=True,
                exit_code=0,
                platforms=platforms,
                tag_created=self.tag_owned,
                resolved_version=resolved,
            )
            return

        logger.warning("publish process exited with code %d", code)
        yield from self._rollback_events()
        rollback = self.rollback
        self.phase = DeployPhase.FAILED
        yield CompleteEvent(
            success=False,
            exit_code=code,
            platforms=platforms,
            tag_created=False,
            resolved_version=resolved,
            rolled_back=rollback is not None and rollback.clean,
            tag_error=_rollback_error(rollback),
        )

    def _abort(
        self,
        proc: subprocess.Popen[bytes],
        readers: list[threading.Thread],
        error: DeployError,
    ) -> Iterator[DeployEvent]:
        logger.warning("%s; terminating publish process", error.message)
        terminate(proc)
        self.exit_code = proc.returncode
        for reader in readers:
            reader.join(timeout=_READER_JOIN_SECONDS)
        yield from self._rollback_events()
        yield self._fail(error)

    def _rollback_events(self) -> Iterator[DeployEvent]:
        """Roll back the tag if this run owns it, narrating progress on stderr."""
        if not self.tag_owned or self.target_version is None:
            return
        self.phase = DeployPhase.ROLLING_BACK
        tag = self._tags.tag_name(self.target_version)
        yield OutputEvent("stderr", f"\nDeployment failed. Rolling back tag {tag}...\n")
        outcome = self._tags.rollback(self.target_version)
        self.rollback = outcome
        self.tag_owned = False
        if outcome.clean:
            yield OutputEvent("stderr", f"Tag {tag} rolled back\n")
        else:
            yield OutputEvent(
                "stderr",
                f"Rollback of {tag} incomplete ({'; '.join(outcome.errors)}); delete it manually\n",
            )

    # -- helpers ------------------------------------------------------------

    def _validate(self) -> DeployError | None:
        if not self._caps.can_spawn_processes:
            return DeployError(
                kind="unsupported_environment",
                message="Deployment execution is only available in a local environment",
            )
        if self.target_version is not None and not self._caps.can_access_source_control:
            return DeployError(
                kind="unsupported_environment",
                message="Tagging requires source-control access",
            )
        if not self.selected_platforms:
            return DeployError(kind="invalid_input", message="At least one platform must be selected")
        unknown = [p for p in self.selected_platforms if self._config.platform(p) is None]
        if unknown:
            known = ", ".join(self._config.platform_names)
            return DeployError(
                kind="invalid_input",
                message=f"Unknown platform: {', '.join(unknown)}",
                hint=f"Known platforms: {known}",
            )
        return None

    def _stop_reason(self, deadline: float) -> DeployError | None:
        if self._cancel.is_set():
            return DeployError(kind="cancelled", message="Deployment cancelled")
        if time.monotonic() >= deadline:
            return DeployError(
                kind="timed_out",
                message=f"Deployment timed out after {_format_duration(self._timeout)}",
            )
        return None

    @staticmethod
    def _wait_budget(deadline: float) -> float:
        return max(0.0, min(deadline - time.monotonic(), _POLL_SECONDS))

    def _output(self, source: OutputSource, text: str) -> OutputEvent:
        self.output.append(text)
        logger.debug("[deploy %s] %s", source, text.rstrip())
        return OutputEvent(source, text)

    def _fail(self, error: DeployError) -> ErrorEvent:
        self.phase = DeployPhase.FAILED
        logger.error("deployment failed: %s", error.message)
        return ErrorEvent(message=error.message)


def _rollback_error(outcome: RollbackOutcome | None) -> str | None:
    if outcome is None or outcome.clean:
        return None
    return f"tag {outcome.tag} may still exist: {'; '.join(outcome.errors)}"


def _format_duration(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return f"{minutes} minute{'s' if minutes != 1 else ''}"
    return f"{seconds:g} seconds"


class DeploymentExecutor:
    """Builds deployment runs for the configured repository and publish program."""

    def __init__(
        self,
        config: ReleaseConfig,
        capabilities: Capabilities,
        *,
        tags: TagManager | None = None,
        spawn_fn: SpawnFn | None = None,
    ) -> None:
        self._config = config
        self._caps = capabilities
        repo_cfg = config.repository
        self._tags = tags or TagManager(
            Repository(config.repo_path),
            remote=repo_cfg.remote,
            branch=repo_cfg.branch,
            tag_prefix=repo_cfg.tag_prefix,
        )
        self._spawn = spawn_fn or _default_spawn

    def execute(
        self,
        platforms: Sequence[str],
        version: str | None = None,
        options: DeployOptions | None = None,
        *,
        timeout: float | None = None,
    ) -> DeploymentRun:
        """Prepare a run; nothing happens until the returned run is iterated."""
        return DeploymentRun(
            config=self._config,
            capabilities=self._caps,
            tags=self._tags,
            spawn_fn=self._spawn,
            platforms=platforms,
            version=version,
            options=options or DeployOptions(),
            timeout=timeout if timeout is not None else self._config.publish.timeout_seconds,
        )
