"""Command execution abstraction.

:class:`CommandExecutor` is the seam between the plugin and the operating
system.  :class:`SubprocessExecutor` runs real processes; tests substitute
a fake that records calls instead of spawning ``cargo``.

A run can be bounded by a timeout and aborted through a
:class:`threading.Event`.  In both cases the child process is killed and
the partial combined output is attached to the raised error.

Example
-------
>>> executor = SubprocessExecutor()
>>> result = executor.run("cargo", ["--version"])
>>> result.ok
True
"""
from __future__ import annotations

import logging
import subprocess
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from crates_publisher.errors import (
    CommandCancelledError,
    CommandExecutionError,
    CommandTimeoutError,
)

logger = logging.getLogger(__name__)

_POLL_INTERVAL_SECONDS = 0.1


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a completed external command.

    Attributes
    ----------
    command:
        Program name followed by its arguments.
    returncode:
        Process exit status.
    output:
        Combined stdout and stderr, decoded as UTF-8.
    cwd:
        Working directory the command ran in, or ``None`` for the
        ambient directory.
    """

    command: list[str]
    returncode: int
    output: str
    cwd: str | None = field(default=None)

    @property
    def ok(self) -> bool:
        """True when the command exited with status 0."""
        return self.returncode == 0


class CommandExecutor(ABC):
    """Abstract interface for running external commands."""

    @abstractmethod
    def run(
        self,
        name: str,
        args: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommandResult:
        """Run *name* with *args* and return its combined output.

        Parameters
        ----------
        name:
            Program to execute (looked up on ``PATH``).
        args:
            Arguments passed to the program.
        cwd:
            Working directory; ``None`` runs in the current directory.
        timeout:
            Seconds before the process is killed.
        cancel_event:
            When set by another thread, the process is killed.

        Raises
        ------
        CommandExecutionError:
            When the program cannot be started.
        CommandTimeoutError:
            When *timeout* elapses first.
        CommandCancelledError:
            When *cancel_event* is set first.
        """


class SubprocessExecutor(CommandExecutor):
    """Runs commands with :mod:`subprocess`, merging stderr into stdout."""

    def run(
        self,
        name: str,
        args: list[str],
        *,
        cwd: str | None = None,
        timeout: float | None = None,
        cancel_event: threading.Event | None = None,
    ) -> CommandResult:
        command = [name, *args]
        if cancel_event is not None and cancel_event.is_set():
            raise CommandCancelledError(f"{name} was cancelled before it started")

        try:
            process = subprocess.Popen(
                command,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as exc:
            raise CommandExecutionError(f"failed to execute {name}: {exc}") from exc

        try:
            stdout = _wait(process, name, timeout, cancel_event)
        except BaseException:
            if process.poll() is None:
                _kill(process)
            raise

        result = CommandResult(
            command=command,
            returncode=process.returncode,
            output=_decode(stdout),
            cwd=cwd,
        )
        logger.debug("%s exited with status %d", name, result.returncode)
        return result


def _wait(
    process: subprocess.Popen[bytes],
    name: str,
    timeout: float | None,
    cancel_event: threading.Event | None,
) -> bytes:
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        wait = _POLL_INTERVAL_SECONDS
        if deadline is not None:
            wait = max(0.0, min(wait, deadline - time.monotonic()))
        try:
            stdout, _ = process.communicate(timeout=wait)
            return stdout
        except subprocess.TimeoutExpired:
            if cancel_event is not None and cancel_event.is_set():
                output = _kill(process)
                raise CommandCancelledError(f"{name} was cancelled", output=output)
            if deadline is not None and time.monotonic() >= deadline:
                output = _kill(process)
                raise CommandTimeoutError(
                    f"{name} timed out after {timeout} seconds", output=output
                )


def _kill(process: subprocess.Popen[bytes]) -> str:
    process.kill()
    stdout, _ = process.communicate()
    return _decode(stdout)


def _decode(data: bytes | None) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")
