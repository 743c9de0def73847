"""The running-process handle returned by ``Spell.cast``.

A ``Child`` is the parent's view of a launched program: its pid, the
parent ends of any piped streams, and — once observed — its exit status.

Waiting is the subtle part.  The OS hands out a child's exit status
exactly once: ``waitpid`` reaps the zombie, and on Windows the process
``HANDLE`` is closed after reading the code.  ``Child`` therefore caches
the first status it observes and answers every later ``wait()`` or
``try_wait()`` from the cache, so waiting twice is harmless.

Lifecycle::

    cast() → running ─try_wait()/wait()→ exited (status cached)
                  └──────kill()─────────┘
"""

from __future__ import annotations

import os
import signal
from typing import TYPE_CHECKING

from py_spell.handle import WINDOWS, Handle, read_to_end
from py_spell.logging import LogLevel
from py_spell.status import ExitStatus, Output

if WINDOWS:
    import _winapi

if TYPE_CHECKING:
    from types import TracebackType

    from py_spell.logging import Logger

TERMINATED_EXIT_CODE = 1
"""Exit code a Windows child reports after ``kill()``."""


class Child:
    """A launched child process, seen from the parent."""

    def __init__(
        self,
        *,
        pid: int,
        stdin: Handle,
        stdout: Handle,
        stderr: Handle,
        process: Handle | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Wrap a freshly launched child.

        Args:
            pid: The child's process id.
            stdin: Parent write end of the child's stdin (closed if not piped).
            stdout: Parent read end of the child's stdout (closed if not piped).
            stderr: Parent read end of the child's stderr (closed if not piped).
            process: Windows process HANDLE; unused on POSIX.
            logger: Where to record wait and kill events.

        """
        self._pid = pid
        self._stdin = stdin
        self._stdout = stdout
        self._stderr = stderr
        self._process = process if process is not None else Handle()
        self._logger = logger
        self._status: ExitStatus | None = None

    @property
    def pid(self) -> int:
        """Return the child's process id."""
        return self._pid

    @property
    def stdin(self) -> Handle:
        """Return the write end of the child's stdin pipe."""
        return self._stdin

    @property
    def stdout(self) -> Handle:
        """Return the read end of the child's stdout pipe."""
        return self._stdout

    @property
    def stderr(self) -> Handle:
        """Return the read end of the child's stderr pipe."""
        return self._stderr

    @property
    def status(self) -> ExitStatus | None:
        """Return the cached exit status, or None if not yet observed."""
        return self._status

    def try_wait(self) -> ExitStatus | None:
        """Return the exit status if the child has ended; never blocks."""
        if self._status is not None:
            return self._status
        status = self._poll_windows() if WINDOWS else self._poll_posix()
        if status is not None:
            self._record(status)
        return status

    def wait(self) -> ExitStatus:
        """Block until the child ends and return its exit status.

        A piped stdin is closed first: a child reading stdin until EOF
        would otherwise wait for us while we wait for it.
        """
        if self._status is not None:
            return self._status
        self._stdin.close()
        status = self._wait_windows() if WINDOWS else self._wait_posix()
        self._record(status)
        return status

    def wait_with_output(self) -> Output:
        """Collect everything the child writes, then wait for it to end.

        Piped stdout and stderr are read to end of stream while the child
        runs, so a child writing more than a pipe holds is never left
        blocked on a full pipe.  A piped stdin is closed first.
        """
        self._stdin.close()
        stdout, stderr = read_to_end(self._stdout, self._stderr)
        return Output(status=self.wait(), stdout=stdout, stderr=stderr)

    def kill(self) -> bool:
        """Forcibly terminate the child.

        Returns:
            True if the termination request reached a running child,
            False if it had already exited.

        """
        if self.try_wait() is not None:
            return False
        try:
            if WINDOWS:
                _winapi.TerminateProcess(self._process.fileno(), TERMINATED_EXIT_CODE)
            else:
                os.kill(self._pid, signal.SIGKILL)
        except OSError:
            return False
        self._log(LogLevel.INFO, "killed")
        return True

    def close(self) -> None:
        """Close the parent ends of all piped streams."""
        self._stdin.close()
        self._stdout.close()
        self._stderr.close()

    def _poll_posix(self) -> ExitStatus | None:
        try:
            pid, raw = os.waitpid(self._pid, os.WNOHANG)
        except ChildProcessError:
            # Already reaped by the OS (child termination is ignored).
            return ExitStatus(code=None)
        if pid == 0:
            return None
        return ExitStatus.from_wait_status(raw)

    def _wait_posix(self) -> ExitStatus:
        try:
            _, raw = os.waitpid(self._pid, 0)
        except ChildProcessError:
            return ExitStatus(code=None)
        return ExitStatus.from_wait_status(raw)

    def _poll_windows(self) -> ExitStatus | None:
        if _winapi.WaitForSingleObject(self._process.fileno(), 0) != _winapi.WAIT_OBJECT_0:
            return None
        return self._collect_windows()

    def _wait_windows(self) -> ExitStatus:
        _winapi.WaitForSingleObject(self._process.fileno(), _winapi.INFINITE)
        return self._collect_windows()

    def _collect_windows(self) -> ExitStatus:
        code = _winapi.GetExitCodeProcess(self._process.fileno())
        self._process.close()
        return ExitStatus(code=code)

    def _record(self, status: ExitStatus) -> None:
        self._status = status
        self._log(LogLevel.DEBUG, f"exited with {status}")

    def _log(self, level: LogLevel, message: str) -> None:
        if self._logger is not None:
            self._logger.log(level, message, source="child", pid=self._pid)

    def __enter__(self) -> Child:
        """Return self for use in a ``with`` block."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Wait for the child, then close its streams.

        Leaving on an exception kills the child first, so an interrupted
        wait is not followed by a second blocking one.
        """
        if exc_type is not None:
            self.kill()
        self.wait()
        self.close()

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        state = "running" if self._status is None else str(self._status)
        return f"Child(pid={self._pid}, {state})"
