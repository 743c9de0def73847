"""Exit statuses and collected output.

A finished child is described by *how* it ended: either it exited with a
code of its own choosing, or something (usually ``kill()``) terminated it
with a signal.  POSIX packs both cases into one ``waitpid`` integer;
``ExitStatus`` unpacks it so callers never see the raw encoding.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ExitStatus:
    """How a child process ended.

    Attributes:
        code: Exit code, or None if the child was killed by a signal or
            its status could not be observed.
        signal: Number of the signal that terminated the child, if any.

    """

    code: int | None
    signal: int | None = None

    @classmethod
    def from_wait_status(cls, raw: int) -> ExitStatus:
        """Decode a POSIX ``waitpid`` status word."""
        if os.WIFSIGNALED(raw):
            return cls(code=None, signal=os.WTERMSIG(raw))
        return cls(code=os.WEXITSTATUS(raw))

    @property
    def success(self) -> bool:
        """Return True if the child exited with code 0."""
        return self.code == 0

    def __str__(self) -> str:
        """Format as ``ExitStatus(code)`` or ``ExitStatus(signal=N)``."""
        if self.signal is not None:
            return f"ExitStatus(signal={self.signal})"
        return f"ExitStatus({self.code})"


@dataclass
class Output:
    """Everything ``cast_output`` collected from a finished child."""

    status: ExitStatus
    stdout: bytes = b""
    stderr: bytes = b""

    def collect_stdout(self, encoding: str = "utf-8") -> str:
        """Decode stdout, replacing undecodable bytes."""
        return self.stdout.decode(encoding, errors="replace")

    def collect_stderr(self, encoding: str = "utf-8") -> str:
        """Decode stderr, replacing undecodable bytes."""
        return self.stderr.decode(encoding, errors="replace")
