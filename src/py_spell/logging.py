"""Launch logging — a structured record of what happened to each child.

Starting a process is a sequence of small OS events: pipes opened, a
fork, an exec that may or may not succeed, a wait that reaps the child.
When something goes wrong (``ENOENT`` for a misspelled program, a child
killed by a signal) the caller usually wants to know *which* step failed
and for *which* pid.

- **LogLevel** — severity levels ordered for filtering (DEBUG < ERROR).
- **LogEntry** — a single structured record (level, message, source, pid,
  and the ``errno`` of a failed OS call).
- **Logger** — an append-only log with filtering and clearing.

Design choices:
    - **Opt-in** — a ``Spell`` only logs when it was given a ``Logger``,
      so the common path pays nothing.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Failures carry their errno** — a failed launch is found by
      ``failures()`` and its cause read from ``errno_name`` without
      parsing the message text.
    - **Filter returns a list, not a generator** — the log is typically
      small and callers usually want to iterate multiple times.
"""

import errno as errno_codes
from dataclasses import dataclass
from enum import IntEnum


class LogLevel(IntEnum):
    """Severity levels for log entries."""

    DEBUG = 0
    INFO = 1
    WARNING = 2
    ERROR = 3


@dataclass(frozen=True)
class LogEntry:
    """A single structured log record.

    Attributes:
        level: The severity of this event.
        message: A human-readable description of what happened.
        source: The stage that generated the event (e.g. "launch").
        pid: The child process id the event concerns (0 = none yet).
        errno: The OS error number of a failed call, or None.

    """

    level: LogLevel
    message: str
    source: str
    pid: int = 0
    errno: int | None = None

    @property
    def errno_name(self) -> str | None:
        """Return the symbolic errno (``"ENOENT"``), or None if there is none."""
        if self.errno is None:
            return None
        return errno_codes.errorcode.get(self.errno, str(self.errno))

    def __str__(self) -> str:
        """Format as ``[LEVEL] source: message``."""
        return f"[{self.level.name}] {self.source}: {self.message}"


class Logger:
    """Append-only log buffer with filtering."""

    def __init__(self) -> None:
        """Create an empty logger."""
        self._entries: list[LogEntry] = []

    @property
    def entries(self) -> list[LogEntry]:
        """Return all log entries in chronological order."""
        return list(self._entries)

    def log(
        self,
        level: LogLevel,
        message: str,
        *,
        source: str,
        pid: int = 0,
        errno: int | None = None,
    ) -> None:
        """Append a new entry to the log.

        Args:
            level: Severity of the event.
            message: Human-readable event description.
            source: Stage that generated the event.
            pid: Child process id associated with the event.
            errno: OS error number when the event is a failed call.

        """
        self._entries.append(
            LogEntry(level=level, message=message, source=source, pid=pid, errno=errno)
        )

    def filter(
        self,
        *,
        min_level: LogLevel | None = None,
        source: str | None = None,
        pid: int | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            min_level: If set, only return entries at or above this level.
            source: If set, only return entries from this source.
            pid: If set, only return entries about this child.

        Returns:
            A filtered list of log entries.

        """
        result = self._entries
        if min_level is not None:
            result = [e for e in result if e.level >= min_level]
        if source is not None:
            result = [e for e in result if e.source == source]
        if pid is not None:
            result = [e for e in result if e.pid == pid]
        return result if result is not self._entries else list(result)

    def failures(self) -> list[LogEntry]:
        """Return the entries recording a failed OS call, oldest first."""
        return [e for e in self._entries if e.errno is not None]

    def clear(self) -> None:
        """Remove all log entries."""
        self._entries.clear()
