"""Standard stream redirection policies.

Each of a child's three standard streams is configured independently:

- DEFAULT — let the launch operation decide (``cast`` and
  ``cast_status`` pick INHERIT, ``cast_output`` picks PIPED).
- INHERIT — share the parent's own stream (usually the terminal).
- PIPED — connect the stream to a fresh pipe the parent can use.
- NULL — connect the stream to the null device.

Whatever the policy, it is realised as a ``PipePair`` so the launch code
only ever deals with one shape: the child gets one end, the parent keeps
(or closes) the other.
"""

from __future__ import annotations

from enum import IntEnum, StrEnum

from py_spell.handle import WINDOWS, NullDevice, PipePair

if WINDOWS:
    import _winapi


class Stdio(StrEnum):
    """Redirection policy for one standard stream."""

    DEFAULT = "default"
    INHERIT = "inherit"
    PIPED = "piped"
    NULL = "null"

    def resolve(self, default: Stdio) -> Stdio:
        """Replace DEFAULT with *default*; other policies are returned as-is."""
        return default if self is Stdio.DEFAULT else self


class StdStream(IntEnum):
    """The three standard streams, numbered as POSIX fds."""

    STDIN = 0
    STDOUT = 1
    STDERR = 2

    @property
    def child_reads(self) -> bool:
        """Return True if the child reads from this stream (stdin)."""
        return self is StdStream.STDIN


_STD_HANDLES = {
    StdStream.STDIN: -10,
    StdStream.STDOUT: -11,
    StdStream.STDERR: -12,
}


def _inherited_raw(stream: StdStream) -> int:
    if not WINDOWS:
        return int(stream)
    raw = _winapi.GetStdHandle(_STD_HANDLES[stream])
    # Detached processes (services, pythonw) have no standard handles.
    return raw if raw else NullDevice.raw()


def realize(policy: Stdio, stream: StdStream) -> PipePair:
    """Turn a resolved policy into the pipe pair backing *stream*.

    Raises:
        ValueError: If *policy* is still DEFAULT.
        OSError: If the OS refuses to create the pipe or duplicate.

    """
    match policy:
        case Stdio.INHERIT:
            return PipePair.duplicate_of(_inherited_raw(stream))
        case Stdio.PIPED:
            return PipePair.create()
        case Stdio.NULL:
            return PipePair.null()
    msg = f"Unresolved stdio policy for {stream.name}: {policy}"
    raise ValueError(msg)
