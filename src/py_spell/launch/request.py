"""The frozen description of one launch, shared by both backends."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_spell.stdio import StdStream, Stdio

if TYPE_CHECKING:
    from pathlib import Path

    from py_spell.handle import Handle, PipePair


@dataclass(frozen=True)
class LaunchRequest:
    """Everything a backend needs to start one child.

    Stdio policies are already resolved: DEFAULT never appears here.
    ``env`` is None when the child should inherit our environment as is.
    """

    program: str
    args: tuple[str, ...]
    env: dict[str, str] | None
    cwd: Path
    stdin: Stdio
    stdout: Stdio
    stderr: Stdio

    @property
    def argv(self) -> list[str]:
        """Return the program name followed by the arguments."""
        return [self.program, *self.args]

    def policy(self, stream: StdStream) -> Stdio:
        """Return the policy configured for *stream*."""
        match stream:
            case StdStream.STDIN:
                return self.stdin
            case StdStream.STDOUT:
                return self.stdout
        return self.stderr


def child_end(pair: PipePair, stream: StdStream) -> Handle:
    """Return the end of *pair* the child uses for *stream*."""
    return pair.read_end if stream.child_reads else pair.write_end


def parent_end(pair: PipePair, stream: StdStream) -> Handle:
    """Return the end of *pair* the parent keeps for *stream*."""
    return pair.write_end if stream.child_reads else pair.read_end
