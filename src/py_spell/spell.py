"""Spell — the process builder.

A ``Spell`` collects everything needed to start a program and then
*casts* it::

    output = Spell("echo").arg("Hello world").cast_output()
    if output is not None:
        print(output.collect_stdout(), end="")

Configuration is plain in-memory state: no system call happens until one
of the launch operations runs, and launching does not consume the
builder, so the same Spell can be cast any number of times.

The environment has three distinct states, and the difference matters:

1. **Untouched** — the child inherits our environment verbatim.
2. **Modified** — the first ``env``/``env_remove``/``get_envs`` call
   copies our environment, then applies the change.
3. **Cleared** — ``env_clear`` as the first call starts from an *empty*
   environment, so later ``env`` calls build a blank slate.

Launch operations and their stdio defaults:

- ``cast`` — returns a ``Child``; DEFAULT streams inherit ours.
- ``cast_status`` — waits, returns an ``ExitStatus``; streams inherit.
- ``cast_output`` — waits, returns an ``Output``; streams are piped.

Every launch operation returns ``None`` when the program could not be
started.
"""

from __future__ import annotations

from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from py_spell.env import Environment
from py_spell.launch import LaunchRequest, spawn
from py_spell.stdio import Stdio
from py_spell.tokenizer import split_command_line

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from py_spell.child import Child
    from py_spell.logging import Logger
    from py_spell.status import ExitStatus, Output


class Spell:
    """Fluent builder for one child process configuration."""

    def __init__(self, program: str, *, logger: Logger | None = None) -> None:
        """Start a configuration for *program*.

        Args:
            program: Program name (looked up on ``PATH``) or path.
            logger: Where to record launch events, if anywhere.

        """
        self._program = program
        self._args: list[str] = []
        self._env: Environment | None = None
        self._working_dir = Path.cwd().resolve()
        self._stdin = Stdio.DEFAULT
        self._stdout = Stdio.DEFAULT
        self._stderr = Stdio.DEFAULT
        self._logger = logger

    @classmethod
    def from_string(cls, line: str, *, logger: Logger | None = None) -> Spell:
        """Build a Spell from one shell-like command line.

        The first token is the program, the rest are arguments.  An empty
        line gives a Spell with an empty program name, which fails to
        launch like any other missing program.
        """
        tokens = split_command_line(line)
        program, *args = tokens or [""]
        return cls(program, logger=logger).args(args)

    @property
    def program(self) -> str:
        """Return the program name."""
        return self._program

    # -- Arguments ---------------------------------------------------------

    def arg(self, arg: str) -> Spell:
        """Append one argument."""
        self._args.append(arg)
        return self

    def args(self, *args: str | Iterable[str]) -> Spell:
        """Append arguments, given individually or as one iterable.

        ``spell.args("a", "b")`` and ``spell.args(["a", "b"])`` are the
        same.
        """
        for item in args:
            if isinstance(item, str):
                self._args.append(item)
            else:
                self._args.extend(item)
        return self

    def get_args(self) -> list[str]:
        """Return the argument list itself; changes affect later casts."""
        return self._args

    # -- Environment -------------------------------------------------------

    def _materialize(self) -> Environment:
        if self._env is None:
            self._env = Environment.from_os()
        return self._env

    def env(self, key: str, value: str) -> Spell:
        """Set one environment variable for the child."""
        self._materialize().set(key, value)
        return self

    def envs(self, variables: Mapping[str, str] | Iterable[tuple[str, str]]) -> Spell:
        """Set several environment variables for the child."""
        items = variables.items() if hasattr(variables, "items") else variables
        env = self._materialize()
        for key, value in items:
            env.set(key, value)
        return self

    def env_remove(self, key: str) -> Spell:
        """Remove one variable from the child's environment."""
        self._materialize().remove(key)
        return self

    def env_clear(self) -> Spell:
        """Start the child with an empty environment."""
        if self._env is None:
            self._env = Environment()
        else:
            self._env.clear()
        return self

    def get_envs(self) -> Environment:
        """Return the child's environment for editing.

        If the environment was never touched this copies ours first, so
        the Spell stops inheriting and uses the returned set from now on.
        """
        return self._materialize()

    @property
    def configured_envs(self) -> Mapping[str, str]:
        """Return a read-only view of the configured environment.

        Empty if the environment was never touched (the child will
        inherit ours).  Reading it never changes the Spell's state.
        """
        if self._env is None:
            return MappingProxyType({})
        return MappingProxyType(self._env.to_dict())

    # -- Working directory -------------------------------------------------

    def current_dir(self, path: str | Path) -> Spell:
        """Set the child's working directory.

        A relative *path* is resolved against the directory currently
        configured on this Spell, right now, not at launch time.
        """
        self._working_dir = (self._working_dir / path).resolve()
        return self

    def get_current_dir(self) -> Path:
        """Return the configured working directory (always absolute)."""
        return self._working_dir

    # -- Streams -----------------------------------------------------------

    def set_stdin(self, cfg: Stdio | str) -> Spell:
        """Set the stdin policy."""
        self._stdin = Stdio(cfg)
        return self

    def set_stdout(self, cfg: Stdio | str) -> Spell:
        """Set the stdout policy."""
        self._stdout = Stdio(cfg)
        return self

    def set_stderr(self, cfg: Stdio | str) -> Spell:
        """Set the stderr policy."""
        self._stderr = Stdio(cfg)
        return self

    # -- Running -----------------------------------------------------------

    def cast(self) -> Child | None:
        """Launch the program and return its handle, or None on failure."""
        return self._cast(Stdio.INHERIT)

    def cast_status(self) -> ExitStatus | None:
        """Launch the program, wait for it, and return its exit status."""
        child = self._cast(Stdio.INHERIT)
        if child is None:
            return None
        with child:
            return child.wait()

    def cast_output(self) -> Output | None:
        """Launch the program with piped streams and collect its output."""
        child = self._cast(Stdio.PIPED)
        if child is None:
            return None
        with child:
            return child.wait_with_output()

    def _cast(self, default: Stdio) -> Child | None:
        request = LaunchRequest(
            program=self._program,
            args=tuple(self._args),
            env=None if self._env is None else self._env.to_dict(),
            cwd=self._working_dir,
            stdin=self._stdin.resolve(default),
            stdout=self._stdout.resolve(default),
            stderr=self._stderr.resolve(default),
        )
        return spawn(request, self._logger)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Spell({self._program!r}, args={self._args!r})"
