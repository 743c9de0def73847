"""Environment variables — the ``KEY=VALUE`` block handed to a child.

Every process has an environment: a set of ``KEY=VALUE`` strings it
inherited from its parent.  When launching a child we either pass our
own environment through untouched, or build an explicit one and hand
exactly that to the new program.

Key design properties:
    - **Unique keys** — setting an existing key overwrites its value in
      place rather than adding a duplicate entry.
    - **No order contract** — entries are kept in insertion order
      internally, but callers must not rely on it.
    - **Pluggable key comparison** — POSIX compares keys exactly, while
      Windows treats ``Path`` and ``PATH`` as the same variable.  The
      default follows the host platform and can be overridden.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

CASE_SENSITIVE_DEFAULT = sys.platform != "win32"
"""Key comparison policy used when none is given explicitly."""


@dataclass
class EnvVar:
    """One environment entry.

    Attributes:
        key: Variable name, with the spelling it was set with.
        value: Variable value.

    """

    key: str
    value: str

    @classmethod
    def parse(cls, data: str) -> EnvVar:
        """Split a raw ``KEY=VALUE`` string at the first ``=``."""
        key, _, value = data.partition("=")
        return cls(key=key, value=value)

    def __str__(self) -> str:
        """Format as ``KEY=VALUE``."""
        return f"{self.key}={self.value}"


class Environment:
    """A key-value store for a child's environment variables.

    Each instance is independent — modifying one does not affect any
    other, and nothing here touches ``os.environ``.
    """

    def __init__(
        self,
        initial: dict[str, str] | None = None,
        *,
        case_sensitive: bool = CASE_SENSITIVE_DEFAULT,
    ) -> None:
        """Create an environment, optionally pre-populated.

        Args:
            initial: Starting variables (copied, not referenced).
            case_sensitive: Whether ``PATH`` and ``Path`` are distinct keys.

        """
        self._case_sensitive = case_sensitive
        self._vars: dict[str, EnvVar] = {}
        for key, value in (initial or {}).items():
            self.set(key, value)

    @classmethod
    def from_os(cls, *, case_sensitive: bool = CASE_SENSITIVE_DEFAULT) -> Environment:
        """Load one entry per variable of the current process."""
        env = cls(case_sensitive=case_sensitive)
        for key, value in os.environ.items():
            env.set(key, value)
        return env

    @property
    def case_sensitive(self) -> bool:
        """Return whether keys are compared exactly."""
        return self._case_sensitive

    def _fold(self, key: str) -> str:
        return key if self._case_sensitive else key.upper()

    def get(self, key: str, default: str | None = None) -> str | None:
        """Return the value for *key*, or *default* if not set."""
        var = self._vars.get(self._fold(key))
        return default if var is None else var.value

    def set(self, key: str, value: str) -> None:
        """Set *key* to *value* (creates or overwrites)."""
        var = self._vars.get(self._fold(key))
        if var is None:
            self._vars[self._fold(key)] = EnvVar(key=key, value=value)
        else:
            var.value = value

    def remove(self, key: str) -> None:
        """Remove *key*; a missing key is ignored."""
        self._vars.pop(self._fold(key), None)

    def rename(self, key: str, new_key: str) -> None:
        """Move the value of *key* to *new_key*.

        Does nothing if *key* is not set.  If *new_key* already exists
        its old value is overwritten.
        """
        var = self._vars.pop(self._fold(key), None)
        if var is None:
            return
        var.key = new_key
        self._vars[self._fold(new_key)] = var

    def clear(self) -> None:
        """Remove every variable."""
        self._vars.clear()

    def entries(self) -> list[EnvVar]:
        """Return copies of all entries."""
        return [EnvVar(key=v.key, value=v.value) for v in self._vars.values()]

    def items(self) -> list[tuple[str, str]]:
        """Return all (key, value) pairs."""
        return [(v.key, v.value) for v in self._vars.values()]

    def to_dict(self) -> dict[str, str]:
        """Return a plain dict, the shape ``os.execve`` expects."""
        return dict(self.items())

    def copy(self) -> Environment:
        """Return an independent copy of this environment."""
        return Environment(initial=self.to_dict(), case_sensitive=self._case_sensitive)

    def __contains__(self, key: object) -> bool:
        """Return True if *key* is set."""
        return isinstance(key, str) and self._fold(key) in self._vars

    def __iter__(self) -> Iterator[str]:
        """Iterate over keys."""
        return (v.key for v in list(self._vars.values()))

    def __len__(self) -> int:
        """Return the number of variables."""
        return len(self._vars)

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Environment({len(self)} vars, case_sensitive={self._case_sensitive})"
