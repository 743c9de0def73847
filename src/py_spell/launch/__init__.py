"""Launch protocol — turn a ``LaunchRequest`` into a running ``Child``.

Two backends implement the same contract:

- ``posix`` — fork + exec, with an error-report pipe so that a failed
  ``exec`` is reported synchronously.
- ``windows`` — a single ``CreateProcess`` call.

Both raise ``OSError`` on failure.  ``spawn`` here is the boundary where
that becomes the caller-facing contract: a ``Child`` or ``None``, with
the failure recorded in the logger.
"""

from __future__ import annotations

import errno
from typing import TYPE_CHECKING

from py_spell.handle import WINDOWS
from py_spell.launch.request import LaunchRequest
from py_spell.logging import LogLevel

if WINDOWS:
    from py_spell.launch import windows as _backend
else:
    from py_spell.launch import posix as _backend

if TYPE_CHECKING:
    from py_spell.child import Child
    from py_spell.logging import Logger

__all__ = ["LaunchRequest", "spawn"]


def spawn(request: LaunchRequest, logger: Logger | None = None) -> Child | None:
    """Launch *request* with the host platform's backend.

    Returns:
        The running child, or None if it could not be started.

    """
    if logger is not None:
        logger.log(LogLevel.DEBUG, f"launching {request.argv!r} in {request.cwd}", source="launch")
    try:
        child = _backend.spawn(request, logger)
    except OSError as exc:
        if logger is not None:
            code = errno.errorcode.get(exc.errno, str(exc.errno)) if exc.errno else "?"
            logger.log(
                LogLevel.WARNING,
                f"cannot launch {request.program!r}: {code} ({exc.strerror})",
                source="launch",
                errno=exc.errno,
            )
        return None
    if logger is not None:
        logger.log(LogLevel.INFO, f"launched {request.program!r}", source="launch", pid=child.pid)
    return child
