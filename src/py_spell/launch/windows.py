"""Windows launch: one ``CreateProcess`` call with explicit std handles.

Windows has no fork.  ``CreateProcess`` builds the new process in one
step and reports failure (program not found, bad directory) directly to
the caller, so no error-report pipe is needed.

What does need care is handle inheritance.  With ``bInheritHandles``
set, the child inherits *every* inheritable handle in the parent, so:

- pipes are created non-inheritable;
- only the child's ends are re-duplicated as inheritable copies;
- those copies are closed in the parent right after the call.

Arguments travel as one command-line string, quoted the way the MS C
runtime parses it back into ``argv``.  A configured environment is
handed over as a mapping; ``_winapi`` serialises it into the
NUL-separated, double-NUL-terminated block ``CreateProcess`` expects.
"""

from __future__ import annotations

import os
import subprocess
from contextlib import ExitStack
from typing import TYPE_CHECKING

from py_spell.child import Child
from py_spell.handle import WINDOWS, Handle, PipePair, duplicate_raw
from py_spell.launch.request import child_end, parent_end
from py_spell.stdio import StdStream, Stdio, realize

if WINDOWS:
    import _winapi

if TYPE_CHECKING:
    from collections.abc import Iterable

    from py_spell.launch.request import LaunchRequest
    from py_spell.logging import Logger


def build_command_line(program: str, args: Iterable[str]) -> str:
    """Join *program* and *args* into one MS C runtime command line."""
    return subprocess.list2cmdline([program, *args])


def spawn(request: LaunchRequest, logger: Logger | None = None) -> Child:
    """Start the child described by *request*.

    Raises:
        OSError: If a pipe cannot be created or ``CreateProcess`` fails.
            Nothing is left open.

    """
    with ExitStack() as stack:
        pairs: dict[StdStream, PipePair] = {}
        inherited: dict[StdStream, Handle] = {}
        for stream in StdStream:
            pair = realize(request.policy(stream), stream)
            stack.callback(pair.close)
            pairs[stream] = pair
            end = Handle(duplicate_raw(child_end(pair, stream).fileno(), inheritable=True))
            stack.callback(end.close)
            inherited[stream] = end

        startupinfo = subprocess.STARTUPINFO()
        startupinfo.dwFlags |= _winapi.STARTF_USESTDHANDLES
        startupinfo.hStdInput = inherited[StdStream.STDIN].fileno()
        startupinfo.hStdOutput = inherited[StdStream.STDOUT].fileno()
        startupinfo.hStdError = inherited[StdStream.STDERR].fileno()

        process, thread, pid, _ = _winapi.CreateProcess(
            None,
            build_command_line(request.program, request.args),
            None,
            None,
            True,
            0,
            request.env,
            os.fspath(request.cwd),
            startupinfo,
        )
        _winapi.CloseHandle(thread)

        def keep(stream: StdStream) -> Handle:
            if request.policy(stream) is not Stdio.PIPED:
                return Handle()
            return parent_end(pairs[stream], stream).take()

        return Child(
            pid=pid,
            process=Handle(process),
            stdin=keep(StdStream.STDIN),
            stdout=keep(StdStream.STDOUT),
            stderr=keep(StdStream.STDERR),
            logger=logger,
        )
