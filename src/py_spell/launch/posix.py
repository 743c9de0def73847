"""POSIX launch: ``fork``, rewire fds 0/1/2, then ``exec``.

The hard part of fork + exec is failure reporting.  ``exec`` can only
fail *after* the fork, in the child, at which point the parent has
already been told "here is your pid".  The only signal left would be the
child's exit status, and that is indistinguishable from the target
program deliberately exiting with the same code.

So every launch opens one extra private pipe, the *error-report pipe*:

1. Parent and child both hold it after the fork.
2. The child closes the read end.  If ``exec`` fails it writes the errno
   as 4 bytes and exits with ``EXEC_FAILURE_CODE`` (127).
3. The write end is close-on-exec, so a successful ``exec`` closes it.
4. The parent closes the write end and reads: 4 bytes means the launch
   failed with that errno; end of stream means the program is running.

A 4-byte write to a pipe is atomic and nobody else holds the write end,
so the parent never sees a partial report.
"""

from __future__ import annotations

import contextlib
import errno
import fcntl
import os
import signal
import struct
from contextlib import ExitStack
from typing import TYPE_CHECKING, NoReturn

from py_spell.child import Child
from py_spell.handle import Handle, PipePair
from py_spell.launch.request import child_end, parent_end
from py_spell.stdio import StdStream, Stdio, realize

if TYPE_CHECKING:
    from py_spell.launch.request import LaunchRequest
    from py_spell.logging import Logger

EXEC_FAILURE_CODE = 127
"""Exit status of a child whose ``exec`` failed."""

ERROR_REPORT_SIZE = 4
_ERROR_REPORT = struct.Struct("!i")

# Realisation order; a failure part-way leaves earlier pairs to the ExitStack.
_STREAMS = (StdStream.STDOUT, StdStream.STDERR, StdStream.STDIN)

# Python ignores these; ignored dispositions would survive exec.
_RESTORED_SIGNALS = ("SIGPIPE", "SIGXFZ", "SIGXFSZ")


def spawn(request: LaunchRequest, logger: Logger | None = None) -> Child:
    """Start the child described by *request*.

    Raises:
        OSError: If a pipe cannot be created, the fork fails, or the child
            cannot ``exec`` the program.  Nothing is left open.

    """
    with ExitStack() as stack:
        pairs: dict[StdStream, PipePair] = {}
        for stream in _STREAMS:
            pair = realize(request.policy(stream), stream)
            stack.callback(pair.close)
            pairs[stream] = pair
        report = PipePair.create()
        stack.callback(report.close)

        pid = os.fork()
        if pid == 0:
            _exec_child(request, pairs, report)

        report.write_end.close()
        for stream, pair in pairs.items():
            child_end(pair, stream).close()

        error = _read_report(report.read_end)
        if error is not None:
            with contextlib.suppress(ChildProcessError):
                os.waitpid(pid, 0)
            raise OSError(error, os.strerror(error), request.program)

        return Child(
            pid=pid,
            stdin=_keep(request, pairs, StdStream.STDIN),
            stdout=_keep(request, pairs, StdStream.STDOUT),
            stderr=_keep(request, pairs, StdStream.STDERR),
            logger=logger,
        )


def _keep(request: LaunchRequest, pairs: dict[StdStream, PipePair], stream: StdStream) -> Handle:
    if request.policy(stream) is not Stdio.PIPED:
        return Handle()
    return parent_end(pairs[stream], stream).take()


def _read_report(handle: Handle) -> int | None:
    """Return the errno the child reported, or None if ``exec`` succeeded."""
    data = b""
    while len(data) < ERROR_REPORT_SIZE:
        chunk = os.read(handle.fileno(), ERROR_REPORT_SIZE - len(data))
        if not chunk:
            break
        data += chunk
    if not data:
        return None
    assert len(data) == ERROR_REPORT_SIZE, f"partial error report: {data!r}"
    return _ERROR_REPORT.unpack(data)[0]


def _exec_child(
    request: LaunchRequest, pairs: dict[StdStream, PipePair], report: PipePair
) -> NoReturn:
    """Run in the forked child: never returns to the caller's code."""
    report_fd = report.write_end.fileno()
    error = errno.EINVAL
    try:
        report.read_end.close()
        _replace_image(request, pairs)
    except OSError as exc:
        error = exc.errno or errno.EINVAL
    finally:
        with contextlib.suppress(OSError):
            os.write(report_fd, _ERROR_REPORT.pack(error))
        os._exit(EXEC_FAILURE_CODE)


def _replace_image(request: LaunchRequest, pairs: dict[StdStream, PipePair]) -> None:
    for stream, pair in pairs.items():
        parent_end(pair, stream).close()
    # dup2 targets 0-2, so sources must not live there.
    sources = {
        stream: _above_stdio(child_end(pair, stream).fileno()) for stream, pair in pairs.items()
    }
    for stream, fd in sources.items():
        os.dup2(fd, stream)

    for name in _RESTORED_SIGNALS:
        sig = getattr(signal, name, None)
        if sig is not None:
            signal.signal(sig, signal.SIG_DFL)

    os.chdir(request.cwd)
    if request.env is None:
        os.execvp(request.program, request.argv)
    else:
        os.execvpe(request.program, request.argv, request.env)


def _above_stdio(fd: int) -> int:
    if fd > StdStream.STDERR:
        return fd
    return fcntl.fcntl(fd, fcntl.F_DUPFD_CLOEXEC, StdStream.STDERR + 1)
