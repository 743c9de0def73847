"""Process-wide handling of child termination notifications.

When a child exits, POSIX keeps a small *zombie* entry in the process
table until the parent collects the exit status with ``waitpid``.  A
program that launches children and never waits for them slowly fills
the table.

Setting the ``SIGCHLD`` disposition to ``SIG_IGN`` tells the kernel to
reap terminated children automatically, so launch-and-forget is safe.
The trade-off: the exit status is discarded, so a later ``wait()`` can
only report that the child is gone (``ExitStatus(code=None)``).

This is one of the two pieces of process-wide state in py-spell (the
other is the null device).  It is switched on once, explicitly, and
never implicitly by a launch.  Windows has no zombies, so there it only
records the request.
"""

import signal
import threading

from py_spell.handle import WINDOWS

_lock = threading.Lock()
_ignored = False


def ignore_child_termination() -> None:
    """Let the OS reap every terminated child of this process.

    Must be called from the main thread (a ``signal`` module rule).
    Calling it more than once has no further effect.
    """
    global _ignored  # noqa: PLW0603
    with _lock:
        if _ignored:
            return
        if not WINDOWS:
            signal.signal(signal.SIGCHLD, signal.SIG_IGN)
        _ignored = True


def child_termination_ignored() -> bool:
    """Return True while the OS is reaping children on our behalf."""
    return _ignored


def restore_child_termination() -> None:
    """Undo ``ignore_child_termination``; children must be waited for again."""
    global _ignored  # noqa: PLW0603
    with _lock:
        if not WINDOWS:
            signal.signal(signal.SIGCHLD, signal.SIG_DFL)
        _ignored = False
