"""Handles and pipe pairs — OS resources with exactly one owner.

A child process talks to its parent through plain OS objects: file
descriptors on POSIX, ``HANDLE`` values on Windows.  Both are just
integers, which makes them easy to leak (nobody closes them) or to
double-close (two owners both think they should).  Closing a number that
has since been reused by someone else silently breaks unrelated code.

Key concepts:

- **Handle**: owns one raw OS id.  It is closed exactly once; closing an
  already-closed Handle does nothing.  Ownership moves with ``take()``,
  which leaves the source Handle empty, and copying is refused.
- **PipePair**: a read end and a write end created together.  Either
  both ends exist or creation fails and nothing is left open.
- **NullDevice**: one process-wide handle to ``/dev/null`` (``nul`` on
  Windows), opened lazily and shared by every ``Stdio.NULL`` stream.

Stream I/O never raises for OS failures — ``read``, ``write`` and
``read_available`` return ``None`` instead, so a broken pipe does not
take the caller's ``Child`` down with it.

A Handle dropped while it still owns its resource closes it when it is
collected and emits a ``ResourceWarning``, as unclosed file objects do.
"""

from __future__ import annotations

import atexit
import os
import selectors
import sys
import threading
import warnings
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator
    from types import TracebackType

WINDOWS = sys.platform == "win32"

if WINDOWS:
    import _winapi
    import msvcrt

READ_CHUNK = 65536
"""Largest single read issued against a pipe."""


class HandleError(Exception):
    """Raise when a handle is misused (closed, copied)."""


def _close_raw(raw: int) -> None:
    if WINDOWS:
        _winapi.CloseHandle(raw)
    else:
        os.close(raw)


def duplicate_raw(raw: int, *, inheritable: bool = False) -> int:
    """Return a new OS id referring to the same object as *raw*.

    Args:
        raw: The fd or HANDLE to duplicate.
        inheritable: Whether a spawned child may inherit the copy.

    """
    if WINDOWS:
        process = _winapi.GetCurrentProcess()
        return _winapi.DuplicateHandle(
            process, raw, process, 0, inheritable, _winapi.DUPLICATE_SAME_ACCESS
        )
    fd = os.dup(raw)
    if inheritable:
        os.set_inheritable(fd, True)
    return fd


class Handle:
    """Exclusive owner of one raw OS resource id."""

    __slots__ = ("_raw",)

    def __init__(self, raw: int | None = None) -> None:
        """Take ownership of *raw* (``None`` creates a closed handle)."""
        self._raw = raw

    @property
    def valid(self) -> bool:
        """Return True while the handle still owns its resource."""
        return self._raw is not None

    def fileno(self) -> int:
        """Return the raw id without giving up ownership.

        Raises:
            HandleError: If the handle is closed.

        """
        if self._raw is None:
            msg = "Operation on closed handle"
            raise HandleError(msg)
        return self._raw

    def take(self) -> Handle:
        """Move ownership into a new Handle, leaving this one closed."""
        raw, self._raw = self._raw, None
        return Handle(raw)

    def detach(self) -> int:
        """Give up ownership and return the raw id.

        Raises:
            HandleError: If the handle is closed.

        """
        raw = self.fileno()
        self._raw = None
        return raw

    def close(self) -> None:
        """Release the resource; closing a closed handle does nothing."""
        if self._raw is None:
            return
        raw, self._raw = self._raw, None
        _close_raw(raw)

    def read(self, size: int = READ_CHUNK) -> bytes | None:
        """Read up to *size* bytes, blocking until some arrive.

        Returns:
            The bytes read (empty at end of stream), or None on failure.

        """
        if self._raw is None:
            return None
        try:
            if WINDOWS:
                try:
                    data, _ = _winapi.ReadFile(self._raw, size)
                except BrokenPipeError:
                    return b""
                return data
            return os.read(self._raw, size)
        except OSError:
            return None

    def write(self, data: bytes) -> int | None:
        """Write *data*, returning the number of bytes accepted or None."""
        if self._raw is None:
            return None
        try:
            if WINDOWS:
                written, _ = _winapi.WriteFile(self._raw, data)
                return written
            return os.write(self._raw, data)
        except OSError:
            return None

    def read_available(self) -> bytes | None:
        """Return every byte that can be read right now without blocking.

        Stops at end of stream or when the pipe is empty, whichever comes
        first.  Returns None if the handle cannot be read.
        """
        if self._raw is None:
            return None
        raw = self._raw
        try:
            if WINDOWS:
                return b"".join(_drain_named_pipe(raw))
            blocking = os.get_blocking(raw)
            os.set_blocking(raw, False)
            try:
                return b"".join(_drain_fd(raw))
            finally:
                os.set_blocking(raw, blocking)
        except OSError:
            return None

    def __copy__(self) -> Handle:
        """Refuse to copy; two owners would close the resource twice."""
        msg = "Handles cannot be copied; use take() to move ownership"
        raise HandleError(msg)

    def __deepcopy__(self, memo: dict[int, Any]) -> Handle:
        """Refuse to copy (see ``__copy__``)."""
        return self.__copy__()

    def __enter__(self) -> Handle:
        """Return self for use in a ``with`` block."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        """Close the handle when the block exits."""
        self.close()

    def __del__(self) -> None:
        """Close a handle that is collected while still owning its resource."""
        if getattr(self, "_raw", None) is None:
            return
        warnings.warn(f"unclosed {self!r}", ResourceWarning, stacklevel=2, source=self)
        self.close()

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Handle({self._raw})" if self._raw is not None else "Handle(closed)"


class NullDevice:
    """The process-wide null device shared by every ``Stdio.NULL`` stream.

    It is opened at most once, on first use, and closed by an ``atexit``
    hook.  The device is stateless, so concurrent readers and writers
    need no coordination beyond the one-time setup.
    """

    _lock = threading.Lock()
    _fd: int | None = None

    @classmethod
    def fileno(cls) -> int:
        """Return the shared fd, opening the device on first call."""
        with cls._lock:
            if cls._fd is None:
                cls._fd = os.open(os.devnull, os.O_RDWR)
                atexit.register(cls._release)
            return cls._fd

    @classmethod
    def raw(cls) -> int:
        """Return the shared device as a native id (HANDLE on Windows)."""
        fd = cls.fileno()
        return msvcrt.get_osfhandle(fd) if WINDOWS else fd

    @classmethod
    def _release(cls) -> None:
        with cls._lock:
            if cls._fd is not None:
                os.close(cls._fd)
                cls._fd = None


@dataclass
class PipePair:
    """The two ends of one OS pipe (or two views of one stream).

    Attributes:
        read_end: Handle data is read from.
        write_end: Handle data is written to.

    """

    read_end: Handle
    write_end: Handle

    @classmethod
    def create(cls) -> PipePair:
        """Create a fresh anonymous pipe; neither end is inheritable."""
        if WINDOWS:
            read_raw, write_raw = _winapi.CreatePipe(None, 0)
        else:
            read_raw, write_raw = os.pipe()
        return cls(read_end=Handle(read_raw), write_end=Handle(write_raw))

    @classmethod
    def duplicate_of(cls, raw: int) -> PipePair:
        """Return a pair whose ends are both private copies of *raw*."""
        first = Handle(duplicate_raw(raw))
        try:
            second = Handle(duplicate_raw(raw))
        except OSError:
            first.close()
            raise
        return cls(read_end=first, write_end=second)

    @classmethod
    def null(cls) -> PipePair:
        """Return a pair connected to the shared null device."""
        return cls.duplicate_of(NullDevice.raw())

    def close(self) -> None:
        """Close whichever ends are still open."""
        self.read_end.close()
        self.write_end.close()


def read_to_end(*handles: Handle) -> list[bytes]:
    """Read every handle until end of stream, all of them at once.

    Reading the streams one after another can deadlock: a writer blocked
    on a full stderr pipe never closes the stdout we are waiting on.
    Closed handles and failed reads contribute empty bytes.

    Returns:
        One buffer per handle, in argument order.

    """
    chunks: list[list[bytes]] = [[] for _ in handles]
    live = [(i, h) for i, h in enumerate(handles) if h.valid]
    if WINDOWS:
        _read_with_threads(live, chunks)
    else:
        _read_with_selector(live, chunks)
    return [b"".join(parts) for parts in chunks]


def _read_with_selector(live: list[tuple[int, Handle]], chunks: list[list[bytes]]) -> None:
    with selectors.DefaultSelector() as selector:
        for index, handle in live:
            selector.register(handle.fileno(), selectors.EVENT_READ, (index, handle))
        while selector.get_map():
            for key, _ in selector.select():
                index, handle = key.data
                chunk = handle.read()
                if chunk:
                    chunks[index].append(chunk)
                else:
                    selector.unregister(key.fileobj)


def _read_with_threads(live: list[tuple[int, Handle]], chunks: list[list[bytes]]) -> None:
    # Anonymous pipes cannot be selected on Windows.
    def pump(index: int, handle: Handle) -> None:
        while chunk := handle.read():
            chunks[index].append(chunk)

    threads = [threading.Thread(target=pump, args=item, daemon=True) for item in live]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()


def _drain_fd(fd: int) -> Iterator[bytes]:
    while True:
        try:
            chunk = os.read(fd, READ_CHUNK)
        except BlockingIOError:
            return
        if not chunk:
            return
        yield chunk


def _drain_named_pipe(raw: int) -> Iterator[bytes]:
    while True:
        try:
            available, _ = _winapi.PeekNamedPipe(raw, 0)
            if not available:
                return
            chunk, _ = _winapi.ReadFile(raw, min(available, READ_CHUNK))
        except BrokenPipeError:
            return
        yield chunk
