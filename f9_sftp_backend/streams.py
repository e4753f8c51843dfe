"""Stream adapters over remote SFTP file handles.

Both adapters are ``io.RawIOBase`` subclasses, so they can be used directly,
wrapped in ``io.BufferedReader``/``io.BufferedWriter``, or used as context
managers. Each protocol call runs inside the owning filesystem's guard, which
serialises access to the shared session and discards the session after a
transport failure.

The remote handle is released on every exit path of ``close()``, including
when the final flush fails.
"""

from __future__ import annotations

import io
import logging
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from pathlib import PurePosixPath

from .compat import translate_sftp_errors
from .interfaces import RemoteIOError

logger = logging.getLogger(__name__)


class _RemoteStream(io.RawIOBase):
    """Shared handle ownership for the input and output adapters."""

    def __init__(
        self,
        handle: Any,
        path: PurePosixPath,
        *,
        guard: Callable[[], AbstractContextManager[Any]],
    ) -> None:
        super().__init__()
        self._handle = handle
        self._path = path
        self._guard = guard

    @property
    def name(self) -> str:
        """Abstract path of the remote file."""
        return str(self._path)

    def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        if self.closed:
            raise RemoteIOError.stream_closed(self._path)
        with self._guard(), translate_sftp_errors(self._path):
            return func(*args)

    def close(self) -> None:
        """Flush pending data and release the remote handle.

        Calling close more than once is a no-op.
        """
        if self.closed:
            return
        try:
            super().close()
        finally:
            with self._guard(), translate_sftp_errors(self._path):
                self._handle.close()
            logger.debug("Released remote handle for %s", self._path)


class SFTPInputStream(_RemoteStream):
    """Seekable, readable stream over a remote file handle.

    Seeking only moves the local offset; each read issues a positioned read
    against the already-open handle, so the file is never re-opened.
    """

    def __init__(
        self,
        handle: Any,
        path: PurePosixPath,
        *,
        guard: Callable[[], AbstractContextManager[Any]],
    ) -> None:
        """Wrap an open-for-read handle."""
        super().__init__(handle, path, guard=guard)
        self._position = 0

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return True

    def tell(self) -> int:
        if self.closed:
            raise RemoteIOError.stream_closed(self._path)
        return self._position

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        """Move the read offset; seeking past the end is allowed."""
        if whence == io.SEEK_SET:
            target = offset
        elif whence == io.SEEK_CUR:
            target = self.tell() + offset
        elif whence == io.SEEK_END:
            target = self._remote_length() + offset
        else:
            message = f"Invalid whence ({whence})"
            raise ValueError(message)
        if target < 0:
            message = f"Negative seek position {target}"
            raise ValueError(message)
        if self.closed:
            raise RemoteIOError.stream_closed(self._path)
        self._position = target
        return target

    def readinto(self, buffer: Any) -> int:
        """Fill ``buffer`` from the current offset.

        Returns:
            Number of bytes read, which is smaller than the buffer near the
            end of the file and zero at end of file.

        """
        view = memoryview(buffer).cast("B")
        if not len(view):
            return 0
        data = self._call(self._positioned_read, self._position, len(view))
        count = len(data)
        view[:count] = data
        self._position += count
        return count

    def _positioned_read(self, offset: int, size: int) -> bytes:
        self._handle.seek(offset)
        return self._handle.read(size)

    def _remote_length(self) -> int:
        stat_result = self._call(self._handle.stat)
        return stat_result.st_size or 0


class SFTPOutputStream(_RemoteStream):
    """Append-only writable stream over a remote file handle."""

    def __init__(
        self,
        handle: Any,
        path: PurePosixPath,
        *,
        guard: Callable[[], AbstractContextManager[Any]],
    ) -> None:
        """Wrap an open-for-write handle."""
        super().__init__(handle, path, guard=guard)
        self._written = 0

    def writable(self) -> bool:
        return True

    def tell(self) -> int:
        if self.closed:
            raise RemoteIOError.stream_closed(self._path)
        return self._written

    def write(self, data: Any) -> int:
        """Write bytes at the end of the stream and return the count."""
        payload = bytes(data)
        if payload:
            self._call(self._handle.write, payload)
        self._written += len(payload)
        return len(payload)

    def flush(self) -> None:
        if self.closed:
            return
        self._call(self._handle.flush)
