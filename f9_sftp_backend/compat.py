"""Exception translation in both directions.

Inbound, ``translate_sftp_errors`` turns paramiko and socket failures into the
package's error taxonomy at the protocol boundary. Outbound, the remaining
helpers convert that taxonomy into standard Python ``OSError`` subclasses for
code that expects built-in file exceptions.
"""

from __future__ import annotations

import builtins
import functools
from contextlib import contextmanager
from typing import TYPE_CHECKING, TypeVar

import paramiko

from .interfaces import (
    AlreadyExistsError,
    FileBackendError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
    RemoteIOError,
    SFTPConnectionError,
    TransportError,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .interfaces import FileSystem, PathLike

T = TypeVar("T")

# Raised when the SSH transport or channel is gone or the SFTP stream is garbled.
TRANSPORT_EXCEPTIONS = (
    paramiko.SSHException,
    paramiko.SFTPError,
    EOFError,
    TimeoutError,
    builtins.ConnectionError,
)


@contextmanager
def translate_sftp_errors(path: PathLike | None = None) -> Iterator[None]:
    """Translate paramiko and socket errors raised inside the block.

    Maps:
    - FileNotFoundError → NotFoundError
    - SSHException, SFTPError, EOFError, TimeoutError, ConnectionError →
      TransportError
    - any other OSError (permission denied, generic failure) → RemoteIOError

    Errors that are already part of the taxonomy pass through unchanged.
    """
    try:
        yield
    except FileBackendError:
        raise
    except FileNotFoundError as exc:
        raise NotFoundError(path if path is not None else "") from exc
    except TRANSPORT_EXCEPTIONS as exc:
        raise TransportError.from_exception(exc, path) from exc
    except OSError as exc:
        reason = exc.strerror or str(exc) or type(exc).__name__
        raise RemoteIOError.remote_refused(
            path if path is not None else "",
            reason,
        ) from exc


def translate_backend_exception(exc: FileBackendError) -> OSError:
    """Convert a FileBackendError to a standard Python OSError.

    Maps:
    - NotFoundError → FileNotFoundError
    - AlreadyExistsError → FileExistsError
    - IsDirectoryError → IsADirectoryError
    - NotDirectoryError → NotADirectoryError
    - SFTPConnectionError, TransportError → ConnectionError
    - anything else → OSError

    """
    message = str(exc)

    if isinstance(exc, NotFoundError):
        return FileNotFoundError(message)
    if isinstance(exc, AlreadyExistsError):
        return FileExistsError(message)
    if isinstance(exc, IsDirectoryError):
        return IsADirectoryError(message)
    if isinstance(exc, NotDirectoryError):
        return NotADirectoryError(message)
    if isinstance(exc, (SFTPConnectionError, TransportError)):
        return builtins.ConnectionError(message)
    return OSError(message)


@contextmanager
def translate_exceptions() -> Iterator[None]:
    """Re-raise any FileBackendError in the block as a standard OSError.

    Example:
        ```python
        with translate_exceptions():
            fs.get_file_status("missing.txt")  # Raises FileNotFoundError
        ```

    """
    try:
        yield
    except FileBackendError as exc:
        raise translate_backend_exception(exc) from exc


def translate_method(method: Callable[..., T]) -> Callable[..., T]:
    """Wrap a callable so FileBackendError surfaces as a standard OSError."""

    @functools.wraps(method)
    def wrapper(*args: object, **kwargs: object) -> T:
        with translate_exceptions():
            return method(*args, **kwargs)

    return wrapper


class CompatibleFileSystem:
    """Wrapper that translates filesystem errors into standard OSError types.

    Example:
        ```python
        fs = CompatibleFileSystem(SFTPFileSystem({"host": "files.example.com"}))
        try:
            fs.open("missing.txt")
        except FileNotFoundError:
            print("File not found!")
        ```

    """

    def __init__(self, filesystem: FileSystem) -> None:
        """Wrap a filesystem instance."""
        self._filesystem = filesystem

    def __getattr__(self, name: str) -> object:
        """Delegate to the wrapped filesystem, translating method errors."""
        attr = getattr(self._filesystem, name)
        if callable(attr):
            return translate_method(attr)
        return attr

    def __enter__(self) -> CompatibleFileSystem:
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        self.close()

    def __repr__(self) -> str:
        """Return string representation of the wrapper."""
        return f"CompatibleFileSystem({self._filesystem!r})"
