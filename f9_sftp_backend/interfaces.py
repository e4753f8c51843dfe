"""Core interfaces and data structures for the SFTP filesystem adapter."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath
from typing import TYPE_CHECKING, BinaryIO, Union

if TYPE_CHECKING:
    from datetime import datetime

PathLike = Union[str, PurePath]


class FileBackendError(RuntimeError):
    """Base exception for filesystem operations."""

    def __init__(
        self,
        message: str,
        *,
        path: PathLike | None = None,
    ) -> None:
        """Initialise the base error with an optional path context."""
        path_obj = PurePosixPath(path) if path is not None else None
        detail = message if path_obj is None else ": ".join((message, str(path_obj)))
        super().__init__(detail)
        self.message = message
        self.path = path_obj


class SFTPConnectionError(FileBackendError):
    """Raised when a session cannot be established or authenticated."""

    def __init__(self, message: str, *, host: str | None = None) -> None:
        """Create a connection error scoped to a remote host."""
        super().__init__(message if host is None else f"{message} ({host})")
        self.message = message
        self.host = host

    @classmethod
    def unreachable(cls, host: str, reason: str) -> SFTPConnectionError:
        """Return an error for a host that could not be reached."""
        return cls(f"Unable to connect: {reason}", host=host)

    @classmethod
    def handshake_failed(cls, host: str, reason: str) -> SFTPConnectionError:
        """Return an error for a failed SSH or SFTP negotiation."""
        return cls(f"SSH handshake failed: {reason}", host=host)

    @classmethod
    def authentication_failed(cls, host: str, method: str) -> SFTPConnectionError:
        """Return an error for credentials rejected by the server."""
        return cls(f"Authentication rejected using {method}", host=host)

    @classmethod
    def invalid_key(cls) -> SFTPConnectionError:
        """Return an error for key material paramiko cannot parse."""
        return cls("Unsupported or malformed private key material")


class InvalidOperationError(FileBackendError):
    """Raised when a path cannot be used with the filesystem."""

    def __init__(self, message: str, *, path: PathLike | None = None) -> None:
        """Initialise an invalid operation error scoped to a path."""
        super().__init__(message, path=path)

    @classmethod
    def path_outside_root(cls, path: PathLike) -> InvalidOperationError:
        """Return an error showing the path escapes the remote root."""
        return cls("Path escapes remote root", path=path)

    @classmethod
    def empty_path_not_allowed(cls, path: PathLike) -> InvalidOperationError:
        """Return an error when an operation targets an empty path."""
        return cls("Path cannot be empty", path=path)


class RemoteIOError(FileBackendError):
    """Raised when the remote side refuses or fails an operation."""

    @classmethod
    def remote_refused(cls, path: PathLike, reason: str) -> RemoteIOError:
        """Return an error carrying the server's refusal reason."""
        return cls(f"Remote refused operation ({reason})", path=path)

    @classmethod
    def directory_not_empty(cls, path: PathLike) -> RemoteIOError:
        """Return an error indicating recursive deletion is required."""
        return cls("Directory not empty (use recursive=True)", path=path)

    @classmethod
    def filesystem_closed(cls) -> RemoteIOError:
        """Return an error for calls made after close()."""
        return cls("Filesystem is closed")

    @classmethod
    def stream_closed(cls, path: PathLike) -> RemoteIOError:
        """Return an error for I/O on a released remote handle."""
        return cls("Stream is closed", path=path)


class NotFoundError(RemoteIOError):
    """Raised when an expected file or directory is missing."""

    def __init__(self, path: PathLike, *, reason: str | None = None) -> None:
        """Create a not-found error for the provided path."""
        super().__init__(reason or "Path not found", path=path)


class AlreadyExistsError(RemoteIOError):
    """Raised when a destination that must be absent already exists."""

    def __init__(self, path: PathLike, *, reason: str | None = None) -> None:
        """Create an already-exists error with an optional reason."""
        super().__init__(reason or "Path already exists", path=path)


class NotDirectoryError(RemoteIOError):
    """Raised when a directory was required but a file was found."""

    def __init__(self, path: PathLike, *, reason: str | None = None) -> None:
        """Create a not-a-directory error for the provided path."""
        super().__init__(reason or "Path is not a directory", path=path)


class IsDirectoryError(RemoteIOError):
    """Raised when a file was required but a directory was found."""

    def __init__(self, path: PathLike, *, reason: str | None = None) -> None:
        """Create an is-a-directory error for the provided path."""
        super().__init__(reason or "Path is a directory", path=path)


class TransportError(RemoteIOError):
    """Raised when the SSH transport or SFTP channel fails mid-operation."""

    @classmethod
    def from_exception(
        cls,
        exc: BaseException,
        path: PathLike | None = None,
    ) -> TransportError:
        """Wrap a low-level transport exception."""
        reason = str(exc) or type(exc).__name__
        return cls(f"Transport failure ({reason})", path=path)


@dataclass(frozen=True)
class FileStatus:
    """Snapshot of metadata for a remote path."""

    path: PurePosixPath
    length: int
    is_dir: bool
    modified_at: datetime | None
    accessed_at: datetime | None = None
    permissions: int | None = None
    owner_uid: int | None = None
    owner_gid: int | None = None

    @property
    def name(self) -> str:
        """Final component of the path."""
        return self.path.name

    def as_dict(self) -> dict:
        """Return a JSON-serialisable representation."""
        return {
            "path": str(self.path),
            "length": self.length,
            "is_dir": self.is_dir,
            "modified_at": self.modified_at.isoformat() if self.modified_at else None,
            "accessed_at": self.accessed_at.isoformat() if self.accessed_at else None,
            "permissions": oct(self.permissions)
            if self.permissions is not None
            else None,
            "owner_uid": self.owner_uid,
            "owner_gid": self.owner_gid,
        }


class FileSystem(ABC):
    """Generic hierarchical filesystem contract.

    Paths are slash-separated abstract paths. Relative paths resolve against
    the filesystem's working directory.
    """

    @abstractmethod
    def open(self, path: PathLike) -> BinaryIO:
        """Open a file for reading.

        Args:
            path: File to read.

        Returns:
            A seekable, readable binary stream.

        Raises:
            NotFoundError: If the path does not exist.
            IsDirectoryError: If the path names a directory.

        """

    @abstractmethod
    def create(self, path: PathLike, *, overwrite: bool = True) -> BinaryIO:
        """Create or truncate a file and return a writable stream.

        Args:
            path: File to create. Missing parent directories are created.
            overwrite: Truncate an existing file when True.

        """

    @abstractmethod
    def delete(self, path: PathLike, *, recursive: bool = False) -> bool:
        """Remove a file or directory.

        Args:
            path: Target path.
            recursive: Allow deletion of non-empty directories.

        Returns:
            True if something was deleted, False if the path did not exist.

        """

    @abstractmethod
    def rename(self, src: PathLike, dst: PathLike) -> bool:
        """Rename ``src`` to ``dst``; never overwrites an existing ``dst``."""

    @abstractmethod
    def mkdirs(self, path: PathLike) -> bool:
        """Create a directory and all missing ancestors."""

    @abstractmethod
    def get_file_status(self, path: PathLike) -> FileStatus:
        """Return metadata about a path."""

    @abstractmethod
    def list_status(self, path: PathLike) -> list[FileStatus]:
        """Return the status of every immediate child of a directory."""

    @abstractmethod
    def exists(self, path: PathLike) -> bool:
        """Return True if the path exists."""

    @abstractmethod
    def close(self) -> None:
        """Release every resource held by the filesystem."""

    def __enter__(self) -> FileSystem:
        """Return the filesystem for use in a with-block."""
        return self

    def __exit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Close the filesystem when leaving a with-block."""
        self.close()
