"""SFTP filesystem adapter.

This package presents a remote host reachable over SFTP as a regular
hierarchical filesystem. Filesystem operations are translated into SFTP
protocol calls over an authenticated paramiko session, and SFTP failures are
translated back into a small, typed error taxonomy.

Core Components:
    - FileSystem: Abstract interface the adapter implements
    - SFTPFileSystem: Facade owning one lazily opened SFTP session
    - SessionProvider: Opens and authenticates SSH/SFTP sessions
    - PathTranslator: Maps abstract paths to remote paths and back
    - resolve_filesystem: Builds (and caches) filesystems from sftp:// URIs

Quick Start:

    >>> from f9_sftp_backend import resolve_filesystem
    >>> fs = resolve_filesystem("sftp://deploy:pw@files.example.com")
    >>> with fs.create("reports/today.txt") as out:
    ...     out.write(b"yaks")
    >>> fs.get_file_status("reports/today.txt").length
    4
    >>> fs.close()

Exception Handling:

    >>> from f9_sftp_backend import NotFoundError, RemoteIOError
    >>> try:
    ...     fs.rename("a.txt", "b.txt")
    ... except NotFoundError:
    ...     print("source missing")
    ... except RemoteIOError:
    ...     print("refused")

Supported Operations:
    - open() - Seekable read stream
    - create() - Write stream, creating parent directories
    - delete() - Remove files or directories (optionally recursive)
    - rename() - Rename without overwriting
    - mkdirs() - Create a directory and its ancestors
    - get_file_status() - Path metadata
    - list_status() - Directory listing with metadata
    - exists() - Existence check

"""

import logging

from .cache import FileSystemCache, close_all_filesystems
from .compat import CompatibleFileSystem, translate_exceptions
from .config import ConnectionEndpoint, SFTPOptions, load_connection_info
from .factory import FileSystemFactory, resolve_filesystem
from .filesystem import SFTPFileSystem
from .interfaces import (
    AlreadyExistsError,
    FileBackendError,
    FileStatus,
    FileSystem,
    InvalidOperationError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
    PathLike,
    RemoteIOError,
    SFTPConnectionError,
    TransportError,
)
from .paths import PathTranslator, normalize_path
from .session import SessionProvider, SFTPSession, load_private_key
from .streams import SFTPInputStream, SFTPOutputStream

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "AlreadyExistsError",
    "CompatibleFileSystem",
    "ConnectionEndpoint",
    "FileBackendError",
    "FileStatus",
    "FileSystem",
    "FileSystemCache",
    "FileSystemFactory",
    "InvalidOperationError",
    "IsDirectoryError",
    "NotDirectoryError",
    "NotFoundError",
    "PathLike",
    "PathTranslator",
    "RemoteIOError",
    "SFTPConnectionError",
    "SFTPFileSystem",
    "SFTPInputStream",
    "SFTPOptions",
    "SFTPOutputStream",
    "SFTPSession",
    "SessionProvider",
    "TransportError",
    "close_all_filesystems",
    "load_connection_info",
    "load_private_key",
    "normalize_path",
    "resolve_filesystem",
    "translate_exceptions",
]
