"""SFTP-backed implementation of the FileSystem interface.

``SFTPFileSystem`` presents a remote host reachable over SFTP as a regular
hierarchical filesystem. It owns exactly one session at a time, opened lazily
on first use (or eagerly with ``eager_connect``), reused across operations,
and closed by ``close()``.

Concurrency:
    Every operation, and every call made through a stream returned by
    ``open()`` or ``create()``, runs under one re-entrant lock. A transport
    failure discards the session; the failed call is not retried and the next
    call opens a fresh session.

Example:

    >>> from f9_sftp_backend import SFTPFileSystem
    >>> with SFTPFileSystem(
    ...     {"host": "files.example.com", "username": "deploy", "password": "pw"},
    ... ) as fs:
    ...     with fs.create("notes/today.txt") as out:
    ...         out.write(b"yaks")
    ...     with fs.open("notes/today.txt") as stream:
    ...         stream.seek(2)
    ...         stream.read(2)
    b'ks'

See Also:
    - resolve_filesystem: Build a filesystem from an ``sftp://`` URI
    - CompatibleFileSystem: Raise standard OSError subclasses instead

"""

from __future__ import annotations

import functools
import logging
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Callable
from urllib.parse import quote

from .compat import translate_sftp_errors
from .config import load_connection_info
from .interfaces import (
    FileStatus,
    FileSystem,
    InvalidOperationError,
    NotFoundError,
    PathLike,
    RemoteIOError,
    TransportError,
)
from .operations import SFTPOperations
from .paths import ROOT, PathTranslator
from .session import SessionProvider

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping
    from pathlib import PurePosixPath

    from .config import ConnectionEndpoint, SFTPOptions
    from .session import SFTPSession
    from .streams import SFTPInputStream, SFTPOutputStream

logger = logging.getLogger(__name__)


class SFTPFileSystem(FileSystem):
    """Filesystem facade over a single SFTP session."""

    scheme = "sftp"

    def __init__(
        self,
        connection_info: Mapping[str, Any],
        *,
        session_provider: Any | None = None,
        on_close: Callable[[SFTPFileSystem], None] | None = None,
    ) -> None:
        """Initialise the filesystem from connection parameters.

        Args:
            connection_info: Host, credentials and options, see
                ``config.load_connection_info``.
            session_provider: Object with ``connect(endpoint)`` returning an
                ``SFTPSession``. Defaults to a paramiko ``SessionProvider``.
            on_close: Callback invoked once after the filesystem closes.

        """
        self._endpoint, self._options = load_connection_info(connection_info)
        if session_provider is None:
            session_provider = SessionProvider(
                connect_timeout=self._options.connect_timeout,
                operation_timeout=self._options.operation_timeout,
                host_key_policy=self._options.host_key_policy,
                known_hosts=self._options.known_hosts,
            )
        self._provider = session_provider
        self._paths = PathTranslator(
            self._options.remote_root,
            working_directory=self._options.working_directory,
        )
        self._ops = SFTPOperations(self._paths)
        self._lock = threading.RLock()
        self._session: SFTPSession | None = None
        self._home: PurePosixPath | None = None
        self._closed = False
        self._on_close = on_close

        if self._options.eager_connect:
            with self._lock:
                self._ensure_session()

    @property
    def endpoint(self) -> ConnectionEndpoint:
        """Endpoint this filesystem connects to."""
        return self._endpoint

    @property
    def options(self) -> SFTPOptions:
        """Options the filesystem was configured with."""
        return self._options

    @property
    def uri(self) -> str:
        """``sftp://user@host:port`` identifying this filesystem."""
        user = quote(self._endpoint.username or "", safe="")
        return f"{self.scheme}://{user}@{self._endpoint.host}:{self._endpoint.port}"

    @property
    def closed(self) -> bool:
        """True once ``close()`` has been called."""
        return self._closed

    @property
    def connected(self) -> bool:
        """True while a usable session is held."""
        with self._lock:
            return self._session is not None and self._session.is_active()

    @property
    def home_directory(self) -> PurePosixPath:
        """Remote login directory as an abstract path."""
        with self._session_scope():
            return self._home or ROOT

    @property
    def working_directory(self) -> PurePosixPath:
        """Directory relative paths resolve against."""
        with self._session_scope():
            return self._paths.working_directory or ROOT

    def set_working_directory(self, path: PathLike) -> None:
        """Resolve later relative paths against ``path``."""
        with self._session_scope():
            self._paths.set_working_directory(path)

    def open(self, path: PathLike) -> SFTPInputStream:
        """Open a remote file for reading."""
        with self._session_scope() as sftp:
            return self._ops.open(sftp, path, guard=self._stream_guard())

    def create(self, path: PathLike, *, overwrite: bool = True) -> SFTPOutputStream:
        """Create or truncate a remote file, creating missing parents."""
        with self._session_scope() as sftp:
            target = self._paths.qualify(path)
            if target.parent != target:
                self._ops.mkdirs(sftp, target.parent)
            return self._ops.create(
                sftp,
                target,
                guard=self._stream_guard(),
                overwrite=overwrite,
            )

    def delete(self, path: PathLike, *, recursive: bool = False) -> bool:
        """Delete a file or directory; False if nothing existed."""
        with self._session_scope() as sftp:
            return self._ops.delete(sftp, path, recursive=recursive)

    def rename(self, src: PathLike, dst: PathLike) -> bool:
        """Rename a path; fails if ``dst`` exists."""
        with self._session_scope() as sftp:
            return self._ops.rename(sftp, src, dst)

    def mkdirs(self, path: PathLike) -> bool:
        """Create a directory with all missing ancestors."""
        with self._session_scope() as sftp:
            return self._ops.mkdirs(sftp, path)

    def get_file_status(self, path: PathLike) -> FileStatus:
        """Return a fresh status snapshot for a path."""
        with self._session_scope() as sftp:
            return self._ops.get_file_status(sftp, path)

    def list_status(self, path: PathLike) -> list[FileStatus]:
        """Return the status of every immediate child of a directory."""
        with self._session_scope() as sftp:
            return self._ops.list_status(sftp, path)

    def exists(self, path: PathLike) -> bool:
        """Return True if the path exists."""
        with self._session_scope() as sftp:
            return self._ops.exists(sftp, path)

    def is_file(self, path: PathLike) -> bool:
        """Return True if the path exists and is a regular file."""
        try:
            return not self.get_file_status(path).is_dir
        except NotFoundError:
            return False

    def is_dir(self, path: PathLike) -> bool:
        """Return True if the path exists and is a directory."""
        try:
            return self.get_file_status(path).is_dir
        except NotFoundError:
            return False

    def close(self) -> None:
        """Close the session; safe to call repeatedly or before connecting."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._discard_session()
        if self._on_close is not None:
            self._on_close(self)

    def __repr__(self) -> str:
        """Return a representation without credentials."""
        return f"SFTPFileSystem({self.uri!r})"

    @contextmanager
    def _session_scope(self) -> Iterator[Any]:
        """Hold the lock and yield the live SFTP client."""
        with self._lock:
            session = self._ensure_session()
            with self._failure_scope(session):
                yield session.sftp

    @contextmanager
    def _stream_scope(self, session: SFTPSession) -> Iterator[None]:
        """Guard used by streams bound to ``session``."""
        with self._lock, self._failure_scope(session):
            yield

    def _stream_guard(self) -> Callable[[], Any]:
        return functools.partial(self._stream_scope, self._session)

    @contextmanager
    def _failure_scope(self, session: SFTPSession) -> Iterator[None]:
        """Discard ``session`` if a call through it broke the transport."""
        try:
            yield
        except RemoteIOError as exc:
            broken = isinstance(exc, TransportError) or not session.is_active()
            if broken and session is self._session:
                logger.warning(
                    "Discarding SFTP session to %s after failure: %s",
                    self._endpoint.address,
                    exc,
                )
                self._discard_session()
            raise

    def _ensure_session(self) -> SFTPSession:
        """Return the live session, connecting if there is none."""
        if self._closed:
            raise RemoteIOError.filesystem_closed()
        session = self._session
        if session is not None:
            if session.is_active():
                return session
            self._discard_session()

        session = self._provider.connect(self._endpoint)
        try:
            self._home = self._resolve_home(session)
        except RemoteIOError:
            session.close()
            raise
        if self._paths.working_directory is None:
            self._paths.set_working_directory(self._home)
        self._session = session
        return session

    def _resolve_home(self, session: SFTPSession) -> PurePosixPath:
        with translate_sftp_errors():
            remote_home = session.home_directory()
        try:
            return self._paths.to_abstract(remote_home)
        except InvalidOperationError:
            # login directory lies outside remote_root
            return ROOT

    def _discard_session(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.close()
