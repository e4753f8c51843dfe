"""Filesystem operations expressed as SFTP protocol calls.

``SFTPOperations`` holds no session state: every method receives the live
paramiko ``SFTPClient`` for the duration of one call. The facade owns the
session and the lock around it.

Policies enforced here that SFTP servers do not enforce on their own:

    - deleting a non-empty directory without ``recursive`` fails
    - recursive delete enumerates children client-side, depth-first, using an
      explicit stack rather than call recursion
    - rename never overwrites an existing destination
    - delete of a missing path is a no-op reported as ``False``
    - delete and rename act on a symbolic link itself, never on its target

Protocol errors are translated into the package's error taxonomy by
``compat.translate_sftp_errors`` so no paramiko exception crosses the facade.
"""

from __future__ import annotations

import logging
import posixpath
import stat
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable

import paramiko

from .compat import translate_sftp_errors
from .interfaces import (
    FileStatus,
    NotFoundError,
    PathLike,
    RemoteIOError,
)
from .streams import SFTPInputStream, SFTPOutputStream
from .validation import (
    validate_entry_exists,
    validate_entry_not_exists,
    validate_is_directory,
    validate_is_file,
)

if TYPE_CHECKING:
    from contextlib import AbstractContextManager
    from pathlib import PurePosixPath

    from .paths import PathTranslator

logger = logging.getLogger(__name__)


class _RemoteEntry:
    """Attribute snapshot for one remote path."""

    __slots__ = ("attrs", "remote")

    def __init__(self, remote: str, attrs: paramiko.SFTPAttributes) -> None:
        self.remote = remote
        self.attrs = attrs

    @property
    def is_dir(self) -> bool:
        return stat.S_ISDIR(self.attrs.st_mode or 0)


class SFTPOperations:
    """Map filesystem operations onto SFTP calls.

    Args:
        paths: Translator between abstract and remote paths.

    """

    def __init__(self, paths: PathTranslator) -> None:
        """Bind the operations to a path translator."""
        self._paths = paths

    def lookup(
        self,
        sftp: Any,
        path: PathLike,
        *,
        follow_symlinks: bool = True,
    ) -> _RemoteEntry | None:
        """Stat ``path`` and return its entry, or None if it does not exist.

        With ``follow_symlinks=False`` a symbolic link is reported as itself
        and never as a directory.
        """
        remote = self._paths.to_remote(path)
        stat_call = sftp.stat if follow_symlinks else sftp.lstat
        try:
            with translate_sftp_errors(path):
                return _RemoteEntry(remote, stat_call(remote))
        except NotFoundError:
            return None

    def exists(self, sftp: Any, path: PathLike) -> bool:
        """Return True iff a stat of ``path`` succeeds."""
        return self.lookup(sftp, path) is not None

    def get_file_status(self, sftp: Any, path: PathLike) -> FileStatus:
        """Return a fresh status snapshot for ``path``."""
        entry = validate_entry_exists(self.lookup(sftp, path), path)
        return self._to_status(self._paths.qualify(path), entry.attrs)

    def list_status(self, sftp: Any, path: PathLike) -> list[FileStatus]:
        """Return the status of each immediate child of a directory."""
        entry = validate_entry_exists(self.lookup(sftp, path), path)
        validate_is_directory(entry, path)

        parent = self._paths.qualify(path)
        with translate_sftp_errors(path):
            children = sftp.listdir_attr(entry.remote)
        return [
            self._to_status(self._paths.child(parent, attrs.filename), attrs)
            for attrs in children
        ]

    def open(
        self,
        sftp: Any,
        path: PathLike,
        *,
        guard: Callable[[], AbstractContextManager[Any]],
    ) -> SFTPInputStream:
        """Open a file for reading and wrap the handle in a stream."""
        entry = validate_entry_exists(self.lookup(sftp, path), path)
        validate_is_file(entry, path)

        with translate_sftp_errors(path):
            handle = sftp.open(entry.remote, "rb")
        return SFTPInputStream(
            handle,
            self._paths.qualify(path),
            guard=guard,
        )

    def create(
        self,
        sftp: Any,
        path: PathLike,
        *,
        guard: Callable[[], AbstractContextManager[Any]],
        overwrite: bool = True,
    ) -> SFTPOutputStream:
        """Open a file for writing, creating or truncating it.

        The parent directory is expected to exist; the facade creates it.
        """
        entry = self.lookup(sftp, path)
        if entry is not None:
            validate_is_file(entry, path)
            if not overwrite:
                validate_entry_not_exists(entry, path, reason="File already exists")

        remote = self._paths.to_remote(path)
        with translate_sftp_errors(path):
            handle = sftp.open(remote, "wb")
            handle.set_pipelined(True)
        return SFTPOutputStream(handle, self._paths.qualify(path), guard=guard)

    def delete(self, sftp: Any, path: PathLike, *, recursive: bool = False) -> bool:
        """Delete a file or directory.

        Returns:
            False if the path did not exist, True otherwise.

        Raises:
            RemoteIOError: If the directory is non-empty and ``recursive`` is
                False, or the server refuses a removal.

        """
        entry = self.lookup(sftp, path, follow_symlinks=False)
        if entry is None:
            return False

        with translate_sftp_errors(path):
            if not entry.is_dir:
                sftp.remove(entry.remote)
                return True
            if not recursive and sftp.listdir_attr(entry.remote):
                raise RemoteIOError.directory_not_empty(path)
            self._remove_tree(sftp, entry.remote)
        return True

    def rename(self, sftp: Any, src: PathLike, dst: PathLike) -> bool:
        """Rename ``src`` to ``dst`` without ever replacing ``dst``.

        Raises:
            NotFoundError: If ``src`` does not exist.
            AlreadyExistsError: If ``dst`` already exists.

        """
        source = validate_entry_exists(
            self.lookup(sftp, src, follow_symlinks=False),
            src,
            reason="Source path does not exist",
        )
        validate_entry_not_exists(
            self.lookup(sftp, dst, follow_symlinks=False),
            dst,
            reason="Destination path already exists",
        )

        remote_dst = self._paths.to_remote(dst)
        with translate_sftp_errors(src):
            sftp.rename(source.remote, remote_dst)
        logger.debug("Renamed %s to %s", source.remote, remote_dst)
        return True

    def mkdirs(self, sftp: Any, path: PathLike) -> bool:
        """Create ``path`` and every missing ancestor.

        Raises:
            NotDirectoryError: If a component exists as a file.

        """
        target = self._paths.qualify(path)
        for current in [*reversed(target.parents), target]:
            if not current.parts[1:]:
                continue  # the abstract root always exists
            entry = self.lookup(sftp, current)
            if entry is not None:
                validate_is_directory(entry, current)
                continue
            remote = self._paths.to_remote(current)
            try:
                with translate_sftp_errors(current):
                    sftp.mkdir(remote)
            except RemoteIOError:
                # a concurrent creator may have won the race
                raced = self.lookup(sftp, current)
                if raced is None:
                    raise
                validate_is_directory(raced, current)
            else:
                logger.debug("Created remote directory %s", remote)
        return True

    def _remove_tree(self, sftp: Any, remote: str) -> None:
        """Delete a directory tree depth-first with an explicit stack."""
        pending: list[tuple[str, bool]] = [(remote, False)]
        while pending:
            current, expanded = pending.pop()
            if expanded:
                sftp.rmdir(current)
                logger.debug("Removed remote directory %s", current)
                continue
            pending.append((current, True))
            for attrs in sftp.listdir_attr(current):
                child = posixpath.join(current, attrs.filename)
                if stat.S_ISDIR(attrs.st_mode or 0):
                    pending.append((child, False))
                else:
                    sftp.remove(child)

    @staticmethod
    def _to_status(path: PurePosixPath, attrs: paramiko.SFTPAttributes) -> FileStatus:
        """Build a FileStatus from SFTP attributes."""
        mode = attrs.st_mode
        return FileStatus(
            path=path,
            length=attrs.st_size or 0,
            is_dir=stat.S_ISDIR(mode or 0),
            modified_at=_timestamp_to_datetime(attrs.st_mtime),
            accessed_at=_timestamp_to_datetime(attrs.st_atime),
            permissions=stat.S_IMODE(mode) if mode is not None else None,
            owner_uid=attrs.st_uid,
            owner_gid=attrs.st_gid,
        )


def _timestamp_to_datetime(timestamp: float | None) -> datetime | None:
    """Convert a POSIX timestamp to an aware datetime in UTC."""
    if timestamp is None:
        return None
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)
