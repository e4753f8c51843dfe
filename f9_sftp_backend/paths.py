"""Translation between abstract filesystem paths and remote SFTP paths.

Abstract paths are slash-separated and independent of the remote host; a
backslash is an ordinary file name character, as it is on SFTP servers. A
normalised abstract path has no empty segments, no ``.`` segments, and no
trailing slash except for the root itself. ``..`` is rejected rather than
resolved so that callers can never address anything above the configured
remote root.

Example:

    >>> translator = PathTranslator("/srv/data", working_directory="/team")
    >>> translator.to_remote("reports/q1.csv")
    '/srv/data/team/reports/q1.csv'
    >>> translator.to_abstract("/srv/data/team/reports/q1.csv")
    PurePosixPath('/team/reports/q1.csv')

"""

from __future__ import annotations

import posixpath
from pathlib import PurePath, PurePosixPath
from typing import Any

from .interfaces import InvalidOperationError, PathLike

ROOT = PurePosixPath("/")


def validate_not_empty(path: Any) -> None:
    """Validate that path is not empty or whitespace-only.

    Raises:
        InvalidOperationError: If path is empty or whitespace.

    """
    path_str = str(path) if not isinstance(path, PurePath) else path.as_posix()
    if not path_str or path_str.strip() == "":
        raise InvalidOperationError.empty_path_not_allowed(path_str)


def detect_path_traversal_posix(path_parts: tuple[str, ...]) -> bool:
    """Return True when any path component is ``..``.

    Example:

        >>> detect_path_traversal_posix(("..", "etc", "passwd"))
        True
        >>> detect_path_traversal_posix(("valid", "relative", "path"))
        False

    """
    return any(part == ".." for part in path_parts)


def normalize_path(path: PathLike) -> PurePosixPath:
    """Return the normalised abstract form of ``path``.

    Absolute inputs stay absolute and relative inputs stay relative; the
    empty relative path normalises to ``PurePosixPath(".")``.

    Raises:
        InvalidOperationError: If the path is empty or contains ``..``.

    """
    validate_not_empty(path)
    path_str = path.as_posix() if isinstance(path, PurePath) else str(path)

    parts = tuple(part for part in path_str.split("/") if part not in ("", "."))
    if detect_path_traversal_posix(parts):
        raise InvalidOperationError.path_outside_root(path_str)

    if path_str.startswith("/"):
        return PurePosixPath("/", *parts)
    return PurePosixPath(*parts)


def _normalize_remote(remote: str) -> str:
    """Collapse a remote path string to a single-slash absolute form."""
    normalized = posixpath.normpath(remote)
    # normpath keeps a leading "//" on POSIX
    return "/" + normalized.lstrip("/")


class PathTranslator:
    """Map abstract paths onto remote path strings and back.

    Args:
        remote_root: Remote directory that the abstract root ``/`` maps to.
        working_directory: Abstract directory relative paths resolve against.
            When unset, relative paths resolve against the root until the
            filesystem assigns the remote home directory.

    """

    def __init__(
        self,
        remote_root: str = "/",
        *,
        working_directory: PathLike | None = None,
    ) -> None:
        """Initialise the translator for a remote root."""
        self._root = _normalize_remote(remote_root or "/")
        self._working: PurePosixPath | None = None
        if working_directory is not None:
            self.set_working_directory(working_directory)

    @property
    def remote_root(self) -> str:
        """Remote directory that backs the abstract root."""
        return self._root

    @property
    def working_directory(self) -> PurePosixPath | None:
        """Abstract directory that relative paths resolve against."""
        return self._working

    def set_working_directory(self, path: PathLike) -> None:
        """Change the directory relative paths resolve against."""
        self._working = self.qualify(path)

    def qualify(self, path: PathLike) -> PurePosixPath:
        """Return ``path`` as a normalised absolute abstract path."""
        normalized = normalize_path(path)
        if normalized.is_absolute():
            return normalized
        base = self._working or ROOT
        return base.joinpath(normalized) if normalized.parts else base

    def to_remote(self, path: PathLike) -> str:
        """Translate an abstract path into the remote path string."""
        qualified = self.qualify(path)
        if self._root == "/":
            return str(qualified)
        if qualified == ROOT:
            return self._root
        return self._root + str(qualified)

    def to_abstract(self, remote: str) -> PurePosixPath:
        """Translate a remote path string into an absolute abstract path.

        Relative remote strings are taken relative to the remote form of the
        working directory.

        Raises:
            InvalidOperationError: If the remote path lies outside the root.

        """
        validate_not_empty(remote)
        if not remote.startswith("/"):
            remote = posixpath.join(self.to_remote(self._working or ROOT), remote)
        normalized = _normalize_remote(remote)

        if self._root == "/":
            return PurePosixPath(normalized)
        if normalized == self._root:
            return ROOT
        if normalized.startswith(self._root + "/"):
            return PurePosixPath(normalized[len(self._root) :])
        raise InvalidOperationError.path_outside_root(normalized)

    def child(self, parent: PurePosixPath, name: str) -> PurePosixPath:
        """Return the abstract path of an entry listed inside ``parent``."""
        return self.qualify(parent).joinpath(name)
