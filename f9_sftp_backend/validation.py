"""Validation helpers for remote file operations.

The helpers work with any entry exposing an ``is_dir`` property, which
covers ``FileStatus`` snapshots and the attribute wrapper used by the
operation mapper. ``None`` stands for a path that does not exist.

Example:
    >>> entry = ops.lookup(sftp, "report.csv")
    >>> validate_entry_exists(entry, "report.csv")  # Raises if missing
    >>> validate_is_file(entry, "report.csv")  # Raises if a directory

"""

from __future__ import annotations

from typing import Any, Protocol

from .interfaces import (
    AlreadyExistsError,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
)


class PathEntry(Protocol):
    """Protocol for path entry objects used in validation."""

    @property
    def is_dir(self) -> bool:
        """Whether the entry is a directory."""
        ...


def validate_entry_exists(
    entry: PathEntry | None,
    path: Any,
    *,
    reason: str | None = None,
) -> PathEntry:
    """Validate that an entry exists.

    Returns:
        The entry if it exists.

    Raises:
        NotFoundError: If entry is None.

    """
    if entry is None:
        raise NotFoundError(path, reason=reason)
    return entry


def validate_entry_not_exists(
    entry: PathEntry | None,
    path: Any,
    *,
    reason: str | None = None,
) -> None:
    """Validate that an entry does not exist.

    Raises:
        AlreadyExistsError: If entry exists.

    """
    if entry is not None:
        raise AlreadyExistsError(path, reason=reason)


def validate_is_file(entry: PathEntry, path: Any) -> None:
    """Validate that an entry is a file, not a directory.

    Raises:
        IsDirectoryError: If entry is a directory.

    """
    if entry.is_dir:
        raise IsDirectoryError(path)


def validate_is_directory(entry: PathEntry, path: Any) -> None:
    """Validate that an entry is a directory.

    Raises:
        NotDirectoryError: If entry is a file.

    """
    if not entry.is_dir:
        raise NotDirectoryError(path)
