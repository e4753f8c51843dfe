"""Tests for validation helpers.

The helpers accept anything exposing an ``is_dir`` property, so they are
exercised here with a minimal stand-in as well as with FileStatus snapshots.
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import PurePosixPath

import pytest

from f9_sftp_backend.interfaces import (
    AlreadyExistsError,
    FileStatus,
    IsDirectoryError,
    NotDirectoryError,
    NotFoundError,
    RemoteIOError,
)
from f9_sftp_backend.validation import (
    validate_entry_exists,
    validate_entry_not_exists,
    validate_is_directory,
    validate_is_file,
)


class MockEntry:
    """Mock PathEntry for testing validation functions."""

    def __init__(self, is_dir: bool) -> None:
        """Initialize with is_dir property."""
        self._is_dir = is_dir

    @property
    def is_dir(self) -> bool:
        """Return the is_dir flag."""
        return self._is_dir


class TestValidateEntryExists:
    """Tests for validate_entry_exists."""

    def test_returns_entry_when_present(self) -> None:
        """The entry is returned unchanged."""
        entry = MockEntry(is_dir=False)
        assert validate_entry_exists(entry, "file.txt") is entry

    def test_raises_not_found_when_entry_none(self) -> None:
        """A missing entry raises NotFoundError with the path."""
        with pytest.raises(NotFoundError, match="file.txt") as excinfo:
            validate_entry_exists(None, "file.txt")
        assert excinfo.value.path == PurePosixPath("file.txt")

    def test_custom_reason(self) -> None:
        """A reason replaces the default message."""
        with pytest.raises(NotFoundError, match="Source path does not exist"):
            validate_entry_exists(None, "/a", reason="Source path does not exist")


class TestValidateEntryNotExists:
    """Tests for validate_entry_not_exists."""

    def test_passes_when_entry_none(self) -> None:
        """Nothing happens for a missing entry."""
        validate_entry_not_exists(None, "file.txt")

    def test_raises_when_entry_exists(self) -> None:
        """An existing entry raises AlreadyExistsError."""
        with pytest.raises(AlreadyExistsError, match="Path already exists"):
            validate_entry_not_exists(MockEntry(is_dir=False), "file.txt")


class TestTypeValidation:
    """Tests for validate_is_file and validate_is_directory."""

    def test_is_file(self) -> None:
        """Files pass and directories raise IsDirectoryError."""
        validate_is_file(MockEntry(is_dir=False), "file.txt")
        with pytest.raises(IsDirectoryError):
            validate_is_file(MockEntry(is_dir=True), "dir")

    def test_is_directory(self) -> None:
        """Directories pass and files raise NotDirectoryError."""
        validate_is_directory(MockEntry(is_dir=True), "dir")
        with pytest.raises(NotDirectoryError):
            validate_is_directory(MockEntry(is_dir=False), "file.txt")

    def test_accepts_file_status(self) -> None:
        """FileStatus snapshots satisfy the entry protocol."""
        status = FileStatus(
            path=PurePosixPath("/dir"),
            length=0,
            is_dir=True,
            modified_at=datetime.now(tz=timezone.utc),
        )
        validate_is_directory(status, status.path)
        with pytest.raises(IsDirectoryError):
            validate_is_file(status, status.path)


def test_validation_errors_are_remote_io_errors() -> None:
    """Every validation failure can be caught as RemoteIOError."""
    for check in (
        lambda: validate_entry_exists(None, "a"),
        lambda: validate_entry_not_exists(MockEntry(is_dir=False), "a"),
        lambda: validate_is_file(MockEntry(is_dir=True), "a"),
        lambda: validate_is_directory(MockEntry(is_dir=False), "a"),
    ):
        with pytest.raises(RemoteIOError):
            check()
