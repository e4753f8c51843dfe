"""Tests for path normalisation and abstract/remote path translation."""

from pathlib import PurePosixPath, PureWindowsPath

import pytest

from f9_sftp_backend.interfaces import InvalidOperationError
from f9_sftp_backend.paths import (
    ROOT,
    PathTranslator,
    detect_path_traversal_posix,
    normalize_path,
    validate_not_empty,
)

ROUND_TRIP_PATHS = [
    "/",
    "/a",
    "/a/b/c.txt",
    "/with space/file name.txt",
    "/unicode/dé/ファイル",
    "/.hidden/.config",
    "/data/a\\b.txt",
    "/back\\slash\\dir/file",
]


class TestValidateNotEmpty:
    """Tests for validate_not_empty function."""

    def test_valid_paths(self) -> None:
        """Should not raise for non-empty paths."""
        validate_not_empty("file.txt")
        validate_not_empty("/absolute/path")
        validate_not_empty(PurePosixPath("dir/file.txt"))

    def test_empty_and_whitespace(self) -> None:
        """Should raise for empty or whitespace-only paths."""
        for value in ("", "   ", "\t"):
            with pytest.raises(InvalidOperationError):
                validate_not_empty(value)


class TestTraversalDetection:
    """Tests for detect_path_traversal_posix."""

    def test_detect_traversal(self) -> None:
        """Any '..' component is detected."""
        assert detect_path_traversal_posix(("..", "etc"))
        assert detect_path_traversal_posix(("a", "..", "b"))
        assert not detect_path_traversal_posix(("a", "..b", "c.."))


class TestNormalizePath:
    """Tests for normalize_path."""

    def test_collapses_redundant_segments(self) -> None:
        """Empty and '.' segments and trailing slashes are dropped."""
        assert normalize_path("/a//b/./c/") == PurePosixPath("/a/b/c")
        assert normalize_path("a/./b") == PurePosixPath("a/b")
        assert normalize_path("//") == ROOT

    def test_keeps_relative_form(self) -> None:
        """Relative inputs stay relative."""
        assert not normalize_path("a/b").is_absolute()
        assert normalize_path(".") == PurePosixPath()

    def test_accepts_pure_paths(self) -> None:
        """PurePath objects, including Windows ones, are accepted."""
        assert normalize_path(PurePosixPath("/x/y")) == PurePosixPath("/x/y")
        assert normalize_path(PureWindowsPath("x\\y")) == PurePosixPath("x/y")

    def test_rejects_parent_segments(self) -> None:
        """'..' is rejected rather than resolved."""
        for value in ("..", "/a/../b", "a/..", "../../etc/passwd"):
            with pytest.raises(InvalidOperationError, match="escapes remote root"):
                normalize_path(value)

    def test_backslash_is_not_a_separator(self) -> None:
        """Backslashes stay inside their path component."""
        assert normalize_path("/data/a\\b.txt").parts == ("/", "data", "a\\b.txt")
        assert normalize_path("dir\\sub").parts == ("dir\\sub",)

    def test_rejects_empty(self) -> None:
        """Empty paths are invalid."""
        with pytest.raises(InvalidOperationError, match="cannot be empty"):
            normalize_path("")


class TestPathTranslator:
    """Tests for PathTranslator."""

    @pytest.mark.parametrize("remote_root", ["/", "/srv/data", "/srv/data/", "srv"])
    def test_round_trip(self, remote_root: str) -> None:
        """to_abstract inverts to_remote for normalised absolute paths."""
        translator = PathTranslator(remote_root)
        for value in ROUND_TRIP_PATHS:
            path = PurePosixPath(value)
            assert translator.to_abstract(translator.to_remote(path)) == path

    def test_remote_root_normalised(self) -> None:
        """The remote root is stored in single-slash absolute form."""
        assert PathTranslator("/srv/data/").remote_root == "/srv/data"
        assert PathTranslator("srv").remote_root == "/srv"
        assert PathTranslator("").remote_root == "/"
        assert PathTranslator("//srv").remote_root == "/srv"

    def test_to_remote_under_root(self) -> None:
        """Abstract paths are prefixed with the remote root."""
        translator = PathTranslator("/srv/data")
        assert translator.to_remote("/") == "/srv/data"
        assert translator.to_remote("/reports/q1.csv") == "/srv/data/reports/q1.csv"

    def test_relative_paths_use_working_directory(self) -> None:
        """Relative paths resolve against the working directory."""
        translator = PathTranslator("/srv/data", working_directory="/team")
        assert translator.to_remote("reports/q1.csv") == "/srv/data/team/reports/q1.csv"
        assert translator.qualify(".") == PurePosixPath("/team")
        assert translator.to_abstract("reports/q1.csv") == PurePosixPath(
            "/team/reports/q1.csv",
        )

    def test_relative_paths_without_working_directory(self) -> None:
        """Without a working directory relative paths resolve from the root."""
        translator = PathTranslator()
        assert translator.working_directory is None
        assert translator.qualify("a/b") == PurePosixPath("/a/b")

    def test_set_working_directory_relative(self) -> None:
        """A relative working directory is resolved against the current one."""
        translator = PathTranslator(working_directory="/home/deploy")
        translator.set_working_directory("projects")
        assert translator.working_directory == PurePosixPath("/home/deploy/projects")

    def test_to_abstract_outside_root(self) -> None:
        """Remote paths outside the root cannot be represented."""
        translator = PathTranslator("/srv/data")
        for remote in ("/etc/passwd", "/srv/database", "/srv"):
            with pytest.raises(InvalidOperationError):
                translator.to_abstract(remote)

    def test_to_abstract_normalises_remote(self) -> None:
        """Remote strings are normalised before translation."""
        translator = PathTranslator("/srv/data")
        assert translator.to_abstract("//srv/data//a/") == PurePosixPath("/a")
        assert translator.to_abstract("/srv/data") == ROOT

    def test_backslash_round_trip(self) -> None:
        """Remote names with backslashes map back to the same abstract path."""
        translator = PathTranslator("/srv")
        assert translator.to_remote("/data/a\\b.txt") == "/srv/data/a\\b.txt"
        assert translator.to_abstract("/srv/data/a\\b.txt") == PurePosixPath(
            "/data/a\\b.txt",
        )
        listed = translator.child(PurePosixPath("/data"), "a\\b.txt")
        assert translator.to_remote(listed) == "/srv/data/a\\b.txt"

    def test_child(self) -> None:
        """Listed names are joined to their parent's abstract path."""
        translator = PathTranslator("/srv")
        assert translator.child(PurePosixPath("/dir"), "a.txt") == PurePosixPath(
            "/dir/a.txt",
        )
        assert translator.child(ROOT, "top") == PurePosixPath("/top")
