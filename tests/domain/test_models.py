from datetime import datetime, timezone

import pytest

from commit_trail.domain.errors import CommandFailure, InvalidRepository
from commit_trail.domain.models import (
    ChangedFile,
    ChangeStatus,
    Commit,
    FileTreeNode,
    HistoryCacheRecord,
    Repository,
    ReviewProgressRecord,
    Selection,
)


_DATE = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _commit(parents: tuple[str, ...] = ("p1",), message: str = "Subject\n\nBody") -> Commit:
    return Commit("abc123", "abc", "Alice", "alice@example.com", _DATE, message, parents)


class TestCommit:
    def test_subject_is_first_line(self):
        assert _commit().subject == "Subject"

    def test_single_line_message(self):
        assert _commit(message="Only line").subject == "Only line"

    def test_merge_commit(self):
        assert _commit(parents=("p1", "p2")).is_merge is True

    def test_regular_commit_not_merge(self):
        commit = _commit()
        assert commit.is_merge is False
        assert commit.is_root is False

    def test_root_commit(self):
        assert _commit(parents=()).is_root is True

    def test_frozen(self):
        with pytest.raises(AttributeError):
            _commit().sha = "other"


class TestChangeStatus:
    @pytest.mark.parametrize("letter,expected", [
        ("A", ChangeStatus.ADDED),
        ("M", ChangeStatus.MODIFIED),
        ("D", ChangeStatus.DELETED),
        ("R100", ChangeStatus.RENAMED),
        ("C075", ChangeStatus.COPIED),
    ])
    def test_known_letters(self, letter, expected):
        assert ChangeStatus.from_letter(letter) is expected

    def test_unknown_letter_is_modified(self):
        assert ChangeStatus.from_letter("X") is ChangeStatus.MODIFIED

    def test_type_change_is_modified(self):
        assert ChangeStatus.from_letter("T") is ChangeStatus.MODIFIED

    def test_empty_is_modified(self):
        assert ChangeStatus.from_letter("") is ChangeStatus.MODIFIED


class TestChangedFile:
    def test_file_name_and_directory(self):
        f = ChangedFile("src/pkg/mod.py", ChangeStatus.ADDED)
        assert f.file_name == "mod.py"
        assert f.directory == "src/pkg"

    def test_top_level_directory_is_empty(self):
        assert ChangedFile("README.md", ChangeStatus.MODIFIED).directory == ""


def _file(name: str, path: str, status: ChangeStatus | None = None) -> FileTreeNode:
    return FileTreeNode(name, path, False, status)


def _dir(name: str, path: str, *children: FileTreeNode) -> FileTreeNode:
    return FileTreeNode(name, path, True, None, list(children))


class TestEffectiveStatus:
    def test_file_returns_own_status(self):
        assert _file("a", "a", ChangeStatus.DELETED).effective_status is ChangeStatus.DELETED

    def test_unchanged_file_is_none(self):
        assert _file("a", "a").effective_status is None

    def test_added_beats_deleted_and_modified(self):
        d = _dir(
            "d", "d",
            _file("m", "d/m", ChangeStatus.MODIFIED),
            _file("x", "d/x", ChangeStatus.DELETED),
            _file("a", "d/a", ChangeStatus.ADDED),
        )
        assert d.effective_status is ChangeStatus.ADDED

    def test_deleted_beats_modified(self):
        d = _dir(
            "d", "d",
            _file("m", "d/m", ChangeStatus.MODIFIED),
            _file("x", "d/x", ChangeStatus.DELETED),
        )
        assert d.effective_status is ChangeStatus.DELETED

    def test_renamed_not_propagated(self):
        d = _dir("d", "d", _file("r", "d/r", ChangeStatus.RENAMED))
        assert d.effective_status is None
        assert d.has_changed_descendant is True

    def test_nested_propagation(self):
        inner = _dir("c", "a/c", _file("d", "a/c/d", ChangeStatus.MODIFIED))
        outer = _dir("a", "a", inner, _file("b", "a/b"))
        assert outer.effective_status is ChangeStatus.MODIFIED

    def test_status_recomputed_after_children_change(self):
        d = _dir("d", "d", _file("m", "d/m"))
        assert d.effective_status is None
        d.children.append(_file("n", "d/n", ChangeStatus.ADDED))
        assert d.effective_status is ChangeStatus.ADDED

    def test_iter_files(self):
        tree = _dir("a", "a", _dir("c", "a/c", _file("d", "a/c/d")), _file("b", "a/b"))
        assert [n.path for n in tree.iter_files()] == ["a/c/d", "a/b"]


class TestHistoryCacheRecord:
    def test_last_sha(self):
        assert HistoryCacheRecord(shas=("a", "b")).last_sha == "b"
        assert HistoryCacheRecord().last_sha is None

    def test_extended_appends_in_order(self):
        record = HistoryCacheRecord(shas=("a", "b"))
        assert record.extended(["c", "d"]).shas == ("a", "b", "c", "d")

    def test_extended_skips_known(self):
        record = HistoryCacheRecord(shas=("a", "b"))
        assert record.extended(["b", "c", "c"]).shas == ("a", "b", "c")


class TestReviewProgressRecord:
    def test_toggle_twice_restores_membership(self):
        start = ReviewProgressRecord(reviewed=frozenset({"x"}), last_updated=_DATE)
        once = start.toggled("y")
        twice = once.toggled("y")
        assert once.reviewed == {"x", "y"}
        assert twice.reviewed == start.reviewed
        assert once.last_updated > _DATE
        assert twice.last_updated >= once.last_updated

    def test_with_checkout(self):
        record = ReviewProgressRecord().with_checkout("abc")
        assert record.checkout_sha == "abc"
        assert record.with_checkout(None).checkout_sha is None


class TestSelection:
    def test_single(self):
        assert Selection("b").is_single is True

    def test_pair(self):
        assert Selection("b", from_sha="a").is_single is False


def test_repository_display_name():
    assert Repository("octo", "tale", "https://x/octo/tale").display_name == "octo/tale"


class TestErrors:
    def test_invalid_repository_is_value_error(self):
        with pytest.raises(ValueError, match="Not a git repository"):
            raise InvalidRepository("/tmp/x")

    def test_command_failure_carries_argv_and_stderr(self):
        err = CommandFailure(["git", "log"], "fatal: bad\n", 128)
        assert err.args_vector == ("git", "log")
        assert err.stderr == "fatal: bad\n"
        assert err.returncode == 128
        assert "git log" in str(err)
        assert "fatal: bad" in str(err)
