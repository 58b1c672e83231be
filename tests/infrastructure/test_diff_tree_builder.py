from commit_trail.domain.models import ChangedFile, ChangeStatus, DiffLineKind
from commit_trail.infrastructure.diff_tree_builder import (
    build_tree,
    parse_diff,
    summarize_numstat,
)


def _names(nodes):
    return [n.name for n in nodes]


class TestBuildTree:
    def test_nested_paths_with_status(self):
        tree = build_tree(
            ["a/b.txt", "a/c/d.txt"],
            [ChangedFile("a/b.txt", ChangeStatus.ADDED)],
        )
        assert _names(tree) == ["a"]
        a = tree[0]
        assert a.is_directory
        assert a.status is None
        assert a.effective_status is ChangeStatus.ADDED
        # directories sort before files
        assert _names(a.children) == ["c", "b.txt"]
        c, b = a.children
        assert b.status is ChangeStatus.ADDED
        assert b.path == "a/b.txt"
        assert c.effective_status is None
        assert c.children[0].path == "a/c/d.txt"
        assert c.children[0].status is None

    def test_deleted_paths_are_added(self):
        tree = build_tree(
            ["src/main.py"],
            [ChangedFile("src/utils.py", ChangeStatus.DELETED)],
        )
        src = tree[0]
        assert _names(src.children) == ["main.py", "utils.py"]
        assert src.children[1].status is ChangeStatus.DELETED
        assert src.effective_status is ChangeStatus.DELETED

    def test_deleted_path_already_listed_not_duplicated(self):
        tree = build_tree(["x.txt"], [ChangedFile("x.txt", ChangeStatus.DELETED)])
        assert _names(tree) == ["x.txt"]

    def test_case_insensitive_order_dirs_first(self):
        tree = build_tree(["b.txt", "A.txt", "zeta/f", "Alpha/g", "c.txt"], [])
        assert _names(tree) == ["Alpha", "zeta", "A.txt", "b.txt", "c.txt"]

    def test_file_and_directory_sharing_a_name(self):
        tree = build_tree(
            ["docs/index.md"],
            [ChangedFile("docs", ChangeStatus.DELETED), ChangedFile("docs/index.md", ChangeStatus.ADDED)],
        )
        assert [(n.name, n.is_directory) for n in tree] == [("docs", True), ("docs", False)]
        assert tree[1].status is ChangeStatus.DELETED

    def test_added_beats_modified_on_directory(self):
        tree = build_tree(
            ["pkg/a.py", "pkg/b.py"],
            [ChangedFile("pkg/a.py", ChangeStatus.MODIFIED), ChangedFile("pkg/b.py", ChangeStatus.ADDED)],
        )
        assert tree[0].effective_status is ChangeStatus.ADDED

    def test_rename_does_not_propagate(self):
        tree = build_tree(["pkg/new.py"], [ChangedFile("pkg/new.py", ChangeStatus.RENAMED)])
        assert tree[0].children[0].status is ChangeStatus.RENAMED
        assert tree[0].effective_status is None
        assert tree[0].has_changed_descendant

    def test_iter_files(self):
        tree = build_tree(["a/b.txt", "a/c/d.txt", "e.txt"], [])
        files = [f.path for node in tree for f in node.iter_files()]
        assert files == ["a/c/d.txt", "a/b.txt", "e.txt"]

    def test_empty(self):
        assert build_tree([], []) == []


class TestParseDiff:
    def test_basic_hunk(self):
        lines = parse_diff("@@ -1,2 +1,3 @@\n line1\n+line2\n-old\n")
        assert [(l.kind, l.line_number, l.content) for l in lines] == [
            (DiffLineKind.HEADER, None, "@@ -1,2 +1,3 @@"),
            (DiffLineKind.CONTEXT, 1, "line1"),
            (DiffLineKind.ADDED, 2, "line2"),
            (DiffLineKind.DELETED, None, "old"),
        ]

    def test_git_headers_are_metadata(self):
        text = (
            "diff --git a/x.txt b/x.txt\n"
            "index 1111111..2222222 100644\n"
            "--- a/x.txt\n"
            "+++ b/x.txt\n"
            "@@ -1,2 +1,2 @@\n"
            " keep\n"
            "--- removed\n"
            "+++ added\n"
        )
        kinds = [l.kind for l in parse_diff(text)]
        assert kinds == [
            DiffLineKind.METADATA,
            DiffLineKind.METADATA,
            DiffLineKind.METADATA,
            DiffLineKind.METADATA,
            DiffLineKind.HEADER,
            DiffLineKind.CONTEXT,
            DiffLineKind.DELETED,
            DiffLineKind.ADDED,
        ]
        assert parse_diff(text)[-1].line_number == 2

    def test_no_newline_marker(self):
        lines = parse_diff("@@ -1 +1 @@\n-a\n+b\n\\ No newline at end of file\n")
        assert lines[-1].kind is DiffLineKind.METADATA
        assert lines[2].line_number == 1

    def test_numbering_restarts_per_hunk(self):
        text = "@@ -1,1 +1,1 @@\n-a\n+b\n@@ -10,2 +10,3 @@\n x\n+y\n z\n"
        numbered = [(l.content, l.line_number) for l in parse_diff(text) if l.line_number]
        assert numbered == [("b", 1), ("x", 10), ("y", 11), ("z", 12)]

    def test_new_file_diff(self):
        text = (
            "diff --git a/n.py b/n.py\n"
            "new file mode 100644\n"
            "index 0000000..3333333\n"
            "--- /dev/null\n"
            "+++ b/n.py\n"
            "@@ -0,0 +1,2 @@\n"
            "+one\n"
            "+two\n"
        )
        added = [l for l in parse_diff(text) if l.kind is DiffLineKind.ADDED]
        assert [(l.line_number, l.content) for l in added] == [(1, "one"), (2, "two")]

    def test_binary_notice(self):
        lines = parse_diff("diff --git a/i.png b/i.png\nBinary files a/i.png and b/i.png differ\n")
        assert all(l.kind is DiffLineKind.METADATA for l in lines)

    def test_empty_text(self):
        assert parse_diff("") == []


def test_summarize_numstat():
    stats = summarize_numstat("abc", [(3, 1, "src/a.py"), (10, 0, "README.MD"), (0, 0, "Makefile"), (2, 2, "b.py")])
    assert stats.sha == "abc"
    assert stats.file_count == 4
    assert stats.lines_added == 15
    assert stats.lines_deleted == 3
    assert stats.extensions == {"": 1, ".md": 1, ".py": 2}
