"""File tree and diff line models built from git listings."""

from __future__ import annotations

import re
from collections import Counter
from pathlib import PurePosixPath

from commit_trail.domain.models import (
    ChangedFile,
    ChangeStatus,
    DiffLine,
    DiffLineKind,
    DiffStats,
    FileTreeNode,
)


def build_tree(all_paths: list[str], changed_files: list[ChangedFile]) -> list[FileTreeNode]:
    """Build the sorted file forest for a revision.

    Deleted paths are absent from an ls-tree listing, so they are taken
    from ``changed_files`` and added to the tree. File leaves carry the
    status of their changed-file entry; directories carry none and derive
    theirs through ``FileTreeNode.effective_status``.
    """
    status_by_path = {f.path: f.status for f in changed_files}

    paths = list(all_paths)
    seen = set(paths)
    for f in changed_files:
        if f.status is ChangeStatus.DELETED and f.path not in seen:
            seen.add(f.path)
            paths.append(f.path)

    roots: list[FileTreeNode] = []
    # (parent path, name, is_directory) -> node; a deleted file and a new
    # directory can share a name within one listing.
    index: dict[tuple[str, str, bool], FileTreeNode] = {}

    for path in paths:
        segments = [s for s in path.split("/") if s]
        if not segments:
            continue
        siblings = roots
        parent_path = ""
        for depth, name in enumerate(segments):
            is_dir = depth < len(segments) - 1
            node_path = f"{parent_path}/{name}" if parent_path else name
            key = (parent_path, name, is_dir)
            node = index.get(key)
            if node is None:
                node = FileTreeNode(
                    name=name,
                    path=node_path,
                    is_directory=is_dir,
                    status=None if is_dir else status_by_path.get(path),
                )
                index[key] = node
                siblings.append(node)
            siblings = node.children
            parent_path = node_path

    return sort_nodes(roots)


def sort_nodes(nodes: list[FileTreeNode]) -> list[FileTreeNode]:
    """Directories first, then case-insensitive name order, at every level."""
    nodes.sort(key=lambda n: (not n.is_directory, n.name.casefold(), n.name))
    for node in nodes:
        if node.is_directory:
            sort_nodes(node.children)
    return nodes


_HUNK_RE = re.compile(r"^@@+ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_TARGET_START_RE = re.compile(r"\+(\d+)")
_METADATA_PREFIXES = (
    "+++", "---", "diff ", "index ",
    "new file mode", "deleted file mode", "old mode", "new mode",
    "similarity index", "dissimilarity index",
    "rename from", "rename to", "copy from", "copy to",
    "Binary files", "\\",
)


def parse_diff(text: str) -> list[DiffLine]:
    """Classify unified diff text line by line.

    Line numbers follow the target revision: a hunk header resets the
    counter to its ``+start`` value, and context and added lines consume
    one number each. While the counts announced by a hunk header are not
    yet used up, lines are classified by their marker column alone, so a
    removed line such as ``--- x`` stays a deletion.
    """
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    result: list[DiffLine] = []
    next_number = 0
    old_left = new_left = 0

    for line in lines:
        in_hunk = old_left > 0 or new_left > 0

        if line.startswith("@@"):
            hunk = _HUNK_RE.match(line)
            if hunk:
                old_left = int(hunk.group(2)) if hunk.group(2) is not None else 1
                new_left = int(hunk.group(4)) if hunk.group(4) is not None else 1
                next_number = int(hunk.group(3))
            else:
                target = _TARGET_START_RE.search(line)
                if target:
                    next_number = int(target.group(1))
                old_left = new_left = 0
            result.append(DiffLine(None, line, DiffLineKind.HEADER))
            continue

        if in_hunk and line.startswith("\\"):
            result.append(DiffLine(None, line, DiffLineKind.METADATA))
            continue

        if not in_hunk and line.startswith(_METADATA_PREFIXES):
            result.append(DiffLine(None, line, DiffLineKind.METADATA))
            continue

        if line.startswith("+"):
            result.append(DiffLine(next_number, line[1:], DiffLineKind.ADDED))
            next_number += 1
            new_left -= 1
        elif line.startswith("-"):
            result.append(DiffLine(None, line[1:], DiffLineKind.DELETED))
            old_left -= 1
        elif line.startswith(" "):
            result.append(DiffLine(next_number, line[1:], DiffLineKind.CONTEXT))
            next_number += 1
            old_left -= 1
            new_left -= 1
        elif line or in_hunk:
            # Marker column absent.
            result.append(DiffLine(next_number, line, DiffLineKind.CONTEXT))
            next_number += 1
            old_left -= 1
            new_left -= 1
        else:
            result.append(DiffLine(None, "", DiffLineKind.CONTEXT))

        old_left = max(old_left, 0)
        new_left = max(new_left, 0)

    return result


def summarize_numstat(sha: str, rows: list[tuple[int, int, str]]) -> DiffStats:
    extensions = Counter(PurePosixPath(path).suffix.lower() for _, _, path in rows)
    return DiffStats(
        sha=sha,
        file_count=len(rows),
        lines_added=sum(added for added, _, _ in rows),
        lines_deleted=sum(deleted for _, deleted, _ in rows),
        extensions=dict(sorted(extensions.items())),
    )
