from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import PurePosixPath


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Commit:
    """A commit as parsed from `git log` output."""

    sha: str
    short_sha: str  # display only, not guaranteed unique
    author_name: str
    author_email: str
    date: datetime
    message: str
    parent_shas: tuple[str, ...] = ()

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0]

    @property
    def is_merge(self) -> bool:
        return len(self.parent_shas) > 1

    @property
    def is_root(self) -> bool:
        return not self.parent_shas


class ChangeStatus(Enum):
    ADDED = "A"
    MODIFIED = "M"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"

    @classmethod
    def from_letter(cls, letter: str) -> ChangeStatus:
        """Map a --name-status letter (e.g. "R100") to a status.

        Unknown letters fall back to MODIFIED.
        """
        try:
            return cls(letter[:1])
        except ValueError:
            return cls.MODIFIED


# Higher wins when a directory summarises its descendants.
# Renamed/copied are not propagated.
_PROPAGATION_ORDER = (ChangeStatus.ADDED, ChangeStatus.DELETED, ChangeStatus.MODIFIED)


@dataclass(frozen=True)
class ChangedFile:
    path: str
    status: ChangeStatus

    @property
    def file_name(self) -> str:
        return PurePosixPath(self.path).name

    @property
    def directory(self) -> str:
        parent = str(PurePosixPath(self.path).parent)
        return "" if parent == "." else parent


@dataclass
class FileTreeNode:
    """One node of the file tree shown for a revision or revision pair.

    ``status`` is only set on files that appear in the changed-file listing.
    A directory's status is derived on read through ``effective_status``.
    """

    name: str
    path: str
    is_directory: bool
    status: ChangeStatus | None = None
    children: list[FileTreeNode] = field(default_factory=list)
    expanded: bool = False  # presentation only

    @property
    def has_changed_descendant(self) -> bool:
        if self.status is not None:
            return True
        return any(child.has_changed_descendant for child in self.children)

    @property
    def effective_status(self) -> ChangeStatus | None:
        if self.status is not None:
            return self.status
        if not self.is_directory:
            return None
        found = {child.effective_status for child in self.children}
        for status in _PROPAGATION_ORDER:
            if status in found:
                return status
        return None

    def iter_files(self) -> Iterator[FileTreeNode]:
        if not self.is_directory:
            yield self
            return
        for child in self.children:
            yield from child.iter_files()


class DiffLineKind(Enum):
    CONTEXT = "context"
    ADDED = "added"
    DELETED = "deleted"
    HEADER = "header"
    METADATA = "metadata"


@dataclass(frozen=True)
class DiffLine:
    """A classified line of unified diff output.

    ``line_number`` tracks the target revision, so it is only present on
    context and added lines.
    """

    line_number: int | None
    content: str
    kind: DiffLineKind


@dataclass(frozen=True)
class HistoryCacheRecord:
    """Cached commit identifiers, oldest first. Append-only."""

    shas: tuple[str, ...] = ()
    last_updated: datetime = field(default_factory=utc_now)

    @property
    def last_sha(self) -> str | None:
        return self.shas[-1] if self.shas else None

    def extended(self, new_shas: list[str]) -> HistoryCacheRecord:
        """Return a copy with unseen identifiers appended in order."""
        known = set(self.shas)
        fresh: list[str] = []
        for sha in new_shas:
            if sha not in known:
                known.add(sha)
                fresh.append(sha)
        return HistoryCacheRecord(shas=self.shas + tuple(fresh), last_updated=utc_now())


@dataclass(frozen=True)
class ReviewProgressRecord:
    """Reviewed commits plus the commit currently checked out.

    ``checkout_sha`` of None means the default branch tip.
    """

    reviewed: frozenset[str] = frozenset()
    checkout_sha: str | None = None
    last_updated: datetime = field(default_factory=utc_now)

    def is_reviewed(self, sha: str) -> bool:
        return sha in self.reviewed

    def toggled(self, sha: str) -> ReviewProgressRecord:
        if sha in self.reviewed:
            reviewed = self.reviewed - {sha}
        else:
            reviewed = self.reviewed | {sha}
        return replace(self, reviewed=reviewed, last_updated=utc_now())

    def with_checkout(self, sha: str | None) -> ReviewProgressRecord:
        return replace(self, checkout_sha=sha, last_updated=utc_now())


@dataclass(frozen=True)
class DiffStats:
    """Diff summary handed to summary collaborators instead of full diff text."""

    sha: str
    file_count: int
    lines_added: int
    lines_deleted: int
    extensions: dict[str, int]  # extension (or "" for none) -> file count


@dataclass(frozen=True)
class Repository:
    owner: str
    name: str
    url: str
    cloned_at: datetime = field(default_factory=utc_now)

    @property
    def display_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class Selection:
    """A single revision, or an ordered (from, to) pair of revisions.

    ``browse`` selections show the tree at ``target`` without change status.
    """

    to_sha: str
    from_sha: str | None = None
    browse: bool = False

    @property
    def is_single(self) -> bool:
        return self.from_sha is None


@dataclass(frozen=True)
class TreeView:
    selection: Selection
    nodes: list[FileTreeNode]
    changed_files: list[ChangedFile]


@dataclass(frozen=True)
class FileView:
    """Everything needed to render one selected file."""

    path: str
    status: ChangeStatus | None
    diff_lines: list[DiffLine]
    content: str | None  # None when no earlier revision exists for a deleted file
