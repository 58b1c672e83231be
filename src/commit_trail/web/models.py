from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from commit_trail.domain.models import (
    ChangedFile,
    Commit,
    DiffLine,
    DiffStats,
    FileTreeNode,
    FileView,
    Repository,
    ReviewProgressRecord,
    TreeView,
)


class CommitOut(BaseModel):
    sha: str
    short_sha: str
    author_name: str
    author_email: str
    date: datetime
    subject: str
    message: str
    parent_shas: list[str]
    is_merge: bool

    @classmethod
    def from_commit(cls, commit: Commit) -> CommitOut:
        return cls(
            sha=commit.sha,
            short_sha=commit.short_sha,
            author_name=commit.author_name,
            author_email=commit.author_email,
            date=commit.date,
            subject=commit.subject,
            message=commit.message,
            parent_shas=list(commit.parent_shas),
            is_merge=commit.is_merge,
        )


class HistoryOut(BaseModel):
    count: int
    shas: list[str]


class ChangedFileOut(BaseModel):
    path: str
    status: str

    @classmethod
    def from_changed(cls, changed: ChangedFile) -> ChangedFileOut:
        return cls(path=changed.path, status=changed.status.name.lower())


class TreeNodeOut(BaseModel):
    name: str
    path: str
    is_directory: bool
    status: str | None
    effective_status: str | None
    children: list[TreeNodeOut]

    @classmethod
    def from_node(cls, node: FileTreeNode) -> TreeNodeOut:
        effective = node.effective_status
        return cls(
            name=node.name,
            path=node.path,
            is_directory=node.is_directory,
            status=node.status.name.lower() if node.status else None,
            effective_status=effective.name.lower() if effective else None,
            children=[cls.from_node(child) for child in node.children],
        )


class TreeOut(BaseModel):
    rev: str
    against: str | None
    changed_files: list[ChangedFileOut]
    nodes: list[TreeNodeOut]

    @classmethod
    def from_view(cls, view: TreeView) -> TreeOut:
        return cls(
            rev=view.selection.to_sha,
            against=view.selection.from_sha,
            changed_files=[ChangedFileOut.from_changed(f) for f in view.changed_files],
            nodes=[TreeNodeOut.from_node(n) for n in view.nodes],
        )


class DiffLineOut(BaseModel):
    line_number: int | None
    content: str
    kind: str

    @classmethod
    def from_line(cls, line: DiffLine) -> DiffLineOut:
        return cls(line_number=line.line_number, content=line.content, kind=line.kind.value)


class FileViewOut(BaseModel):
    path: str
    status: str | None
    diff_lines: list[DiffLineOut]
    content: str | None

    @classmethod
    def from_view(cls, view: FileView) -> FileViewOut:
        return cls(
            path=view.path,
            status=view.status.name.lower() if view.status else None,
            diff_lines=[DiffLineOut.from_line(line) for line in view.diff_lines],
            content=view.content,
        )


class ProgressOut(BaseModel):
    reviewed: list[str]
    checkout_sha: str | None
    last_updated: datetime

    @classmethod
    def from_record(cls, record: ReviewProgressRecord) -> ProgressOut:
        return cls(
            reviewed=sorted(record.reviewed),
            checkout_sha=record.checkout_sha,
            last_updated=record.last_updated,
        )


class DiffStatsOut(BaseModel):
    sha: str
    file_count: int
    lines_added: int
    lines_deleted: int
    extensions: dict[str, int]

    @classmethod
    def from_stats(cls, stats: DiffStats) -> DiffStatsOut:
        return cls(
            sha=stats.sha,
            file_count=stats.file_count,
            lines_added=stats.lines_added,
            lines_deleted=stats.lines_deleted,
            extensions=stats.extensions,
        )


class RefreshOut(BaseModel):
    new_shas: list[str]


class RepositoryOut(BaseModel):
    owner: str
    name: str
    display_name: str
    url: str
    cloned_at: datetime

    @classmethod
    def from_repository(cls, repository: Repository) -> RepositoryOut:
        return cls(
            owner=repository.owner,
            name=repository.name,
            display_name=repository.display_name,
            url=repository.url,
            cloned_at=repository.cloned_at,
        )
