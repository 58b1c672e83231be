from __future__ import annotations

from typing import Protocol

from commit_trail.domain.models import ChangedFile, Commit


class HistorySource(Protocol):
    """The slice of a commit reader that history synchronization needs."""

    async def list_all_shas(self) -> list[str]: ...

    async def list_shas_since(self, last_sha: str) -> list[str]: ...

    async def is_ancestor(self, ancestor: str, descendant: str = "HEAD") -> bool: ...


class CommitReader(HistorySource, Protocol):
    async def first_n_shas(self, n: int) -> list[str]: ...

    async def commit_detail(self, sha: str) -> Commit: ...

    async def commit_details(self, shas: list[str]) -> list[Commit]: ...

    async def changed_files(self, sha: str) -> list[ChangedFile]: ...

    async def changed_files_between(self, from_sha: str, to_sha: str) -> list[ChangedFile]: ...

    async def all_file_paths(self, sha: str) -> list[str]: ...

    async def file_diff(self, sha: str, path: str) -> str: ...

    async def file_diff_between(self, from_sha: str, to_sha: str, path: str) -> str: ...

    async def file_content(self, sha: str, path: str) -> str: ...

    async def numstat(self, sha: str) -> list[tuple[int, int, str]]: ...

    async def checkout(self, sha: str) -> None: ...

    async def checkout_default_branch(self) -> str: ...

    async def fetch(self) -> None: ...

    async def pull(self) -> None: ...
