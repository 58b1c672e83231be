from __future__ import annotations

import asyncio
from pathlib import Path

from commit_trail.application.events import EngineEvent, EventChannel, Listener
from commit_trail.config import Settings
from commit_trail.domain.models import (
    ChangedFile,
    ChangeStatus,
    Commit,
    DiffStats,
    FileView,
    Repository,
    ReviewProgressRecord,
    Selection,
    TreeView,
)
from commit_trail.domain.ports import CommitReader
from commit_trail.infrastructure.diff_tree_builder import build_tree, parse_diff, summarize_numstat
from commit_trail.infrastructure.git_cli_reader import GitCliReader, clone_repository
from commit_trail.infrastructure.history_cache import HistoryCache
from commit_trail.infrastructure.process_runner import ProcessRunner
from commit_trail.infrastructure.review_progress import ReviewProgressStore
from commit_trail.infrastructure.workspace import Workspace, parse_repository_url
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)


class RepositoryCoordinator:
    """Entry point for everything done against one repository.

    Build exactly one per repository: working-tree mutations (checkout,
    fetch, pull) are serialised by this object's lock, and the cache and
    progress stores serialise their own writes.
    """

    def __init__(
        self,
        name: str,
        reader: CommitReader,
        history: HistoryCache,
        progress: ReviewProgressStore,
        settings: Settings | None = None,
    ) -> None:
        self.name = name
        self.reader = reader
        self.history = history
        self.progress_store = progress
        self.settings = settings or Settings()
        self.events = EventChannel()
        self._mutation_lock = asyncio.Lock()
        self._batch_slots = asyncio.Semaphore(max(1, self.settings.max_parallel_batches))

    def subscribe(self, listener: Listener):
        return self.events.subscribe(listener)

    def _emit(self, kind: str, **payload) -> None:
        self.events.emit(EngineEvent(kind=kind, repository=self.name, payload=payload))

    # History

    async def synchronize_history(self) -> list[str]:
        shas = await self.history.synchronize(self.reader)
        self._emit("history", count=len(shas))
        return shas

    async def cached_history(self) -> list[str]:
        """Cached identifiers, synchronizing first if nothing is cached."""
        record = await self.history.load()
        if record is None:
            return await self.synchronize_history()
        return list(record.shas)

    async def load_commits(self, shas: list[str]) -> list[Commit]:
        """Commit details for ``shas`` in the given order.

        Requests go out in windows of ``batch_size`` with at most
        ``max_parallel_batches`` windows in flight.
        """
        size = max(1, self.settings.batch_size)
        windows = [shas[i:i + size] for i in range(0, len(shas), size)]

        async def fetch(window: list[str]) -> list[Commit]:
            async with self._batch_slots:
                return await self.reader.commit_details(window)

        batches = await asyncio.gather(*(fetch(w) for w in windows))
        return [commit for batch in batches for commit in batch]

    async def commit_page(self, offset: int = 0, limit: int | None = None) -> list[Commit]:
        """A page of commits, newest first."""
        limit = self.settings.page_size if limit is None else limit
        shas = await self.cached_history()
        newest_first = shas[::-1]
        return await self.load_commits(newest_first[max(offset, 0):max(offset, 0) + max(limit, 0)])

    async def commit(self, sha: str) -> Commit:
        return await self.reader.commit_detail(sha)

    # Trees and files

    async def _changed_files(self, selection: Selection) -> list[ChangedFile]:
        if selection.browse:
            return []
        if selection.is_single:
            return await self.reader.changed_files(selection.to_sha)
        return await self.reader.changed_files_between(selection.from_sha, selection.to_sha)

    async def load_tree(self, selection: Selection) -> TreeView:
        changed, all_paths = await asyncio.gather(
            self._changed_files(selection),
            self.reader.all_file_paths(selection.to_sha),
        )
        return TreeView(selection=selection, nodes=build_tree(all_paths, changed), changed_files=changed)

    async def select_file(
        self,
        selection: Selection,
        path: str,
        changed_files: list[ChangedFile] | None = None,
    ) -> FileView:
        """Diff lines and full content for one file of a selection.

        A deleted file's content comes from the revision before the change:
        the first parent of a single commit, or ``from_sha`` of a pair.
        """
        if changed_files is None:
            changed_files = await self._changed_files(selection)
        status = next((f.status for f in changed_files if f.path == path), None)

        if status is None:
            content = await self.reader.file_content(selection.to_sha, path)
            return FileView(path=path, status=None, diff_lines=[], content=content)

        if selection.is_single:
            diff_text = await self.reader.file_diff(selection.to_sha, path)
        else:
            diff_text = await self.reader.file_diff_between(selection.from_sha, selection.to_sha, path)
        diff_lines = parse_diff(diff_text)

        if status is ChangeStatus.DELETED:
            if selection.is_single:
                commit = await self.reader.commit_detail(selection.to_sha)
                source_sha = commit.parent_shas[0] if commit.parent_shas else None
            else:
                source_sha = selection.from_sha
            content = await self.reader.file_content(source_sha, path) if source_sha else None
        else:
            content = await self.reader.file_content(selection.to_sha, path)

        return FileView(path=path, status=status, diff_lines=diff_lines, content=content)

    async def diff_stats(self, sha: str) -> DiffStats:
        return summarize_numstat(sha, await self.reader.numstat(sha))

    # Review progress

    async def progress(self) -> ReviewProgressRecord:
        return await self.progress_store.load()

    async def toggle_reviewed(self, sha: str) -> ReviewProgressRecord:
        async with self.progress_store.lock:
            record = ReviewProgressStore.toggle(await self.progress_store.load(), sha)
            await self.progress_store.save(record)
        self._emit("progress", sha=sha, reviewed=record.is_reviewed(sha))
        return record

    async def _record_checkout(self, sha: str | None) -> ReviewProgressRecord:
        async with self.progress_store.lock:
            record = ReviewProgressStore.set_checkout(await self.progress_store.load(), sha)
            await self.progress_store.save(record)
        self._emit("checkout", sha=sha)
        return record

    # Working tree

    async def checkout(self, sha: str) -> ReviewProgressRecord:
        async with self._mutation_lock:
            await self.reader.checkout(sha)
            return await self._record_checkout(sha)

    async def checkout_default(self) -> ReviewProgressRecord:
        async with self._mutation_lock:
            await self.reader.checkout_default_branch()
            return await self._record_checkout(None)

    async def refresh_from_remote(self) -> list[str]:
        """fetch, return to the default branch, pull, then extend the cache.

        Returns the identifiers that were appended. A failure part way
        leaves the existing cache untouched.
        """
        async with self._mutation_lock:
            await self.reader.fetch()
            await self.reader.checkout_default_branch()
            await self._record_checkout(None)
            await self.reader.pull()
            before = await self.history.load()
            shas = await self.synchronize_history()
        known = set(before.shas) if before else set()
        new_shas = [sha for sha in shas if sha not in known]
        logger.info("refreshed from remote", repository=self.name, new_commits=len(new_shas))
        return new_shas


def open_repository(
    working_dir: str | Path,
    settings: Settings | None = None,
    reader: CommitReader | None = None,
) -> RepositoryCoordinator:
    """Coordinator for a local working copy, state kept in the workspace."""
    settings = settings or Settings.from_env()
    if reader is None:
        reader = GitCliReader(working_dir, ProcessRunner(settings.git_binary))
    state_dir = Workspace(settings.home).state_dir_for(working_dir)
    return RepositoryCoordinator(
        name=Path(working_dir).expanduser().resolve().name,
        reader=reader,
        history=HistoryCache(state_dir / "commits.json"),
        progress=ReviewProgressStore(state_dir / "progress.json"),
        settings=settings,
    )


async def clone_and_open(url: str, settings: Settings | None = None) -> RepositoryCoordinator:
    """Clone ``url`` into the workspace, record it, and open it."""
    settings = settings or Settings.from_env()
    workspace = Workspace(settings.home)
    owner, name = parse_repository_url(url)
    source = workspace.source_dir(owner, name)
    reader = await clone_repository(url, source, ProcessRunner(settings.git_binary))
    workspace.save_repository(Repository(owner=owner, name=name, url=url))
    coordinator = open_repository(source, settings, reader=reader)
    coordinator.name = f"{owner}/{name}"
    return coordinator
