from __future__ import annotations

import re
from pathlib import Path

from commit_trail.domain.errors import CommandFailure, InvalidRepository, NotFound
from commit_trail.domain.models import ChangedFile, Commit
from commit_trail.infrastructure.git_output_parser import (
    COMMIT_FORMAT,
    parse_commit_record,
    parse_commit_records,
    parse_lines,
    parse_name_status,
    parse_numstat,
)
from commit_trail.infrastructure.process_runner import ProcessRunner
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)

_FULL_HASH_RE = re.compile(r"^[0-9a-f]{40}(?:[0-9a-f]{24})?$")

_MISSING_OBJECT_MARKERS = (
    "unknown revision",
    "bad object",
    "bad revision",
    "does not exist",
    "not a valid object name",
    "exists on disk, but not in",
)


def _is_missing(error: CommandFailure) -> bool:
    text = error.stderr.lower()
    return any(marker in text for marker in _MISSING_OBJECT_MARKERS)


class GitCliReader:
    def __init__(self, repo_path: str | Path, runner: ProcessRunner | None = None) -> None:
        path = Path(repo_path).expanduser().resolve()
        if not (path / ".git").exists():
            raise InvalidRepository(str(path))
        self._path = path
        self._runner = runner or ProcessRunner()

    @property
    def path(self) -> Path:
        return self._path

    async def _run(self, *args: str, input_text: str | None = None) -> str:
        return await self._runner.execute(
            ["-c", "core.quotePath=false", *args], self._path, input_text
        )

    # History

    async def has_commits(self) -> bool:
        try:
            await self._run("rev-parse", "--verify", "--quiet", "HEAD")
        except CommandFailure:
            return False
        return True

    async def list_all_shas(self) -> list[str]:
        """Every commit reachable from HEAD, oldest first."""
        if not await self.has_commits():
            return []
        return parse_lines(await self._run("rev-list", "--reverse", "HEAD"))

    async def list_shas_since(self, last_sha: str) -> list[str]:
        """Commits reachable from HEAD but not from ``last_sha``, oldest first.

        An empty list means there is nothing new.
        """
        return parse_lines(await self._run("rev-list", "--reverse", f"{last_sha}..HEAD"))

    async def first_n_shas(self, n: int) -> list[str]:
        # --reverse applies after --max-count, so "rev-list --reverse -n N"
        # would give the newest N. Slice the full oldest-first list instead.
        if n <= 0:
            return []
        return (await self.list_all_shas())[:n]

    async def is_ancestor(self, ancestor: str, descendant: str = "HEAD") -> bool:
        try:
            await self._run("merge-base", "--is-ancestor", ancestor, descendant)
        except CommandFailure as e:
            if e.returncode == 1:
                return False
            raise
        return True

    # Commit details

    async def commit_detail(self, sha: str) -> Commit:
        try:
            output = await self._run("log", "-1", f"--format={COMMIT_FORMAT}", sha, "--")
        except CommandFailure as e:
            if _is_missing(e):
                raise NotFound(f"Unknown commit: {sha}") from e
            raise
        return parse_commit_record(output)

    async def resolve_commits(self, revs: list[str]) -> dict[str, str]:
        """Full commit hashes for ``revs``, resolved with one ``cat-file`` call.

        Accepts anything git can peel to a commit: full or abbreviated
        hashes, refs, ``HEAD~2``. Revisions that do not name a commit are left out.
        """
        if not revs:
            return {}
        output = await self._run(
            "cat-file", "--batch-check=%(objectname)",
            input_text="".join(f"{rev}^{{commit}}\n" for rev in revs),
        )
        resolved: dict[str, str] = {}
        for rev, line in zip(revs, output.splitlines()):
            if _FULL_HASH_RE.match(line):
                resolved[rev] = line
            else:
                logger.debug("revision did not resolve to a commit", rev=rev, answer=line)
        return resolved

    async def commit_details(self, shas: list[str]) -> list[Commit]:
        """Fetch many commits with one ``git log --stdin`` call.

        Requests may be abbreviated hashes or refs; each is resolved first.
        Unparseable records and unknown revisions are dropped. Results follow
        the order of ``shas``, whatever order git emits them in.
        """
        if not shas:
            return []
        resolved = await self.resolve_commits(shas)
        full = list(dict.fromkeys(resolved.values()))
        if not full:
            return []
        output = await self._run(
            "log", "--stdin", "--no-walk=unsorted", f"--format={COMMIT_FORMAT}",
            input_text="\n".join(full) + "\n",
        )
        by_sha = {c.sha: c for c in parse_commit_records(output)}
        return [
            by_sha[resolved[rev]]
            for rev in shas
            if rev in resolved and resolved[rev] in by_sha
        ]

    async def tags_at(self, sha: str) -> list[str]:
        return parse_lines(await self._run("tag", "--points-at", sha))

    # Changes and content

    async def changed_files(self, sha: str) -> list[ChangedFile]:
        output = await self._run(
            "diff-tree", "--no-commit-id", "--name-status", "-r", "--root", sha
        )
        return parse_name_status(output)

    async def changed_files_between(self, from_sha: str, to_sha: str) -> list[ChangedFile]:
        output = await self._run("diff", "--name-status", from_sha, to_sha)
        return parse_name_status(output)

    async def all_file_paths(self, sha: str) -> list[str]:
        """Full recursive listing at ``sha``. Deleted paths are not included."""
        return parse_lines(await self._run("ls-tree", "-r", "--name-only", sha))

    async def file_diff(self, sha: str, path: str) -> str:
        return await self._run("show", "--format=", sha, "--", path)

    async def file_diff_between(self, from_sha: str, to_sha: str, path: str) -> str:
        return await self._run("diff", from_sha, to_sha, "--", path)

    async def file_content(self, sha: str, path: str) -> str:
        """Content of ``path`` at ``sha``.

        For a path deleted at ``sha`` ask for the parent revision instead.
        """
        try:
            return await self._run("show", f"{sha}:{path}")
        except CommandFailure as e:
            if _is_missing(e):
                raise NotFound(f"{path} does not exist at {sha[:8]}") from e
            raise

    async def numstat(self, sha: str) -> list[tuple[int, int, str]]:
        output = await self._run(
            "diff-tree", "--no-commit-id", "--numstat", "-r", "--root", sha
        )
        return parse_numstat(output)

    # Working tree and remote

    async def checkout(self, sha: str) -> None:
        logger.info("checkout", repo=str(self._path), sha=sha[:8])
        await self._run("checkout", "--quiet", sha)

    async def default_branch(self) -> str:
        try:
            output = await self._run("symbolic-ref", "--short", "refs/remotes/origin/HEAD")
            return output.strip().removeprefix("origin/")
        except CommandFailure:
            pass

        candidates = ["main", "master"]
        try:
            configured = (await self._run("config", "--get", "init.defaultBranch")).strip()
            if configured:
                candidates.insert(0, configured)
        except CommandFailure:
            pass
        for branch in candidates:
            try:
                await self._run("rev-parse", "--verify", "--quiet", f"refs/heads/{branch}")
            except CommandFailure:
                continue
            return branch
        raise NotFound(f"No default branch found in {self._path}")

    async def checkout_default_branch(self) -> str:
        branch = await self.default_branch()
        logger.info("checkout default branch", repo=str(self._path), branch=branch)
        await self._run("checkout", "--quiet", branch)
        return branch

    async def fetch(self) -> None:
        await self._run("fetch", "origin")

    async def pull(self) -> None:
        await self._run("pull", "--ff-only", "origin")


async def clone_repository(
    url: str, destination: str | Path, runner: ProcessRunner | None = None
) -> GitCliReader:
    destination = Path(destination).expanduser().resolve()
    destination.parent.mkdir(parents=True, exist_ok=True)
    runner = runner or ProcessRunner()
    logger.info("clone", url=url, destination=str(destination))
    await runner.execute(["clone", url, str(destination)], destination.parent)
    return GitCliReader(destination, runner)
