from __future__ import annotations

from collections.abc import Sequence


class CommitTrailError(Exception):
    """Base class for every failure raised by the engine."""


class InvalidRepository(CommitTrailError, ValueError):
    def __init__(self, path: str) -> None:
        super().__init__(f"Not a git repository: {path}")
        self.path = path


class InvalidRepositoryURL(CommitTrailError, ValueError):
    def __init__(self, url: str) -> None:
        super().__init__(f"Invalid repository URL: {url}")
        self.url = url


class CommandFailure(CommitTrailError, RuntimeError):
    """A git invocation exited nonzero."""

    def __init__(self, args_vector: Sequence[str], stderr: str, returncode: int | None = None) -> None:
        self.args_vector = tuple(args_vector)
        self.stderr = stderr
        self.returncode = returncode
        command = " ".join(self.args_vector)
        detail = stderr.strip() or f"exit status {returncode}"
        super().__init__(f"git command failed: {command}: {detail}")


class ParseFailure(CommitTrailError, ValueError):
    pass


class NotFound(CommitTrailError, LookupError):
    pass


class CacheCorrupt(CommitTrailError, ValueError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Unreadable cache file {path}: {reason}")
        self.path = path
