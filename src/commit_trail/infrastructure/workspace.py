"""On-disk layout of cloned repositories and their state files.

    <home>/repositories/<owner>/<name>/
        source/          the clone
        <name>.json      repository metadata
        commits.json     cached commit identifiers
        progress.json    review progress
    <home>/local/<name>-<digest>/   state for working copies opened by path
"""

from __future__ import annotations

import hashlib
import shutil
from pathlib import Path

from commit_trail.domain.errors import CacheCorrupt, InvalidRepositoryURL
from commit_trail.domain.models import Repository
from commit_trail.infrastructure.json_files import parse_timestamp, read_json, write_json
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)


def parse_repository_url(url: str) -> tuple[str, str]:
    """Split an HTTPS or SCP-style SSH clone URL into (owner, name)."""
    trimmed = url.strip()
    stripped = trimmed.removesuffix(".git").rstrip("/")

    if "://" in stripped:
        components = stripped.split("://", 1)[1].split("/")
        if len(components) < 3:
            raise InvalidRepositoryURL(url)
        owner, name = components[-2], components[-1]
    elif "@" in stripped and ":" in stripped:
        parts = stripped.rsplit(":", 1)[1].split("/")
        if len(parts) < 2:
            raise InvalidRepositoryURL(url)
        owner, name = parts[-2], parts[-1]
    else:
        raise InvalidRepositoryURL(url)

    if not owner or not name:
        raise InvalidRepositoryURL(url)
    return owner, name


class Workspace:
    def __init__(self, home: str | Path) -> None:
        self._home = Path(home).expanduser()

    @property
    def home(self) -> Path:
        return self._home

    @property
    def repositories_dir(self) -> Path:
        return self._home / "repositories"

    def repository_dir(self, owner: str, name: str) -> Path:
        return self.repositories_dir / owner / name

    def source_dir(self, owner: str, name: str) -> Path:
        return self.repository_dir(owner, name) / "source"

    def metadata_path(self, owner: str, name: str) -> Path:
        return self.repository_dir(owner, name) / f"{name}.json"

    def state_dir_for(self, working_dir: str | Path) -> Path:
        """State directory for a working copy.

        Clones under ``repositories/`` keep their state next to ``source/``;
        any other path gets a directory keyed by its resolved location.
        """
        path = Path(working_dir).expanduser().resolve()
        repos = self.repositories_dir.resolve()
        if path.name == "source" and path.parent.parent.parent == repos:
            return path.parent
        digest = hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:12]
        return self._home / "local" / f"{path.name}-{digest}"

    def save_repository(self, repository: Repository) -> None:
        write_json(self.metadata_path(repository.owner, repository.name), {
            "owner": repository.owner,
            "name": repository.name,
            "url": repository.url,
            "cloned_at": repository.cloned_at.isoformat(),
        })

    def load_repository(self, path: Path) -> Repository:
        data = read_json(path)
        if data is None:
            raise CacheCorrupt(str(path), "missing")
        try:
            return Repository(
                owner=data["owner"],
                name=data["name"],
                url=data["url"],
                cloned_at=parse_timestamp(data.get("cloned_at"), path),
            )
        except KeyError as e:
            raise CacheCorrupt(str(path), f"missing key {e}") from e

    def list_repositories(self) -> list[Repository]:
        """Stored repositories, most recently cloned first."""
        if not self.repositories_dir.is_dir():
            return []
        repositories: list[Repository] = []
        for owner_dir in sorted(self.repositories_dir.iterdir()):
            if not owner_dir.is_dir():
                continue
            for name_dir in sorted(owner_dir.iterdir()):
                metadata = name_dir / f"{name_dir.name}.json"
                if not metadata.is_file():
                    continue
                try:
                    repositories.append(self.load_repository(metadata))
                except CacheCorrupt as e:
                    logger.warning("skipping unreadable repository metadata", path=str(metadata), error=str(e))
        return sorted(repositories, key=lambda r: r.cloned_at, reverse=True)

    def exists(self, owner: str, name: str) -> bool:
        return self.source_dir(owner, name).exists()

    def delete(self, owner: str, name: str) -> None:
        """Remove the clone, its metadata and its cached state."""
        shutil.rmtree(self.repository_dir(owner, name))
        logger.info("repository removed", repository=f"{owner}/{name}")
