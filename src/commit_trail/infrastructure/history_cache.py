from __future__ import annotations

import asyncio
from pathlib import Path

from commit_trail.domain.errors import CacheCorrupt, CommandFailure
from commit_trail.domain.models import HistoryCacheRecord, utc_now
from commit_trail.domain.ports import HistorySource
from commit_trail.infrastructure.json_files import parse_timestamp, read_json, write_json
from commit_trail.logging_config import get_logger


logger = get_logger(__name__)


class HistoryCache:
    """Persists the oldest-first commit identifier list of one repository.

    The list is append-only: synchronization only ever adds identifiers
    after the cached tip. One instance per repository; its lock serialises
    read-modify-write cycles on the file.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> HistoryCacheRecord | None:
        data = read_json(self._path)
        if data is None:
            return None
        shas = data.get("shas")
        if not isinstance(shas, list) or not all(isinstance(s, str) for s in shas):
            raise CacheCorrupt(str(self._path), "'shas' must be a list of strings")
        return HistoryCacheRecord(
            shas=tuple(shas),
            last_updated=parse_timestamp(data.get("last_updated"), self._path),
        )

    def _write(self, record: HistoryCacheRecord) -> None:
        write_json(self._path, {
            "shas": list(record.shas),
            "last_updated": record.last_updated.isoformat(),
        })
        logger.debug("history cache saved", path=str(self._path), count=len(record.shas))

    async def load(self) -> HistoryCacheRecord | None:
        """Persisted record, or None when the repository was never synced."""
        return await asyncio.to_thread(self._read)

    async def save(self, record: HistoryCacheRecord) -> None:
        async with self._lock:
            await asyncio.to_thread(self._write, record)

    async def synchronize(self, source: HistorySource) -> list[str]:
        """Bring the cache up to date with ``source`` and return the full list.

        With a cache, only commits after the cached tip are requested and
        appended. Without one, the full history is fetched. If the cached
        tip is neither an ancestor nor a descendant of HEAD the upstream
        history was rewritten and the cache is rebuilt from scratch.
        """
        async with self._lock:
            record = await asyncio.to_thread(self._read)
            if record is None or not record.shas:
                return await self._rebuild(source)

            tip = record.last_sha
            if not await self._tip_reachable(source, tip):
                logger.warning(
                    "cached history diverged from HEAD, rebuilding",
                    path=str(self._path), cached_tip=tip,
                )
                return await self._rebuild(source)

            new_shas = await source.list_shas_since(tip)
            if not new_shas:
                return list(record.shas)
            record = record.extended(new_shas)
            await asyncio.to_thread(self._write, record)
            logger.info("history cache extended", path=str(self._path), added=len(new_shas))
            return list(record.shas)

    async def append(self, new_shas: list[str]) -> HistoryCacheRecord:
        """Append identifiers discovered elsewhere. Known ones are skipped."""
        async with self._lock:
            record = await asyncio.to_thread(self._read) or HistoryCacheRecord()
            extended = record.extended(new_shas)
            if extended.shas != record.shas or not self._path.exists():
                await asyncio.to_thread(self._write, extended)
                return extended
            return record

    async def _rebuild(self, source: HistorySource) -> list[str]:
        shas = await source.list_all_shas()
        await asyncio.to_thread(self._write, HistoryCacheRecord(shas=tuple(shas), last_updated=utc_now()))
        logger.info("history cache rebuilt", path=str(self._path), count=len(shas))
        return shas

    @staticmethod
    async def _tip_reachable(source: HistorySource, tip: str) -> bool:
        try:
            if await source.is_ancestor(tip, "HEAD"):
                return True
            # HEAD may simply be an older checkout inside the cached history.
            return await source.is_ancestor("HEAD", tip)
        except CommandFailure:
            return False
