from __future__ import annotations

import asyncio
from pathlib import Path

from commit_trail.domain.errors import CacheCorrupt
from commit_trail.domain.models import ReviewProgressRecord
from commit_trail.infrastructure.json_files import parse_timestamp, read_json, write_json


class ReviewProgressStore:
    """Persists which commits were reviewed and which one is checked out.

    Callers mutate a record in memory (``toggle``/``set_checkout`` return
    new records) and persist it with an explicit ``save``.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def lock(self) -> asyncio.Lock:
        """Held by callers across load-mutate-save sequences."""
        return self._lock

    def _read(self) -> ReviewProgressRecord:
        data = read_json(self._path)
        if data is None:
            return ReviewProgressRecord()
        reviewed = data.get("reviewed", [])
        checkout = data.get("checkout_sha")
        if not isinstance(reviewed, list) or not all(isinstance(s, str) for s in reviewed):
            raise CacheCorrupt(str(self._path), "'reviewed' must be a list of strings")
        if checkout is not None and not isinstance(checkout, str):
            raise CacheCorrupt(str(self._path), "'checkout_sha' must be a string or null")
        return ReviewProgressRecord(
            reviewed=frozenset(reviewed),
            checkout_sha=checkout,
            last_updated=parse_timestamp(data.get("last_updated"), self._path),
        )

    def _write(self, record: ReviewProgressRecord) -> None:
        write_json(self._path, {
            "reviewed": sorted(record.reviewed),
            "checkout_sha": record.checkout_sha,
            "last_updated": record.last_updated.isoformat(),
        })

    async def load(self) -> ReviewProgressRecord:
        """Stored record, or an empty one if nothing was saved yet."""
        return await asyncio.to_thread(self._read)

    async def save(self, record: ReviewProgressRecord) -> None:
        """Overwrite the stored record."""
        await asyncio.to_thread(self._write, record)

    @staticmethod
    def toggle(record: ReviewProgressRecord, sha: str) -> ReviewProgressRecord:
        return record.toggled(sha)

    @staticmethod
    def set_checkout(record: ReviewProgressRecord, sha: str | None) -> ReviewProgressRecord:
        return record.with_checkout(sha)
