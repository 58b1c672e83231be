from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path


_DEFAULT_HOME = Path.home() / ".commit-trail"


@dataclass(frozen=True)
class Settings:
    home: Path = _DEFAULT_HOME
    git_binary: str = "git"
    batch_size: int = 5  # identifiers per batch detail query
    max_parallel_batches: int = 2
    page_size: int = 20

    @classmethod
    def from_env(cls) -> Settings:
        home = os.getenv("COMMIT_TRAIL_HOME")
        return cls(
            home=Path(home).expanduser() if home else _DEFAULT_HOME,
            git_binary=os.getenv("COMMIT_TRAIL_GIT", "git"),
        )

    def with_overrides(self, **overrides) -> Settings:
        """Apply non-None overrides, e.g. from CLI flags."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
