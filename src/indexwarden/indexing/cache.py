"""In-memory index cache: absolute path → ParseResult, plus refresh time.

Only the refresh coordinator writes to the store, and it always swaps
in a complete mapping, so readers never observe a half-built index.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from indexwarden.indexing.schemas import ParseResult


@dataclass
class IndexCacheStore:
    by_file: dict[str, ParseResult] = field(
        default_factory=lambda: dict[str, ParseResult]()
    )
    cached_at: float = 0.0

    def __len__(self) -> int:
        return len(self.by_file)

    def __contains__(self, path: object) -> bool:
        return path in self.by_file

    def get(self, path: str) -> ParseResult | None:
        return self.by_file.get(path)

    def replace(
        self, mapping: Mapping[str, ParseResult], at: float
    ) -> None:
        """Replace (never merge) the whole cache."""
        self.by_file = dict(mapping)
        self.cached_at = at

    def clear(self, at: float) -> None:
        """Empty the cache but still record when the attempt happened."""
        self.by_file = {}
        self.cached_at = at
