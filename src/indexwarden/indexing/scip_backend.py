"""SCIP-backed high-fidelity parser with a single-flight refresh.

The backend wraps an external indexer (scip-typescript). Results are
served from an in-memory cache of the decoded artifact; the cache is
rebuilt when it is empty, older than the TTL, or older than the file
being asked about. Concurrent callers that need a refresh share one
in-flight task, so at most one indexer process runs at a time.

A failed refresh empties the cache and stamps the attempt time. An
empty cache always requires a refresh, so a broken indexer is retried
on the next call (no backoff).
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from collections.abc import Awaitable, Callable, Iterable
from functools import partial
from pathlib import Path
from typing import Any

from indexwarden.config import Settings
from indexwarden.constants import (
    DEFAULT_CACHE_TTL_SECONDS,
    DEFAULT_INDEXER_TIMEOUT_SECONDS,
    DEFAULT_SCIP_EXTENSIONS,
    MAX_SUBPROCESS_OUTPUT_BYTES,
    SCIP_PARSER_NAME,
)
from indexwarden.errors import classify_error, describe_error
from indexwarden.indexing.cache import IndexCacheStore
from indexwarden.indexing.schemas import ParseResult
from indexwarden.indexing.scip_decode import ScipDecoder, default_decoder
from indexwarden.indexing.scip_extract import extract_parse_result
from indexwarden.indexing.scip_runner import run_scip_index

logger = logging.getLogger(__name__)

# (workspace root, artifact path, timeout seconds) → artifact written
CommandRunner = Callable[[Path, Path, float], Awaitable[None]]
Clock = Callable[[], float]


def _mtime(path: Path) -> float | None:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


class ScipTypescriptBackend:
    """High-fidelity backend for TS/JS files inside one workspace."""

    name = SCIP_PARSER_NAME

    def __init__(
        self,
        workspace_root: Path | str,
        *,
        enabled: bool = False,
        cache_ttl: float = DEFAULT_CACHE_TTL_SECONDS,
        timeout: float = DEFAULT_INDEXER_TIMEOUT_SECONDS,
        output_path: Path | str | None = None,
        extensions: Iterable[str] = DEFAULT_SCIP_EXTENSIONS,
        command_runner: CommandRunner | None = None,
        decoder: ScipDecoder | None = None,
        clock: Clock = time.time,
        max_output_bytes: int = MAX_SUBPROCESS_OUTPUT_BYTES,
    ) -> None:
        self.workspace_root = Path(workspace_root).resolve()
        self.enabled = enabled
        self.cache_ttl = cache_ttl
        self.timeout = timeout
        self.output_path = (
            Path(output_path).resolve()
            if output_path is not None
            else self.workspace_root / ".indexwarden" / "scip" / "index.scip"
        )
        self.extensions = frozenset(e.lower() for e in extensions)
        self._command_runner: CommandRunner = command_runner or partial(
            run_scip_index, max_output_bytes=max_output_bytes
        )
        self._decoder: ScipDecoder = decoder or default_decoder(
            max_output_bytes=max_output_bytes
        )
        self._clock = clock
        self._store = IndexCacheStore()
        self._refresh_task: asyncio.Task[None] | None = None
        self._generation = 0
        self.refresh_count = 0
        self.last_error: str | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, **overrides: Any
    ) -> ScipTypescriptBackend:
        kwargs: dict[str, Any] = {
            "enabled": settings.scip_enabled,
            "cache_ttl": settings.scip_cache_ttl_seconds,
            "timeout": settings.scip_timeout_seconds,
            "output_path": settings.resolved_scip_output,
            "extensions": settings.scip_extensions,
            "decoder": default_decoder(
                settings.scip_proto_module,
                settings.scip_max_output_bytes,
            ),
            "max_output_bytes": settings.scip_max_output_bytes,
        }
        kwargs.update(overrides)
        return cls(settings.resolved_workspace, **kwargs)

    @property
    def store(self) -> IndexCacheStore:
        return self._store

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None

    def supports(self, file_path: Path | str) -> bool:
        """Enabled, supported extension, and inside the workspace."""
        if not self.enabled:
            return False
        path = Path(file_path)
        if path.suffix.lower() not in self.extensions:
            return False
        return path.resolve().is_relative_to(self.workspace_root)

    async def parse_file(
        self, file_path: Path | str, content: str | None = None
    ) -> ParseResult | None:
        """Cached SCIP result for *file_path*, or None to defer.

        *content* is accepted for interface parity with the fallback
        parser; SCIP reads files from disk itself.
        """
        if not self.supports(file_path):
            return None
        path = Path(file_path).resolve()

        if self._refresh_task is not None:
            # Joined callers read whatever that refresh produced.
            await asyncio.shield(self._refresh_task)
            return self._store.get(str(path))

        observed = self._generation
        if await self.should_refresh(path):
            await self._refresh(since=observed)
        return self._store.get(str(path))

    async def should_refresh(self, target_file: Path) -> bool:
        if len(self._store) == 0:
            return True
        if self._clock() - self._store.cached_at > self.cache_ttl:
            return True
        file_mtime, index_mtime = await asyncio.gather(
            asyncio.to_thread(_mtime, target_file),
            asyncio.to_thread(_mtime, self.output_path),
        )
        if file_mtime is None or index_mtime is None:
            return True
        return file_mtime > index_mtime

    async def refresh(self) -> None:
        """Force a refresh, joining one already in flight."""
        await self._refresh(since=None)

    async def _refresh(self, since: int | None) -> None:
        if self._refresh_task is None:
            if since is not None and since != self._generation:
                # Someone refreshed after this caller looked; reuse it.
                return
            self._refresh_task = asyncio.create_task(self._run_refresh())
        await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> None:
        self.refresh_count += 1
        try:
            await asyncio.to_thread(
                os.makedirs, self.output_path.parent, exist_ok=True
            )
            await self._command_runner(
                self.workspace_root, self.output_path, self.timeout
            )
            documents = await self._decoder(self.output_path, self.timeout)
            next_by_file: dict[str, ParseResult] = {}
            for doc in documents:
                relative = (doc.relative_path or "").strip()
                if not relative:
                    continue
                absolute = (self.workspace_root / relative).resolve()
                next_by_file[str(absolute)] = extract_parse_result(doc)
            self._store.replace(next_by_file, self._clock())
            self.last_error = None
            logger.info(
                "SCIP index refreshed: %d documents (%s)",
                len(next_by_file),
                self.output_path,
            )
        except Exception as exc:  # noqa: BLE001
            self.last_error = describe_error(exc)
            logger.warning(
                "SCIP backend refresh failed; falling back to parser "
                "(workspace=%s, output=%s, class=%s, error=%s)",
                self.workspace_root,
                self.output_path,
                classify_error(exc).value,
                self.last_error,
            )
            self._store.clear(self._clock())
        finally:
            self._generation += 1
            self._refresh_task = None

    def stats(self) -> dict[str, Any]:
        """Freshness facts about the cache for reporting."""
        return {
            "enabled": self.enabled,
            "documents": len(self._store),
            "cached_at": self._store.cached_at,
            "refresh_count": self.refresh_count,
            "refreshing": self.refreshing,
            "last_error": self.last_error,
            "output_path": str(self.output_path),
        }
