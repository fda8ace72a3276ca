"""Backend resolution: high-fidelity backends first, fallback parser last.

Backends and the fallback share one result shape (ParseResult), so
callers never need to know which one answered. A backend answers by
returning a result or defers by returning None; the first answer wins
and the fallback is not invoked at all in that case.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from indexwarden.config import Settings
from indexwarden.indexing.parsers import TreeSitterParser
from indexwarden.indexing.schemas import ParseResult
from indexwarden.indexing.scip_backend import ScipTypescriptBackend

logger = logging.getLogger(__name__)


class SourceBackend(Protocol):
    name: str

    async def parse_file(
        self, file_path: Path | str, content: str | None = None
    ) -> ParseResult | None: ...


class FallbackParser(Protocol):
    name: str

    def parse(self, file_path: Path | str, content: str) -> ParseResult: ...


class BackendResolver:
    def __init__(
        self,
        backends: Sequence[SourceBackend],
        fallback: FallbackParser,
    ) -> None:
        self._backends = list(backends)
        self._fallback = fallback

    @property
    def backends(self) -> list[SourceBackend]:
        return list(self._backends)

    async def resolve(
        self, file_path: Path | str, content: str
    ) -> ParseResult:
        for backend in self._backends:
            result = await backend.parse_file(file_path, content)
            if result is not None:
                logger.debug("%s answered for %s", backend.name, file_path)
                return result
        return self._fallback.parse(file_path, content)


def build_resolver(
    settings: Settings,
    scip_backend: ScipTypescriptBackend | None = None,
) -> BackendResolver:
    """Default wiring: SCIP (if enabled) then tree-sitter."""
    backend = scip_backend or ScipTypescriptBackend.from_settings(settings)
    return BackendResolver([backend], TreeSitterParser())
