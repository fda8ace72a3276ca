"""SQL implementation of KnowledgeStorage."""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, TypeVar

from sqlalchemy import Executable, Result, String, cast, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from indexwarden.constants import BOOTSTRAP_METADATA_KEY
from indexwarden.errors import StorageUnavailableError
from indexwarden.models.context_pack import ContextPackRecord
from indexwarden.models.evidence import EvidenceRecord
from indexwarden.models.file import FileRecord
from indexwarden.models.function import FunctionRecord
from indexwarden.models.graph_edge import GraphEdgeRecord
from indexwarden.models.knowledge import UniversalKnowledgeRecord
from indexwarden.models.metadata import IndexMetadata
from indexwarden.models.module import ModuleRecord

_T = TypeVar("_T")


class SqlKnowledgeStorage:
    """Read-only KnowledgeStorage over an AsyncSession.

    Driver errors surface as StorageUnavailableError.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _execute(self, stmt: Executable) -> Result[Any]:
        try:
            return await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc

    async def _get(self, model: type[_T], key: str) -> _T | None:
        try:
            return await self._session.get(model, key)
        except SQLAlchemyError as exc:
            raise StorageUnavailableError(str(exc)) from exc

    async def is_bootstrapped(self) -> bool:
        """True once the indexer has recorded a bootstrap marker.

        A missing schema (never created) raises StorageUnavailableError.
        """
        marker = await self._get(IndexMetadata, BOOTSTRAP_METADATA_KEY)
        return marker is not None and bool(marker.value)

    async def get_file_by_path(self, path: str) -> FileRecord | None:
        result = await self._execute(
            select(FileRecord).where(FileRecord.path == path)
        )
        return result.scalars().first()

    async def list_files(
        self, limit: int | None = None
    ) -> list[FileRecord]:
        stmt = select(FileRecord).order_by(FileRecord.path)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._execute(stmt)
        return list(result.scalars().all())

    async def get_functions_by_path(
        self, path: str
    ) -> list[FunctionRecord]:
        result = await self._execute(
            select(FunctionRecord)
            .where(FunctionRecord.file_path == path)
            .order_by(FunctionRecord.start_line, FunctionRecord.name)
        )
        return list(result.scalars().all())

    async def get_function(
        self, function_id: str
    ) -> FunctionRecord | None:
        return await self._get(FunctionRecord, function_id)

    async def get_module_by_path(
        self, path: str
    ) -> ModuleRecord | None:
        result = await self._execute(
            select(ModuleRecord).where(ModuleRecord.path == path)
        )
        return result.scalars().first()

    async def get_graph_edges(
        self,
        *,
        from_ids: Sequence[str] | None = None,
        to_ids: Sequence[str] | None = None,
        edge_types: Sequence[str] | None = None,
    ) -> list[GraphEdgeRecord]:
        stmt = select(GraphEdgeRecord)
        if from_ids is not None:
            stmt = stmt.where(GraphEdgeRecord.from_id.in_(list(from_ids)))
        if to_ids is not None:
            stmt = stmt.where(GraphEdgeRecord.to_id.in_(list(to_ids)))
        if edge_types is not None:
            stmt = stmt.where(
                GraphEdgeRecord.edge_type.in_([str(t) for t in edge_types])
            )
        result = await self._execute(
            stmt.order_by(GraphEdgeRecord.id)
        )
        return list(result.scalars().all())

    async def get_evidence_for_target(
        self, entity_id: str, entity_type: str
    ) -> list[EvidenceRecord]:
        result = await self._execute(
            select(EvidenceRecord).where(
                EvidenceRecord.entity_id == entity_id,
                EvidenceRecord.entity_type == str(entity_type),
            )
        )
        return list(result.scalars().all())

    async def get_context_packs(
        self,
        *,
        related_file: str,
        include_invalidated: bool = False,
        limit: int | None = None,
    ) -> list[ContextPackRecord]:
        # Substring prefilter on the serialized JSON array, then an
        # exact membership check so "a.ts" does not match "aa.ts".
        needle = json.dumps(related_file)[1:-1]
        stmt = select(ContextPackRecord).where(
            cast(ContextPackRecord.related_files, String).contains(
                needle, autoescape=True
            )
        )
        if not include_invalidated:
            stmt = stmt.where(ContextPackRecord.invalidated.is_(False))
        result = await self._execute(
            stmt.order_by(ContextPackRecord.pack_id)
        )
        packs = [
            p for p in result.scalars().all()
            if related_file in (p.related_files or [])
        ]
        return packs[:limit] if limit is not None else packs

    async def get_universal_knowledge_by_kind(
        self, kind: str
    ) -> list[UniversalKnowledgeRecord]:
        result = await self._execute(
            select(UniversalKnowledgeRecord)
            .where(UniversalKnowledgeRecord.kind == kind)
            .order_by(UniversalKnowledgeRecord.file)
        )
        return list(result.scalars().all())
