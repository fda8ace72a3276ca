"""In-memory fake storage for testing.

Dict-backed implementation of the KnowledgeStorage protocol.
No SQLAlchemy session, no I/O, instant operations for unit tests.
Records are the real ORM classes, used as plain objects.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from indexwarden.errors import StorageUnavailableError
from indexwarden.models.context_pack import ContextPackRecord
from indexwarden.models.evidence import EvidenceRecord
from indexwarden.models.file import FileRecord
from indexwarden.models.function import FunctionRecord
from indexwarden.models.graph_edge import GraphEdgeRecord
from indexwarden.models.knowledge import UniversalKnowledgeRecord
from indexwarden.models.module import ModuleRecord

_Record = (
    FileRecord
    | FunctionRecord
    | ModuleRecord
    | GraphEdgeRecord
    | EvidenceRecord
    | ContextPackRecord
    | UniversalKnowledgeRecord
)


class FakeKnowledgeStorage:
    """Dict-backed KnowledgeStorage for testing."""

    def __init__(self, *, bootstrapped: bool = True) -> None:
        self.bootstrapped = bootstrapped
        self.unavailable = False
        self.files: dict[str, FileRecord] = {}
        self.functions: dict[str, FunctionRecord] = {}
        self.modules: dict[str, ModuleRecord] = {}
        self.edges: list[GraphEdgeRecord] = []
        self.evidence: list[EvidenceRecord] = []
        self.packs: list[ContextPackRecord] = []
        self.knowledge: list[UniversalKnowledgeRecord] = []
        self.query_count = 0

    # ── seeding ──────────────────────────────────────────

    def add(self, *records: _Record) -> None:
        """Insert records, assigning ids the way a flush would."""
        for rec in records:
            if isinstance(rec, ContextPackRecord):
                if not rec.pack_id:
                    rec.pack_id = uuid.uuid4().hex
                if rec.invalidated is None:
                    rec.invalidated = False
                self.packs.append(rec)
                continue
            if not rec.id:
                rec.id = uuid.uuid4().hex
            if isinstance(rec, FileRecord):
                self.files[rec.path] = rec
            elif isinstance(rec, FunctionRecord):
                self.functions[rec.id] = rec
            elif isinstance(rec, ModuleRecord):
                self.modules[rec.path] = rec
            elif isinstance(rec, GraphEdgeRecord):
                self.edges.append(rec)
            elif isinstance(rec, EvidenceRecord):
                self.evidence.append(rec)
            else:
                self.knowledge.append(rec)

    def add_file(
        self, path: str, last_indexed: datetime | None = None
    ) -> FileRecord:
        rec = FileRecord(path=path, last_indexed=last_indexed)
        self.add(rec)
        return rec

    def touch_all(self, when: datetime | None = None) -> None:
        """Stamp every file as indexed at *when* (default now)."""
        stamp = when or datetime.now(UTC)
        for rec in self.files.values():
            rec.last_indexed = stamp

    # ── protocol ─────────────────────────────────────────

    def _check(self) -> None:
        self.query_count += 1
        if self.unavailable:
            raise StorageUnavailableError("fake storage unavailable")

    async def is_bootstrapped(self) -> bool:
        self._check()
        return self.bootstrapped

    async def get_file_by_path(self, path: str) -> FileRecord | None:
        self._check()
        return self.files.get(path)

    async def list_files(
        self, limit: int | None = None
    ) -> list[FileRecord]:
        self._check()
        files = sorted(self.files.values(), key=lambda f: f.path)
        return files[:limit] if limit is not None else files

    async def get_functions_by_path(
        self, path: str
    ) -> list[FunctionRecord]:
        self._check()
        return sorted(
            (f for f in self.functions.values() if f.file_path == path),
            key=lambda f: (f.start_line, f.name),
        )

    async def get_function(
        self, function_id: str
    ) -> FunctionRecord | None:
        self._check()
        return self.functions.get(function_id)

    async def get_module_by_path(
        self, path: str
    ) -> ModuleRecord | None:
        self._check()
        return self.modules.get(path)

    async def get_graph_edges(
        self,
        *,
        from_ids: Sequence[str] | None = None,
        to_ids: Sequence[str] | None = None,
        edge_types: Sequence[str] | None = None,
    ) -> list[GraphEdgeRecord]:
        self._check()
        results = self.edges
        if from_ids is not None:
            wanted = set(from_ids)
            results = [e for e in results if e.from_id in wanted]
        if to_ids is not None:
            wanted = set(to_ids)
            results = [e for e in results if e.to_id in wanted]
        if edge_types is not None:
            types = {str(t) for t in edge_types}
            results = [e for e in results if e.edge_type in types]
        return list(results)

    async def get_evidence_for_target(
        self, entity_id: str, entity_type: str
    ) -> list[EvidenceRecord]:
        self._check()
        return [
            e
            for e in self.evidence
            if e.entity_id == entity_id
            and e.entity_type == str(entity_type)
        ]

    async def get_context_packs(
        self,
        *,
        related_file: str,
        include_invalidated: bool = False,
        limit: int | None = None,
    ) -> list[ContextPackRecord]:
        self._check()
        packs = [
            p
            for p in self.packs
            if related_file in (p.related_files or [])
            and (include_invalidated or not p.invalidated)
        ]
        return packs[:limit] if limit is not None else packs

    async def get_universal_knowledge_by_kind(
        self, kind: str
    ) -> list[UniversalKnowledgeRecord]:
        self._check()
        return [k for k in self.knowledge if k.kind == kind]
