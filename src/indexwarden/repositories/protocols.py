"""Protocol-based storage interface consumed by the check pipeline.

The engine only ever reads. SQL implementations satisfy this protocol
structurally (no inheritance); test doubles can be plain classes.
"""

from collections.abc import Sequence
from typing import Protocol

from indexwarden.models.context_pack import ContextPackRecord
from indexwarden.models.evidence import EvidenceRecord
from indexwarden.models.file import FileRecord
from indexwarden.models.function import FunctionRecord
from indexwarden.models.graph_edge import GraphEdgeRecord
from indexwarden.models.knowledge import UniversalKnowledgeRecord
from indexwarden.models.module import ModuleRecord


class KnowledgeStorage(Protocol):
    async def is_bootstrapped(self) -> bool: ...
    async def get_file_by_path(self, path: str) -> FileRecord | None: ...
    async def list_files(
        self, limit: int | None = None
    ) -> list[FileRecord]: ...
    async def get_functions_by_path(
        self, path: str
    ) -> list[FunctionRecord]: ...
    async def get_function(
        self, function_id: str
    ) -> FunctionRecord | None: ...
    async def get_module_by_path(
        self, path: str
    ) -> ModuleRecord | None: ...
    async def get_graph_edges(
        self,
        *,
        from_ids: Sequence[str] | None = None,
        to_ids: Sequence[str] | None = None,
        edge_types: Sequence[str] | None = None,
    ) -> list[GraphEdgeRecord]: ...
    async def get_evidence_for_target(
        self, entity_id: str, entity_type: str
    ) -> list[EvidenceRecord]: ...
    async def get_context_packs(
        self,
        *,
        related_file: str,
        include_invalidated: bool = False,
        limit: int | None = None,
    ) -> list[ContextPackRecord]: ...
    async def get_universal_knowledge_by_kind(
        self, kind: str
    ) -> list[UniversalKnowledgeRecord]: ...
