"""SQLAlchemy ORM models."""

from indexwarden.models.base import Base
from indexwarden.models.context_pack import ContextPackRecord
from indexwarden.models.evidence import EvidenceRecord
from indexwarden.models.file import FileRecord
from indexwarden.models.function import FunctionRecord
from indexwarden.models.graph_edge import GraphEdgeRecord
from indexwarden.models.knowledge import UniversalKnowledgeRecord
from indexwarden.models.metadata import IndexMetadata
from indexwarden.models.module import ModuleRecord

__all__ = [
    "Base",
    "ContextPackRecord",
    "EvidenceRecord",
    "FileRecord",
    "FunctionRecord",
    "GraphEdgeRecord",
    "IndexMetadata",
    "ModuleRecord",
    "UniversalKnowledgeRecord",
]
