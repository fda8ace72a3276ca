"""Typed, directed knowledge-graph edge ORM model."""

import uuid
from typing import Any

from sqlalchemy import Float, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from indexwarden.models.base import Base


class GraphEdgeRecord(Base):
    __tablename__ = "graph_edges"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    from_id: Mapped[str] = mapped_column(String(36), index=True)
    from_type: Mapped[str] = mapped_column(String(50))
    to_id: Mapped[str] = mapped_column(String(36), index=True)
    to_type: Mapped[str] = mapped_column(String(50))
    edge_type: Mapped[str] = mapped_column(String(50), index=True)
    source_file: Mapped[str | None] = mapped_column(
        String(1000), nullable=True
    )
    source_line: Mapped[int | None] = mapped_column(Integer, nullable=True)
    confidence: Mapped[float] = mapped_column(Float, default=1.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "from_id": self.from_id,
            "from_type": self.from_type,
            "to_id": self.to_id,
            "to_type": self.to_type,
            "edge_type": self.edge_type,
            "source_file": self.source_file,
            "source_line": self.source_line,
            "confidence": self.confidence,
        }
