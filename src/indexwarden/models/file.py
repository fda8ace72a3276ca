"""Indexed file ORM model: one row per file the indexer has seen."""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from indexwarden.models.base import Base


class FileRecord(Base):
    __tablename__ = "files"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    path: Mapped[str] = mapped_column(String(1000), unique=True, index=True)
    last_indexed: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "last_indexed": (
                self.last_indexed.isoformat() if self.last_indexed else None
            ),
        }
