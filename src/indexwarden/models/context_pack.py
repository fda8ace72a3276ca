"""Context pack ORM model: precomputed explanatory bundles."""

import uuid

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from indexwarden.models.base import Base


class ContextPackRecord(Base):
    __tablename__ = "context_packs"

    pack_id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    target_id: Mapped[str] = mapped_column(String(36), default="")
    pack_type: Mapped[str] = mapped_column(String(50), default="function")
    related_files: Mapped[list[str]] = mapped_column(JSON, default=list)
    invalidated: Mapped[bool] = mapped_column(Boolean, default=False)
