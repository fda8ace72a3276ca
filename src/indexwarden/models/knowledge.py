"""Universal knowledge ORM model: enrichment output per entity.

``knowledge`` is stored as raw JSON text because enrichment output is
not guaranteed to be well formed; readers must tolerate parse errors.
"""

import uuid

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from indexwarden.models.base import Base


class UniversalKnowledgeRecord(Base):
    __tablename__ = "universal_knowledge"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    kind: Mapped[str] = mapped_column(String(50), index=True)
    name: Mapped[str] = mapped_column(String(300), default="")
    file: Mapped[str] = mapped_column(String(1000))
    knowledge: Mapped[str] = mapped_column(Text, default="{}")
