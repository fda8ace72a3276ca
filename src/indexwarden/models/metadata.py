"""Key/value index metadata (bootstrap marker, schema version)."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from indexwarden.models.base import Base


class IndexMetadata(Base):
    __tablename__ = "index_metadata"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, default="")
