from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """Persisted key-value pair (e.g., saved filter views per schema)."""

    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    value: Mapped[str] = mapped_column(Text)  # JSON document
