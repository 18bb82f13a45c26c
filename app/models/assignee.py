from typing import TYPE_CHECKING

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.ticket import Ticket


class Assignee(Base, TimestampMixin):
    """Technician that work orders can be assigned to."""

    __tablename__ = "assignees"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100), default="")
    section: Mapped[str] = mapped_column(String(50), default="SIN FUNCIONES")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    tickets: Mapped[list["Ticket"]] = relationship(back_populates="assignee")

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.last_name}".strip()
