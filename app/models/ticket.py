from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Date, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from app.models.assignee import Assignee

# Board columns, in display order
STATUSES = ["Pendiente", "En Ejecución", "Finalizadas"]
PRIORITIES = ["baja", "media", "alta"]


class Ticket(Base, TimestampMixin):
    """Maintenance ticket.

    Unaccepted tickets are work requests; accepted ones are work orders.
    """

    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(primary_key=True)
    title: Mapped[str] = mapped_column(String(200), index=True)
    description: Mapped[str | None] = mapped_column(Text)
    requester: Mapped[str] = mapped_column(String(120), index=True)
    location: Mapped[str | None] = mapped_column(String(120), index=True)

    status: Mapped[str] = mapped_column(String(30), default="Pendiente", index=True)
    priority: Mapped[str] = mapped_column(String(10), default="media", index=True)
    is_urgent: Mapped[bool] = mapped_column(Boolean, default=False)

    is_accepted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    is_archived: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    assignee_id: Mapped[int | None] = mapped_column(ForeignKey("assignees.id"))
    image: Mapped[str] = mapped_column(String(500), default="")  # comma-separated paths
    comments: Mapped[str | None] = mapped_column(Text)

    incident_date: Mapped[date | None] = mapped_column(Date, index=True)
    deadline_date: Mapped[date | None] = mapped_column(Date)

    # Relationships
    assignee: Mapped["Assignee | None"] = relationship(back_populates="tickets")

    def to_row(self) -> dict:
        """Plain row snapshot, as delivered to board and realtime consumers."""
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "requester": self.requester,
            "location": self.location,
            "status": self.status,
            "priority": self.priority,
            "is_urgent": self.is_urgent,
            "is_accepted": self.is_accepted,
            "is_archived": self.is_archived,
            "assignee_id": self.assignee_id,
            "image": self.image,
            "comments": self.comments,
            "incident_date": self.incident_date.isoformat() if self.incident_date else None,
            "deadline_date": self.deadline_date.isoformat() if self.deadline_date else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
