from app.models.assignee import Assignee
from app.models.base import Base
from app.models.permission import UserPermission
from app.models.storage_entry import StorageEntry
from app.models.ticket import PRIORITIES, STATUSES, Ticket

__all__ = [
    "Base",
    "Assignee",
    "Ticket",
    "StorageEntry",
    "UserPermission",
    "STATUSES",
    "PRIORITIES",
]
