"""Work-order board: optimistic sync of paginated columns with realtime updates."""

from app.board.board import (
    COUNT_FIELDS,
    RELEVANT_FIELDS,
    BoardGateway,
    BoardMode,
    WorkOrderBoard,
    has_active_filters,
)
from app.board.events import board_events, format_event
from app.board.realtime import (
    DELETE,
    INSERT,
    UPDATE,
    ChangeEvent,
    RealtimeHub,
    Subscription,
)
from app.board.sync import BoardCollection, EntitySync, SyncState, SyncTransitionError
from app.board.tasks import DebouncedTask

__all__ = [
    "WorkOrderBoard",
    "BoardGateway",
    "BoardMode",
    "RELEVANT_FIELDS",
    "COUNT_FIELDS",
    "has_active_filters",
    "RealtimeHub",
    "Subscription",
    "ChangeEvent",
    "INSERT",
    "UPDATE",
    "DELETE",
    "BoardCollection",
    "EntitySync",
    "SyncState",
    "SyncTransitionError",
    "DebouncedTask",
    "board_events",
    "format_event",
]
