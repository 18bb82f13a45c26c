"""Queries and writes for work orders (accepted, non-archived tickets)."""

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy import desc, func
from sqlalchemy.orm import Query, Session, joinedload

from app.board.realtime import UPDATE, ChangeEvent, RealtimeHub
from app.exceptions import ValidationError
from app.filters import Condition, FilterOperator, FilterSchema, SQLAlchemyQueryBuilder, apply_filters
from app.models import Assignee, Ticket
from app.models.ticket import PRIORITIES, STATUSES
from app.services.base import conditional_update, get_by_id, get_or_404
from app.services.filters import (
    CUSTOM_KEYS,
    HAS_IMAGE_KEY,
    SEARCH_KEY,
    WORK_ORDERS_SCHEMA,
    PaginationParams,
    apply_pagination,
)
from app.utils.query_params import parse_date_param, parse_int_param

logger = logging.getLogger(__name__)

TABLE = "tickets"

# Fields a work order edit may touch
EDITABLE_FIELDS = (
    "priority",
    "status",
    "assignee_id",
    "is_urgent",
    "deadline_date",
    "comments",
)


def search_conditions(term: str | None) -> list[Condition]:
    """OR group for the free-text search: title, requester, or exact id."""
    term = (term or "").strip()
    if len(term) < 2:
        return []
    pattern = f"%{term}%"
    conditions = [
        Condition("title", FilterOperator.ILIKE, pattern),
        Condition("requester", FilterOperator.ILIKE, pattern),
    ]
    ticket_id = parse_int_param(term)
    if ticket_id is not None:
        conditions.append(Condition("id", FilterOperator.EQ, ticket_id))
    return conditions


def filter_tickets(
    query: Query, schema: FilterSchema, values: Mapping[str, Any]
) -> Query:
    """Apply schema filter values, plus search and has-image, to a ticket query."""
    builder = SQLAlchemyQueryBuilder(query, Ticket)
    builder = builder.or_(*search_conditions(values.get(SEARCH_KEY)))
    if values.get(HAS_IMAGE_KEY) is True:
        builder = builder.neq("image", "")
    generic = {k: v for k, v in values.items() if k not in CUSTOM_KEYS}
    return apply_filters(builder, schema, generic).query


def _work_orders(db: Session) -> Query:
    return db.query(Ticket).filter(
        Ticket.is_accepted.is_(True), Ticket.is_archived.is_(False)
    )


def fetch_work_orders(
    db: Session,
    values: Mapping[str, Any],
    pagination: PaginationParams,
) -> tuple[list[Ticket], int]:
    """
    Get filtered, paginated work orders, newest first.

    Returns (work_orders, total_count).
    """
    query = filter_tickets(_work_orders(db), WORK_ORDERS_SCHEMA, values)
    total = query.count()
    query = query.options(joinedload(Ticket.assignee)).order_by(desc(Ticket.id))
    return apply_pagination(query, pagination).all(), total


def fetch_work_orders_by_status(
    db: Session, status: str, page: int, page_size: int
) -> tuple[list[Ticket], int]:
    """One page (0-based) of a board column in browse mode."""
    query = _work_orders(db).filter(Ticket.status == status)
    total = query.count()
    rows = (
        query.order_by(desc(Ticket.id))
        .offset(page * page_size)
        .limit(page_size)
        .all()
    )
    return rows, total


def fetch_filtered_work_orders(
    db: Session, values: Mapping[str, Any], limit: int
) -> list[Ticket]:
    """Bounded filtered fetch, partitioned into columns by the board."""
    query = filter_tickets(_work_orders(db), WORK_ORDERS_SCHEMA, values)
    return query.order_by(desc(Ticket.id)).limit(limit).all()


def get_status_counts(
    db: Session, term: str | None = None, location: str | None = None
) -> dict[str, int]:
    """Work-order totals per status, optionally narrowed by search and location."""
    builder = SQLAlchemyQueryBuilder(
        db.query(Ticket.status, func.count(Ticket.id)).filter(
            Ticket.is_accepted.is_(True), Ticket.is_archived.is_(False)
        ),
        Ticket,
    )
    builder = builder.or_(*search_conditions(term))
    if location:
        builder = builder.eq("location", location)

    counts = {status: 0 for status in STATUSES}
    for status, total in builder.query.group_by(Ticket.status).all():
        if status in counts:
            counts[status] = total
    return counts


def get_work_order(db: Session, work_order_id: int) -> Ticket:
    ticket = get_or_404(db, Ticket, work_order_id)
    if not ticket.is_accepted:
        raise ValidationError(f"Ticket #{work_order_id} is not a work order")
    return ticket


def _validate_changes(db: Session, changes: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(
            f"Fields cannot be edited: {', '.join(sorted(unknown))}",
            field=sorted(unknown)[0],
        )

    clean: dict[str, Any] = {}
    for key, value in changes.items():
        if key == "priority":
            if value not in PRIORITIES:
                raise ValidationError(f"Invalid priority '{value}'", field=key)
        elif key == "status":
            if value not in STATUSES:
                raise ValidationError(f"Invalid status '{value}'", field=key)
        elif key == "assignee_id":
            if value in (None, ""):
                value = None
            else:
                value = parse_int_param(str(value))
                if value is None or get_by_id(db, Assignee, value) is None:
                    raise ValidationError("Unknown assignee", field=key)
        elif key == "is_urgent":
            value = bool(value)
        elif key == "deadline_date":
            if isinstance(value, str):
                parsed = parse_date_param(value)
                if value and parsed is None:
                    raise ValidationError(f"Invalid date '{value}'", field=key)
                value = parsed
            elif value is not None and not isinstance(value, date):
                raise ValidationError("Invalid date", field=key)
        clean[key] = value
    return clean


def publish_change(hub: RealtimeHub | None, old: dict, new: dict) -> None:
    if hub is None:
        return
    hub.publish(ChangeEvent(table=TABLE, event=UPDATE, old=old, new=new))


def update_work_order(
    db: Session,
    work_order_id: int,
    changes: Mapping[str, Any],
    hub: RealtimeHub | None = None,
) -> Ticket:
    """Validate and persist an edit, then notify realtime subscribers."""
    clean = _validate_changes(db, changes)
    ticket = get_work_order(db, work_order_id)
    old = ticket.to_row()
    for key, value in clean.items():
        setattr(ticket, key, value)
    db.commit()
    db.refresh(ticket)
    logger.info("Updated work order #%d: %s", work_order_id, ", ".join(sorted(clean)))
    publish_change(hub, old, ticket.to_row())
    return ticket


def move_work_order_status(
    db: Session,
    work_order_id: int,
    status: str,
    hub: RealtimeHub | None = None,
) -> Ticket:
    """Drag-and-drop status transition."""
    return update_work_order(db, work_order_id, {"status": status}, hub)


def archive_work_order(
    db: Session, work_order_id: int, hub: RealtimeHub | None = None
) -> bool:
    """Archive a work order. Returns False when it was already archived."""
    ticket = get_or_404(db, Ticket, work_order_id)
    old = ticket.to_row()
    if not conditional_update(
        db, Ticket, work_order_id, {"is_archived": True}, is_archived=False
    ):
        return False
    db.commit()
    db.refresh(ticket)
    publish_change(hub, old, ticket.to_row())
    return True


def get_locations(db: Session) -> list[str]:
    """Get all distinct ticket locations."""
    results = (
        db.query(Ticket.location)
        .filter(Ticket.location.isnot(None))
        .distinct()
        .order_by(Ticket.location)
        .all()
    )
    return [r[0] for r in results if r[0]]


def get_active_assignees(db: Session) -> list[Assignee]:
    return (
        db.query(Assignee)
        .filter(Assignee.is_active.is_(True))
        .order_by(Assignee.name, Assignee.last_name)
        .all()
    )
