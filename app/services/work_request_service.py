"""Work requests: tickets that have not been accepted yet."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from sqlalchemy import desc
from sqlalchemy.orm import Query, Session

from app.board.realtime import RealtimeHub
from app.exceptions import BatchOperationError, ValidationError
from app.models import Assignee, Ticket
from app.services.base import conditional_update, get_by_id
from app.services.filters import WORK_REQUESTS_SCHEMA, PaginationParams, apply_pagination
from app.services.work_order_service import filter_tickets, publish_change
from app.utils.query_params import parse_date_param, parse_int_param

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "requester", "location")


def _work_requests(db: Session, values: Mapping[str, Any]) -> Query:
    query = db.query(Ticket).filter(Ticket.is_archived.is_(False))
    # The accepted filter may widen the list to accepted tickets
    if not isinstance(values.get("accepted"), bool):
        query = query.filter(Ticket.is_accepted.is_(False))
    return query


def fetch_work_requests(
    db: Session,
    values: Mapping[str, Any],
    pagination: PaginationParams,
) -> tuple[list[Ticket], int]:
    """
    Get filtered, paginated work requests, newest first.

    Returns (work_requests, total_count).
    """
    query = filter_tickets(_work_requests(db, values), WORK_REQUESTS_SCHEMA, values)
    total = query.count()
    query = query.order_by(desc(Ticket.id))
    return apply_pagination(query, pagination).all(), total


def create_work_request(db: Session, data: Mapping[str, Any]) -> Ticket:
    """Create a new, unaccepted ticket in the first status column."""
    missing = [f for f in REQUIRED_FIELDS if not str(data.get(f) or "").strip()]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}", field=missing[0]
        )

    incident_date = data.get("incident_date")
    if isinstance(incident_date, str):
        incident_date = parse_date_param(incident_date)

    ticket = Ticket(
        title=data["title"].strip(),
        description=data.get("description"),
        requester=data["requester"].strip(),
        location=data["location"].strip(),
        status="Pendiente",
        priority=data.get("priority") or "media",
        is_urgent=bool(data.get("is_urgent", False)),
        is_accepted=False,
        is_archived=False,
        assignee_id=None,
        image=data.get("image") or "",
        incident_date=incident_date,
    )
    db.add(ticket)
    db.commit()
    db.refresh(ticket)
    logger.info("Created work request #%d", ticket.id)
    return ticket


def _validate_items(items: Iterable[Mapping[str, Any]]) -> list[tuple[int, int]]:
    pairs: list[tuple[int, int]] = []
    for item in items:
        ticket_id = parse_int_param(str(item.get("id") or ""))
        assignee_id = parse_int_param(str(item.get("assignee_id") or ""))
        if not ticket_id or not assignee_id:
            raise ValidationError(
                "Each ticket needs both an id and an assignee_id to be accepted",
                field="assignee_id" if ticket_id else "id",
            )
        pairs.append((ticket_id, assignee_id))
    return pairs


def accept_work_requests(
    db: Session,
    items: Iterable[Mapping[str, Any]],
    hub: RealtimeHub | None = None,
) -> list[int]:
    """Assign and accept a batch of work requests.

    Every item is validated before any write. Each row is then updated only
    if it is still unaccepted; successes are committed and kept even when
    other rows fail, which raises ``BatchOperationError`` afterwards.

    Returns the accepted ids.
    """
    pairs = _validate_items(items)
    if not pairs:
        return []

    accepted: list[int] = []
    failed: dict[int, str] = {}
    events: list[tuple[dict, int]] = []
    for ticket_id, assignee_id in pairs:
        if get_by_id(db, Assignee, assignee_id) is None:
            failed[ticket_id] = "unknown assignee"
            continue
        ticket = get_by_id(db, Ticket, ticket_id)
        if ticket is None:
            failed[ticket_id] = "not found"
            continue
        old = ticket.to_row()
        if not conditional_update(
            db,
            Ticket,
            ticket_id,
            {"assignee_id": assignee_id, "is_accepted": True},
            is_accepted=False,
        ):
            failed[ticket_id] = "already accepted"
            continue
        accepted.append(ticket_id)
        events.append((old, ticket_id))

    db.commit()
    for old, ticket_id in events:
        ticket = get_by_id(db, Ticket, ticket_id)
        publish_change(hub, old, ticket.to_row())

    if accepted:
        logger.info("Accepted work requests: %s", accepted)
    if failed:
        logger.warning("Could not accept work requests: %s", failed)
        raise BatchOperationError(
            "Could not accept some work requests", failed=failed, succeeded=accepted
        )
    return accepted
