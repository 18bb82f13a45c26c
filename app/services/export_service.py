"""CSV export of filtered tickets."""

import csv
import io
from collections.abc import Mapping
from typing import Any

from sqlalchemy import desc
from sqlalchemy.orm import Session

from app.filters import FilterSchema
from app.models import Ticket
from app.services.work_order_service import filter_tickets

BOM = "\ufeff"

# Column order and titles
CSV_HEADER = {
    "id": "ID",
    "title": "Título",
    "description": "Descripción",
    "status": "Estado",
    "is_accepted": "Aceptado",
    "is_urgent": "Urgente",
    "priority": "Prioridad",
    "requester": "Solicitante",
    "location": "Ubicación",
    "assignee": "Técnico",
    "incident_date": "Fecha Incidente",
    "deadline_date": "Fecha Límite",
    "created_at": "Creado",
    "comments": "Comentarios",
}


def csv_filename(base: str) -> str:
    return base if base.endswith(".csv") else f"{base}.csv"


def serialize_ticket(ticket: Ticket) -> dict[str, Any]:
    row = ticket.to_row()
    row["is_accepted"] = "Sí" if ticket.is_accepted else "No"
    row["is_urgent"] = "Sí" if ticket.is_urgent else "No"
    row["assignee"] = ticket.assignee.full_name if ticket.assignee else ""
    return {key: "" if row.get(key) is None else row[key] for key in CSV_HEADER}


def export_tickets_csv(
    db: Session,
    schema: FilterSchema,
    values: Mapping[str, Any],
    merge: Mapping[str, Any] | None = None,
    accepted: bool | None = None,
) -> str:
    """Render every ticket matching ``values`` (with ``merge`` forced on top).

    The output starts with a UTF-8 BOM so spreadsheet tools pick the
    right encoding.
    """
    snapshot = {**values, **(merge or {})}
    query = db.query(Ticket).filter(Ticket.is_archived.is_(False))
    if accepted is not None:
        query = query.filter(Ticket.is_accepted.is_(accepted))
    query = filter_tickets(query, schema, snapshot).order_by(desc(Ticket.id))

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(CSV_HEADER), lineterminator="\r\n")
    writer.writerow(CSV_HEADER)
    for ticket in query.all():
        writer.writerow(serialize_ticket(ticket))
    return BOM + buffer.getvalue()
