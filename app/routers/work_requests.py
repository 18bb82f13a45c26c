import asyncio

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.responses import Response

from app.database import get_db
from app.exceptions import BatchOperationError
from app.filters import FilterOption
from app.services import export_service, work_order_service, work_request_service
from app.services.filters import (
    WORK_REQUESTS_SCHEMA,
    PaginationParams,
    build_filter_bar,
    filter_bar_context,
)
from app.utils.htmx import htmx_response, is_htmx_request, trigger_event
from app.utils.query_params import parse_id_list

router = APIRouter()
templates = Jinja2Templates(directory="app/templates")

PER_PAGE = 20


def _list_context(request: Request, db: Session, page: int) -> dict:
    schema = WORK_REQUESTS_SCHEMA.with_options(
        "location",
        [FilterOption(label=loc, value=loc) for loc in work_order_service.get_locations(db)],
    )
    bar = build_filter_bar(request, schema, db)
    requests, total = work_request_service.fetch_work_requests(
        db, bar.values, PaginationParams(page=page, per_page=PER_PAGE)
    )
    return {
        "title": "Solicitudes",
        "bar": bar,
        "work_requests": requests,
        "total": total,
        "page": page,
        "total_pages": (total + PER_PAGE - 1) // PER_PAGE,
        "assignees": work_order_service.get_active_assignees(db),
        "filter_query_string": bar.engine.location.query_string,
        "is_htmx": is_htmx_request(request),
        **filter_bar_context(bar),
    }


@router.get("/", response_class=HTMLResponse)
def list_work_requests(
    request: Request,
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
) -> Response:
    """Work requests awaiting acceptance, with the filter bar."""
    context = _list_context(request, db, page)
    return htmx_response(
        templates=templates,
        request=request,
        full_template="work_requests.html",
        partial_template="partials/work_request_table.html",
        context=context,
        replace_url=context["bar"].engine.location.url,
    )


@router.post("/", response_class=HTMLResponse)
def create_work_request(
    request: Request,
    title: str = Form(...),
    requester: str = Form(...),
    location: str = Form(...),
    description: str | None = Form(None),
    priority: str | None = Form(None),
    incident_date: str | None = Form(None),
    db: Session = Depends(get_db),
) -> Response:
    """Submit a new work request."""
    work_request_service.create_work_request(
        db,
        {
            "title": title,
            "requester": requester,
            "location": location,
            "description": description,
            "priority": priority,
            "incident_date": incident_date,
        },
    )
    context = _list_context(request, db, 1)
    return templates.TemplateResponse(
        request=request,
        name="partials/work_request_table.html",
        context=context,
        status_code=201,
    )


def _accept_and_list(
    request: Request, db: Session, items: list[dict]
) -> tuple[dict, int]:
    error: str | None = None
    status_code = 200
    try:
        work_request_service.accept_work_requests(
            db, items, getattr(request.app.state, "realtime_hub", None)
        )
    except BatchOperationError as e:
        error = str(e)
        status_code = 207

    context = _list_context(request, db, 1)
    context["error"] = error
    return context, status_code


@router.post("/accept", response_class=HTMLResponse)
async def accept_work_requests(
    request: Request, db: Session = Depends(get_db)
) -> Response:
    """
    Accept the checked work requests, each with its chosen assignee.

    Form fields: repeated ``id`` plus ``assignee_<id>`` per checked row.
    Partial failures keep the successes and answer 207 with the failed ids.
    """
    form = await request.form()
    items = [
        {"id": ticket_id, "assignee_id": form.get(f"assignee_{ticket_id}")}
        for ticket_id in parse_id_list(form.getlist("id"))
    ]

    context, status_code = await asyncio.to_thread(_accept_and_list, request, db, items)
    response = templates.TemplateResponse(
        request=request,
        name="partials/work_request_table.html",
        context=context,
        status_code=status_code,
    )
    return trigger_event(response, "counts-changed")


@router.get("/export.csv")
def export_work_requests(request: Request, db: Session = Depends(get_db)) -> Response:
    """Download the filtered work requests as CSV."""
    bar = build_filter_bar(request, WORK_REQUESTS_SCHEMA, db)
    values = bar.values
    merge = {} if isinstance(values.get("accepted"), bool) else {"accepted": False}
    content = export_service.export_tickets_csv(
        db, WORK_REQUESTS_SCHEMA, bar.export_filters(merge)
    )
    filename = export_service.csv_filename("solicitudes")
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
