import asyncio

from fastapi import APIRouter, Depends, Form, Query, Request
from fastapi.responses import HTMLResponse, StreamingResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.responses import Response

from app.board import WorkOrderBoard, board_events
from app.board.realtime import RealtimeHub
from app.config import get_settings
from app.database import SessionLocal, get_db
from app.exceptions import NotFoundError
from app.filters import FilterOption, FilterSchema
from app.models.ticket import PRIORITIES, STATUSES
from app.services import export_service, work_order_service
from app.services.board_gateway import ServiceBoardGateway
from app.services.filters import (
    WORK_ORDERS_SCHEMA,
    PaginationParams,
    build_filter_bar,
    filter_bar_context,
    request_filter_values,
)
from app.utils.htmx import htmx_response, is_htmx_request, trigger_event
from app.utils.query_params import parse_bool_param

router = APIRouter()
templates = Jinja2Templates(directory="app/templates")


def get_hub(request: Request) -> RealtimeHub | None:
    return getattr(request.app.state, "realtime_hub", None)


def work_order_schema(db: Session) -> FilterSchema:
    """Work-order schema with location and assignee options from the database."""
    schema = WORK_ORDERS_SCHEMA.with_options(
        "location",
        [FilterOption(label=loc, value=loc) for loc in work_order_service.get_locations(db)],
    )
    return schema.with_options(
        "assignee_id",
        [
            FilterOption(label=a.full_name, value=a.id)
            for a in work_order_service.get_active_assignees(db)
        ],
    )


def _page_context(request: Request, db: Session, view: str, page: int) -> dict:
    schema = work_order_schema(db)
    bar = build_filter_bar(request, schema, db)
    context = {
        "title": "Órdenes de trabajo",
        "bar": bar,
        "view": view,
        "statuses": STATUSES,
        "priorities": PRIORITIES,
        "assignees": work_order_service.get_active_assignees(db),
        "filter_query_string": bar.engine.location.query_string,
        "is_htmx": is_htmx_request(request),
        **filter_bar_context(bar),
    }
    if view == "list":
        per_page = 50
        work_orders, total = work_order_service.fetch_work_orders(
            db, bar.values, PaginationParams(page=page, per_page=per_page)
        )
        context.update(
            {
                "work_orders": work_orders,
                "total": total,
                "page": page,
                "total_pages": (total + per_page - 1) // per_page,
            }
        )
    return context


@router.get("/", response_class=HTMLResponse)
async def list_work_orders(
    request: Request,
    db: Session = Depends(get_db),
    view: str = Query("board"),
    page: int = Query(1, ge=1),
) -> Response:
    """Work-order board (or list) with the filter bar."""
    context = await asyncio.to_thread(_page_context, request, db, view, page)

    if view == "list":
        partial = "partials/work_order_list.html"
    else:
        gateway = ServiceBoardGateway(db=db)
        async with WorkOrderBoard(
            gateway, page_size=get_settings().board_page_size
        ) as board:
            await board.load(context["bar"].values)
        context["board"] = board
        partial = "partials/work_order_board.html"

    return htmx_response(
        templates=templates,
        request=request,
        full_template="work_orders.html",
        partial_template=partial,
        context=context,
        replace_url=context["bar"].engine.location.url,
    )


@router.get("/events")
async def work_order_events(request: Request) -> StreamingResponse:
    """
    Server-sent events for an open board page.

    A live board subscribed to the realtime hub emits ``board-changed`` after
    other users' edits so the page can refresh its columns.
    """
    hub = get_hub(request)
    return StreamingResponse(
        board_events(
            ServiceBoardGateway(SessionLocal, hub),
            hub,
            request_filter_values(request, WORK_ORDERS_SCHEMA),
            request.is_disconnected,
        ),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@router.get("/columns/{status}", response_class=HTMLResponse)
def column_page(
    request: Request,
    status: str,
    page: int = Query(0, ge=0),
    db: Session = Depends(get_db),
) -> HTMLResponse:
    """Next page of a board column; the last card carries the next sentinel."""
    if status not in STATUSES:
        raise NotFoundError("Status", status)
    page_size = get_settings().board_page_size
    rows, total = work_order_service.fetch_work_orders_by_status(
        db, status, page, page_size
    )
    return templates.TemplateResponse(
        request=request,
        name="partials/work_order_column_page.html",
        context={
            "status": status,
            "rows": [r.to_row() for r in rows],
            "next_page": page + 1 if (page + 1) * page_size < total else None,
            "assignees": work_order_service.get_active_assignees(db),
        },
    )


@router.get("/export.csv")
def export_work_orders(request: Request, db: Session = Depends(get_db)) -> Response:
    """Download the filtered work orders as CSV."""
    bar = build_filter_bar(request, WORK_ORDERS_SCHEMA, db)
    content = export_service.export_tickets_csv(
        db, WORK_ORDERS_SCHEMA, bar.export_filters(), accepted=True
    )
    filename = export_service.csv_filename("ordenes_de_trabajo")
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{work_order_id}/status", response_class=HTMLResponse)
def move_work_order(
    request: Request,
    work_order_id: int,
    status: str = Form(...),
    db: Session = Depends(get_db),
) -> Response:
    """Drag-and-drop status change."""
    ticket = work_order_service.move_work_order_status(
        db, work_order_id, status, get_hub(request)
    )
    response = templates.TemplateResponse(
        request=request,
        name="partials/work_order_card.html",
        context={
            "row": ticket.to_row(),
            "assignees": work_order_service.get_active_assignees(db),
        },
    )
    return trigger_event(response, "counts-changed")


@router.post("/{work_order_id}/archive", response_class=HTMLResponse)
def archive_work_order(
    request: Request, work_order_id: int, db: Session = Depends(get_db)
) -> Response:
    """Archive a work order; the card is removed from the board."""
    work_order_service.archive_work_order(db, work_order_id, get_hub(request))
    return trigger_event(HTMLResponse(content="", status_code=200), "counts-changed")


@router.post("/{work_order_id}", response_class=HTMLResponse)
def save_work_order(
    request: Request,
    work_order_id: int,
    priority: str | None = Form(None),
    status: str | None = Form(None),
    assignee_id: str | None = Form(None),
    is_urgent: str | None = Form(None),
    deadline_date: str | None = Form(None),
    comments: str | None = Form(None),
    db: Session = Depends(get_db),
) -> Response:
    """Save edits from the work-order modal."""
    changes = {
        "priority": priority,
        "status": status,
        "assignee_id": assignee_id,
        "deadline_date": deadline_date,
        "comments": comments,
    }
    changes = {k: v for k, v in changes.items() if v is not None}
    if is_urgent is not None:
        changes["is_urgent"] = bool(parse_bool_param(is_urgent))

    ticket = work_order_service.update_work_order(
        db, work_order_id, changes, get_hub(request)
    )
    response = templates.TemplateResponse(
        request=request,
        name="partials/work_order_card.html",
        context={
            "row": ticket.to_row(),
            "assignees": work_order_service.get_active_assignees(db),
        },
    )
    return trigger_event(response, "counts-changed")
