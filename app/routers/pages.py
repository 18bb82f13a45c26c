import asyncio

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session

from app.database import get_db
from app.services import work_order_service, work_request_service
from app.services.filters import PaginationParams
from app.services.permission_cache import PermissionCache

router = APIRouter()
templates = Jinja2Templates(directory="app/templates")

USER_HEADER = "X-User-Id"


async def current_permissions(request: Request) -> list[str]:
    """Permission codes of the calling user, through the app-wide cache."""
    user_id = request.headers.get(USER_HEADER)
    cache: PermissionCache | None = getattr(request.app.state, "permission_cache", None)
    if not user_id or cache is None:
        return []
    return await cache.get(user_id)


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    db: Session = Depends(get_db),
    permissions: list[str] = Depends(current_permissions),
) -> HTMLResponse:
    """Dashboard home page with per-status work-order counts."""
    counts = await asyncio.to_thread(work_order_service.get_status_counts, db)
    _, pending_requests = await asyncio.to_thread(
        work_request_service.fetch_work_requests,
        db,
        {},
        PaginationParams(page=1, per_page=1),
    )

    return templates.TemplateResponse(
        request=request,
        name="index.html",
        context={
            "title": "Mantenimiento",
            "counts": counts,
            "total": sum(counts.values()),
            "pending_requests": pending_requests,
            "permissions": permissions,
        },
    )


@router.get("/counts", response_class=HTMLResponse)
def status_counts(
    request: Request,
    q: str | None = None,
    location: str | None = None,
    db: Session = Depends(get_db),
) -> HTMLResponse:
    """Per-status counts partial, refreshed on the counts-changed event."""
    counts = work_order_service.get_status_counts(db, term=q, location=location)
    return templates.TemplateResponse(
        request=request,
        name="partials/status_counts.html",
        context={"counts": counts},
    )
