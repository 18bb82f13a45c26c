import asyncio

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.board.realtime import RealtimeHub
from app.config import get_settings
from app.database import SessionLocal
from app.exceptions import (
    BatchOperationError,
    NotFoundError,
    QueryError,
    ValidationError,
)
from app.logging_config import configure_logging
from app.routers import pages, saved_views, work_orders, work_requests
from app.services import permission_service
from app.services.permission_cache import PermissionCache

# Configure logging at startup
configure_logging()

app = FastAPI(title="Maintenance Dashboard")


async def load_permissions(user_id: str) -> list[str]:
    def load() -> list[str]:
        with SessionLocal() as db:
            return permission_service.get_permissions(db, user_id)

    return await asyncio.to_thread(load)


# App-wide realtime hub and permission cache
app.state.realtime_hub = RealtimeHub()
app.state.permission_cache = PermissionCache(
    load_permissions, ttl=get_settings().permission_cache_ttl_seconds
)

# Routers
app.include_router(pages.router)
app.include_router(work_orders.router, prefix="/work-orders", tags=["work-orders"])
app.include_router(
    work_requests.router, prefix="/work-requests", tags=["work-requests"]
)
app.include_router(saved_views.router, prefix="/saved-views", tags=["saved-views"])


@app.exception_handler(NotFoundError)
def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422, content={"detail": str(exc), "field": exc.field}
    )


@app.exception_handler(QueryError)
def query_error_handler(request: Request, exc: QueryError) -> JSONResponse:
    return JSONResponse(
        status_code=400, content={"detail": str(exc), "column": exc.column}
    )


@app.exception_handler(BatchOperationError)
def batch_handler(request: Request, exc: BatchOperationError) -> JSONResponse:
    return JSONResponse(
        status_code=207,
        content={
            "detail": str(exc),
            "failed": {str(k): v for k, v in exc.failed.items()},
            "succeeded": exc.succeeded,
        },
    )


@app.get("/health")
def health_check() -> dict[str, str]:
    return {"status": "ok"}
