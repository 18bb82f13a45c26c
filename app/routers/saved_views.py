from fastapi import APIRouter, Depends, Form, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.orm import Session
from starlette.responses import Response

from app.database import get_db
from app.exceptions import NotFoundError
from app.filters import DatabaseStorage, FilterBar, FilterStateEngine, SavedViewStore, UrlLocation
from app.filters.state import decode_query_string
from app.services.filters import PAGE_PATHS, get_schema
from app.utils.htmx import is_htmx_request

router = APIRouter()
templates = Jinja2Templates(directory="app/templates")


def _render_list(request: Request, schema_id: str, store: SavedViewStore) -> HTMLResponse:
    return templates.TemplateResponse(
        request=request,
        name="partials/saved_view_list.html",
        context={"saved_views": store.load(), "schema_id": schema_id},
    )


@router.get("/{schema_id}", response_class=HTMLResponse)
def list_saved_views(
    request: Request, schema_id: str, db: Session = Depends(get_db)
) -> HTMLResponse:
    """List saved views for a filter schema."""
    get_schema(schema_id)
    return _render_list(request, schema_id, SavedViewStore(DatabaseStorage(db), schema_id))


@router.post("/{schema_id}", response_class=HTMLResponse)
def create_saved_view(
    request: Request,
    schema_id: str,
    name: str = Form(""),
    query_string: str = Form(""),
    db: Session = Depends(get_db),
) -> HTMLResponse:
    """Save the current filters. query_string is the page's URL params (without ?)."""
    schema = get_schema(schema_id)
    store = SavedViewStore(DatabaseStorage(db), schema_id)
    values = decode_query_string(schema, query_string)
    store.create(name, schema.dump_values(values))
    return _render_list(request, schema_id, store)


@router.get("/{schema_id}/{view_id}")
def apply_saved_view(
    request: Request, schema_id: str, view_id: str, db: Session = Depends(get_db)
) -> Response:
    """Apply a saved view by sending the browser to its filtered page."""
    schema = get_schema(schema_id)
    bar = FilterBar(
        schema,
        engine=FilterStateEngine(schema, UrlLocation(PAGE_PATHS[schema_id])),
        views=SavedViewStore(DatabaseStorage(db), schema_id),
    )
    if not bar.apply_view(view_id):
        raise NotFoundError("SavedView", view_id)

    url = bar.engine.location.url
    if is_htmx_request(request):
        return Response(status_code=200, headers={"HX-Redirect": url})
    return RedirectResponse(url, status_code=303)


@router.delete("/{schema_id}/{view_id}", response_class=HTMLResponse)
def delete_saved_view(
    request: Request, schema_id: str, view_id: str, db: Session = Depends(get_db)
) -> HTMLResponse:
    """Delete a saved view."""
    get_schema(schema_id)
    store = SavedViewStore(DatabaseStorage(db), schema_id)
    store.delete(view_id)
    return _render_list(request, schema_id, store)
