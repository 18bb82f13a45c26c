"""Filter schemas for the work-order and work-request pages, plus pagination."""

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import urlencode

from sqlalchemy.orm import Query, Session

from app.config import get_settings
from app.exceptions import NotFoundError
from app.filters import (
    BooleanField,
    DatabaseStorage,
    DateRangeField,
    FilterBar,
    FilterOption,
    FilterSchema,
    FilterStateEngine,
    MultiSelectField,
    Responsive,
    SavedViewStore,
    SelectField,
    TextField,
    UrlLocation,
    encode_query_string,
    last_n_days,
)
from app.models.ticket import PRIORITIES, STATUSES

if TYPE_CHECKING:
    from starlette.datastructures import QueryParams
    from starlette.requests import Request

# Keys handled by the services themselves instead of the generic adapter
SEARCH_KEY = "q"
HAS_IMAGE_KEY = "has_image"
CUSTOM_KEYS = (SEARCH_KEY, HAS_IMAGE_KEY)

PRIORITY_LABELS = {"baja": "Baja", "media": "Media", "alta": "Alta"}

_search = TextField(
    key=SEARCH_KEY,
    label="Buscar",
    placeholder="ID, título o solicitante",
    min_chars=2,
    immediate=True,
    responsive=Responsive.BAR,
)
_status = MultiSelectField(
    key="status",
    label="Estado",
    options=tuple(FilterOption(label=s, value=s) for s in STATUSES),
)
_priority = MultiSelectField(
    key="priority",
    label="Prioridad",
    options=tuple(FilterOption(label=PRIORITY_LABELS[p], value=p) for p in PRIORITIES),
)
_location = SelectField(key="location", label="Ubicación", immediate=True)
_created = DateRangeField(
    key="created_at", label="Creado", responsive=Responsive.DRAWER
)
_has_image = BooleanField(
    key=HAS_IMAGE_KEY, label="Con imagen", responsive=Responsive.DRAWER
)

WORK_ORDERS_SCHEMA = FilterSchema(
    id="work_orders",
    fields=(
        _search,
        _status,
        _priority,
        _location,
        SelectField(
            key="assignee_id",
            label="Encargado",
            responsive=Responsive.DRAWER,
        ),
        _created,
        _has_image,
    ),
)

WORK_REQUESTS_SCHEMA = FilterSchema(
    id="work_requests",
    fields=(
        _search,
        _status,
        _priority,
        _location,
        BooleanField(
            key="accepted",
            label="Aceptadas",
            responsive=Responsive.BAR,
            immediate=True,
        ),
        _created,
        _has_image,
    ),
    column_map={"accepted": "is_accepted"},
)

SCHEMAS = {s.id: s for s in (WORK_ORDERS_SCHEMA, WORK_REQUESTS_SCHEMA)}


@dataclass
class PaginationParams:
    """Pagination parameters."""

    page: int = 1
    per_page: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def apply_pagination(query: Query, pagination: PaginationParams) -> Query:
    """Apply pagination to a query."""
    return query.offset(pagination.offset).limit(pagination.per_page)


# Page each schema's filter bar lives on
PAGE_PATHS = {
    WORK_ORDERS_SCHEMA.id: "/work-orders",
    WORK_REQUESTS_SCHEMA.id: "/work-requests",
}


def get_schema(schema_id: str) -> FilterSchema:
    schema = SCHEMAS.get(schema_id)
    if schema is None:
        raise NotFoundError("FilterSchema", schema_id)
    return schema


def canonical_query_string(schema: FilterSchema, params: "QueryParams") -> str:
    """
    Fold HTML form encodings into the schema's query-string encoding.

    Repeated multiselect keys become one comma-joined value, and split date
    inputs (``<key>_from`` / ``<key>_to``) become ``from|to``. Other
    parameters pass through unchanged.
    """
    pairs: list[tuple[str, str]] = []
    seen: set[str] = set()
    for key, raw in params.multi_items():
        base = key.removesuffix("_from").removesuffix("_to")
        range_field = schema.get(base) if base != key else None
        if isinstance(range_field, DateRangeField):
            key = base
        if key in seen:
            continue
        seen.add(key)

        f = schema.get(key)
        if isinstance(f, MultiSelectField):
            raw = ",".join(
                part for value in params.getlist(key) for part in value.split(",") if part
            )
        elif isinstance(f, DateRangeField) and range_field is not None:
            start = params.get(f"{key}_from", "")
            end = params.get(f"{key}_to", "")
            raw = f"{start}|{end}" if start or end else ""
        pairs.append((key, raw))
    return urlencode(pairs)


def _request_location(request: "Request", schema: FilterSchema) -> UrlLocation:
    query_string = canonical_query_string(schema, request.query_params)
    path = PAGE_PATHS.get(schema.id, request.url.path)
    return UrlLocation(f"{path}?{query_string}" if query_string else path)


def build_filter_bar(
    request: "Request",
    schema: FilterSchema,
    db: Session,
) -> FilterBar:
    """Filter bar hydrated from the request URL, with saved views in the database."""
    return FilterBar(
        schema,
        engine=FilterStateEngine(schema, _request_location(request, schema)),
        views=SavedViewStore(DatabaseStorage(db), schema.id),
    )


def request_filter_values(request: "Request", schema: FilterSchema) -> dict:
    """Filter values from the request URL, for callers that render no filter bar."""
    return FilterStateEngine(schema, _request_location(request, schema)).values


def _page_url(bar: FilterBar, values: dict) -> str:
    location = bar.engine.location
    query = encode_query_string(bar.schema, values, location.query_string)
    return f"{location.path}?{query}" if query else location.path


def filter_bar_context(bar: FilterBar) -> dict:
    """Links for date presets and chip removal, rendered by the filter bar."""
    values = bar.values
    presets = []
    if bar.date_field is not None:
        for preset in bar.presets:
            preset_values = {**values, bar.date_field.key: last_n_days(preset.days, bar.today)}
            presets.append((preset.label, _page_url(bar, preset_values)))

    chips = []
    for chip in bar.chips:
        remaining = {k: v for k, v in values.items() if k != chip.key}
        chips.append((chip, _page_url(bar, remaining)))

    return {
        "preset_links": presets,
        "chip_links": chips,
        "reset_url": _page_url(bar, bar.engine.defaults),
        "filter_debounce_ms": get_settings().filter_debounce_ms,
    }
