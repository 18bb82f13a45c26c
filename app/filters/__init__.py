"""Schema-driven filters: declaration, URL state, query translation, filter bar."""

from app.filters.adapter import Condition, QueryBuilder, SQLAlchemyQueryBuilder, apply_filters
from app.filters.bar import BarVisibility, Chip, DrawerState, FilterBar
from app.filters.presets import DATE_PRESETS, last_n_days
from app.filters.saved_views import SavedView, SavedViewStore
from app.filters.schema import (
    BooleanField,
    DateRange,
    DateRangeField,
    FilterField,
    FilterOperator,
    FilterOption,
    FilterSchema,
    FilterState,
    FilterValue,
    MultiSelectField,
    Responsive,
    SelectField,
    TextField,
)
from app.filters.state import (
    FilterStateEngine,
    UrlLocation,
    decode_query_string,
    encode_query_string,
)
from app.filters.storage import DatabaseStorage, KeyValueStorage, MemoryStorage

__all__ = [
    # Schema
    "FilterSchema",
    "FilterField",
    "TextField",
    "SelectField",
    "MultiSelectField",
    "BooleanField",
    "DateRangeField",
    "FilterOption",
    "FilterOperator",
    "Responsive",
    "DateRange",
    "FilterState",
    "FilterValue",
    # State
    "FilterStateEngine",
    "UrlLocation",
    "encode_query_string",
    "decode_query_string",
    # Query adapter
    "apply_filters",
    "Condition",
    "QueryBuilder",
    "SQLAlchemyQueryBuilder",
    # Filter bar
    "FilterBar",
    "BarVisibility",
    "DrawerState",
    "Chip",
    "DATE_PRESETS",
    "last_n_days",
    # Saved views
    "SavedView",
    "SavedViewStore",
    "KeyValueStorage",
    "MemoryStorage",
    "DatabaseStorage",
]
