"""Declarative filter schemas shared by the filter bar and the query layer.

Each field type is its own class. A field knows how to decide whether a value
is empty, how to encode/decode it for the query string, which operator the
query adapter uses by default and how to render it as a chip, so adding a new
field type only touches this module.
"""

import json
import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, ClassVar

from app.exceptions import ValidationError
from app.utils.query_params import parse_bool_param, parse_date_param

logger = logging.getLogger(__name__)


class Responsive(str, Enum):
    """Where a field is placed in the filter bar."""

    BAR = "bar"
    DRAWER = "drawer"
    BOTH = "both"


class FilterOperator(str, Enum):
    EQ = "eq"
    NEQ = "neq"
    ILIKE = "ilike"
    IN = "in"
    BETWEEN = "between"
    GTE = "gte"
    LTE = "lte"
    IS_TRUE = "is_true"
    IS_FALSE = "is_false"


@dataclass(frozen=True)
class DateRange:
    """Inclusive ISO date range (YYYY-MM-DD); either bound may be absent."""

    from_: str | None = None
    to: str | None = None

    def is_empty(self) -> bool:
        return not self.from_ and not self.to

    def to_dict(self) -> dict[str, str]:
        out = {}
        if self.from_:
            out["from"] = self.from_
        if self.to:
            out["to"] = self.to
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DateRange":
        return cls(from_=data.get("from") or None, to=data.get("to") or None)


FilterScalar = str | int | float | bool
FilterValue = FilterScalar | list[str | int] | DateRange
FilterState = dict[str, FilterValue]


@dataclass(frozen=True)
class FilterOption:
    label: str
    value: str | int


def _match_option(options: tuple[FilterOption, ...], raw: str) -> str | int:
    """Map a raw string back to the declared option value (keeps int options int)."""
    for option in options:
        if str(option.value) == raw:
            return option.value
    return raw


@dataclass(frozen=True, kw_only=True)
class FilterField:
    """Base class for one declared filter control."""

    type: ClassVar[str]

    key: str
    label: str
    column: str | None = None
    operator: FilterOperator | None = None
    responsive: Responsive = Responsive.BOTH
    immediate: bool = False
    hidden: bool = False
    default_value: Any = None

    def coerce(self, value: Any) -> FilterValue | None:
        """Normalize a raw Python/JSON value into this field's value shape."""
        return value

    def is_empty(self, value: Any) -> bool:
        if value is None:
            return True
        if isinstance(value, str) and value.strip() == "":
            return True
        return False

    def encode(self, value: FilterValue) -> str:
        return str(value)

    def decode(self, raw: str) -> FilterValue | None:
        return raw or None

    def default_operator(self, value: FilterValue) -> FilterOperator:
        return FilterOperator.EQ

    def chip_text(self, value: FilterValue) -> str:
        return f"{self.label}: {value}"


@dataclass(frozen=True, kw_only=True)
class TextField(FilterField):
    type: ClassVar[str] = "text"

    placeholder: str | None = None
    min_chars: int = 0

    def coerce(self, value: Any) -> FilterValue | None:
        if value is None:
            return None
        return str(value)

    def default_operator(self, value: FilterValue) -> FilterOperator:
        return FilterOperator.ILIKE


@dataclass(frozen=True, kw_only=True)
class SelectField(FilterField):
    type: ClassVar[str] = "select"

    options: tuple[FilterOption, ...] = ()
    clearable: bool = True

    def decode(self, raw: str) -> FilterValue | None:
        if not raw:
            return None
        return _match_option(self.options, raw)

    def chip_text(self, value: FilterValue) -> str:
        for option in self.options:
            if option.value == value:
                return f"{self.label}: {option.label}"
        return f"{self.label}: {value}"


@dataclass(frozen=True, kw_only=True)
class MultiSelectField(FilterField):
    type: ClassVar[str] = "multiselect"

    options: tuple[FilterOption, ...] = ()
    max_tags: int | None = None

    def coerce(self, value: Any) -> FilterValue | None:
        if value is None:
            return None
        if isinstance(value, (list, tuple)):
            return list(value)
        return [value]

    def is_empty(self, value: Any) -> bool:
        if isinstance(value, (list, tuple)):
            return len(value) == 0
        return super().is_empty(value)

    def encode(self, value: FilterValue) -> str:
        if isinstance(value, (list, tuple)):
            return ",".join(str(v) for v in value)
        return str(value)

    def decode(self, raw: str) -> FilterValue | None:
        values = [_match_option(self.options, part) for part in raw.split(",") if part]
        return values or None

    def default_operator(self, value: FilterValue) -> FilterOperator:
        return FilterOperator.IN

    def chip_text(self, value: FilterValue) -> str:
        items = value if isinstance(value, (list, tuple)) else [value]
        return f"{self.label}: {', '.join(str(v) for v in items)}"


@dataclass(frozen=True, kw_only=True)
class BooleanField(FilterField):
    type: ClassVar[str] = "boolean"

    true_label: str = "Sí"
    false_label: str = "No"

    def coerce(self, value: Any) -> FilterValue | None:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, str):
            return parse_bool_param(value)
        return bool(value)

    def encode(self, value: FilterValue) -> str:
        return "true" if value else "false"

    def decode(self, raw: str) -> FilterValue | None:
        return parse_bool_param(raw)

    def default_operator(self, value: FilterValue) -> FilterOperator:
        return FilterOperator.IS_TRUE if value else FilterOperator.IS_FALSE

    def chip_text(self, value: FilterValue) -> str:
        return f"{self.label}: {self.true_label if value else self.false_label}"


@dataclass(frozen=True, kw_only=True)
class DateRangeField(FilterField):
    type: ClassVar[str] = "daterange"

    def coerce(self, value: Any) -> FilterValue | None:
        if value is None or isinstance(value, DateRange):
            return value
        if isinstance(value, Mapping):
            return DateRange.from_dict(value)
        return None

    def is_empty(self, value: Any) -> bool:
        value = self.coerce(value)
        return value is None or value.is_empty()

    def encode(self, value: FilterValue) -> str:
        value = self.coerce(value)
        return f"{value.from_ or ''}|{value.to or ''}"

    def decode(self, raw: str) -> FilterValue | None:
        parts = raw.split("|")
        if len(parts) > 2:
            return None
        bounds = [parse_date_param(part) for part in parts] + [None]
        start, end = bounds[0], bounds[1]
        if start is None and end is None:
            return None
        return DateRange(
            from_=start.isoformat() if start else None,
            to=end.isoformat() if end else None,
        )

    def default_operator(self, value: FilterValue) -> FilterOperator:
        return FilterOperator.BETWEEN

    def chip_text(self, value: FilterValue) -> str:
        value = self.coerce(value)
        return f"{self.label}: {value.from_ or '—'} → {value.to or '—'}"


@dataclass(frozen=True)
class FilterSchema:
    """Named, ordered collection of filter fields."""

    id: str
    fields: tuple[FilterField, ...]
    column_map: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields))
        seen: set[str] = set()
        for f in self.fields:
            if f.key in seen:
                raise ValidationError(
                    f"Duplicate filter key '{f.key}' in schema '{self.id}'", field=f.key
                )
            seen.add(f.key)

    def __iter__(self) -> Iterator[FilterField]:
        return iter(self.fields)

    @property
    def keys(self) -> list[str]:
        return [f.key for f in self.fields]

    def get(self, key: str) -> FilterField | None:
        for f in self.fields:
            if f.key == key:
                return f
        return None

    def resolve_column(self, f: FilterField) -> str:
        return f.column or self.column_map.get(f.key) or f.key

    def defaults(self) -> FilterState:
        return {
            f.key: f.coerce(f.default_value)
            for f in self.fields
            if f.default_value is not None
        }

    def with_options(self, key: str, options: Iterable[FilterOption]) -> "FilterSchema":
        """Derive a schema with injected options for one select/multiselect field."""
        target = self.get(key)
        if not isinstance(target, (SelectField, MultiSelectField)):
            raise ValidationError(f"Field '{key}' does not take options", field=key)
        fields = tuple(
            replace(f, options=tuple(options)) if f.key == key else f
            for f in self.fields
        )
        return FilterSchema(id=self.id, fields=fields, column_map=self.column_map)

    def is_active(self, values: Mapping[str, Any]) -> bool:
        return any(not f.is_empty(values.get(f.key)) for f in self.fields)

    def load_values(self, raw: Mapping[str, Any]) -> FilterState:
        """Coerce JSON-like values into filter state, dropping unknown keys."""
        out: FilterState = {}
        for key, value in raw.items():
            f = self.get(key)
            if f is None:
                logger.debug("Dropping unknown filter key %r for schema %s", key, self.id)
                continue
            coerced = f.coerce(value)
            if not f.is_empty(coerced):
                out[key] = coerced
        return out

    def dump_values(self, values: Mapping[str, Any]) -> dict[str, Any]:
        """JSON-serializable copy of filter state."""
        return {
            key: value.to_dict() if isinstance(value, DateRange) else value
            for key, value in values.items()
        }


def stable_key(values: Mapping[str, Any]) -> str:
    """Order-independent serialization used to detect real state changes."""
    return json.dumps(
        values,
        sort_keys=True,
        default=lambda v: v.to_dict() if isinstance(v, DateRange) else str(v),
    )
