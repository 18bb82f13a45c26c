"""Filter state engine: holds current values and mirrors them into the URL."""

import logging
from collections.abc import Callable, Mapping
from typing import Any, Protocol
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit

from app.exceptions import ValidationError
from app.filters.schema import FilterSchema, FilterState, FilterValue, stable_key

logger = logging.getLogger(__name__)


class Location(Protocol):
    """Navigable address whose query string mirrors the filter state."""

    path: str
    query_string: str

    def replace_state(self, url: str) -> None:
        """Replace the current URL without adding a history entry."""
        ...


class UrlLocation:
    """In-memory location; records every ``replace_state`` write."""

    def __init__(self, url: str = "/"):
        parts = urlsplit(url)
        self.path = parts.path or "/"
        self.query_string = parts.query
        self.writes: list[str] = []

    @property
    def url(self) -> str:
        return f"{self.path}?{self.query_string}" if self.query_string else self.path

    def replace_state(self, url: str) -> None:
        parts = urlsplit(url)
        self.path = parts.path or self.path
        self.query_string = parts.query
        self.writes.append(url)


def decode_query_string(schema: FilterSchema, query_string: str) -> FilterState:
    """Parse filter values out of a query string.

    Malformed parameters are treated as absent.
    """
    parsed = parse_qs(query_string)
    state: FilterState = {}
    for f in schema.fields:
        if f.hidden:
            continue
        raw_values = parsed.get(f.key, [])
        raw = raw_values[0] if raw_values else ""
        if not raw:
            continue
        value = f.decode(raw)
        if value is not None and not f.is_empty(value):
            state[f.key] = value
    return state


def encode_query_string(
    schema: FilterSchema, values: Mapping[str, Any], base_query: str = ""
) -> str:
    """Write non-hidden, non-empty filter values into ``base_query``.

    Parameters that do not belong to the schema keep their position; empty or
    hidden fields are removed.
    """
    encoded: dict[str, str] = {}
    removed: set[str] = set()
    for f in schema.fields:
        value = values.get(f.key)
        if f.hidden or f.is_empty(value):
            removed.add(f.key)
        else:
            encoded[f.key] = f.encode(value)

    pairs: list[tuple[str, str]] = []
    written: set[str] = set()
    for key, raw in parse_qsl(base_query, keep_blank_values=True):
        if key in removed or key in written:
            continue
        if key in encoded:
            pairs.append((key, encoded[key]))
            written.add(key)
        else:
            pairs.append((key, raw))
    for key, raw in encoded.items():
        if key not in written:
            pairs.append((key, raw))
    return urlencode(pairs)


def _same_value(previous: Any, new: Any) -> bool:
    if isinstance(previous, list) and isinstance(new, list):
        return stable_key({"v": previous}) == stable_key({"v": new})
    if previous is new:
        return True
    return type(previous) is type(new) and previous == new


class FilterStateEngine:
    """Live filter state for one schema.

    Values are hydrated from the schema defaults and the location's query
    string (URL wins). Every state change is written back into the location
    with ``replace_state``, unless the serialized query string is unchanged.
    """

    def __init__(self, schema: FilterSchema, location: Location | None = None):
        self.schema = schema
        self.location = location if location is not None else UrlLocation()
        self._defaults: FilterState = schema.defaults()
        self._values: FilterState = {
            **self._defaults,
            **decode_query_string(schema, self.location.query_string),
        }
        self._listeners: list[Callable[[FilterState], None]] = []
        self._last_written = self.location.query_string
        self.transitions = 0
        self._sync_location()

    @property
    def values(self) -> FilterState:
        return dict(self._values)

    @property
    def defaults(self) -> FilterState:
        return dict(self._defaults)

    @property
    def active_count(self) -> int:
        return sum(
            0 if f.is_empty(self._values.get(f.key)) else 1 for f in self.schema.fields
        )

    def get(self, key: str) -> FilterValue | None:
        return self._values.get(key)

    def subscribe(self, listener: Callable[[FilterState], None]) -> None:
        self._listeners.append(listener)

    def set_value(self, key: str, value: Any) -> bool:
        """Replace one key's value. Returns False when nothing changed."""
        f = self.schema.get(key)
        if f is None:
            raise ValidationError(f"Unknown filter field '{key}'", field=key)

        if value is None:
            if key not in self._values:
                return False
            next_values = dict(self._values)
            del next_values[key]
            self._commit(next_values)
            return True

        value = f.coerce(value)
        if key in self._values and _same_value(self._values[key], value):
            return False
        self._commit({**self._values, key: value})
        return True

    def replace(self, values: Mapping[str, Any]) -> bool:
        """Replace the whole state (saved views, URL hydration, reset)."""
        next_values = self.schema.load_values(values)
        if stable_key(next_values) == stable_key(self._values):
            return False
        self._commit(next_values)
        return True

    def reset(self) -> bool:
        return self.replace(self._defaults)

    def _commit(self, next_values: FilterState) -> None:
        self._values = next_values
        self.transitions += 1
        self._sync_location()
        for listener in self._listeners:
            listener(self.values)

    def _sync_location(self) -> None:
        query = encode_query_string(
            self.schema, self._values, self.location.query_string
        )
        if query == self._last_written:
            return
        self._last_written = query
        url = f"{self.location.path}?{query}" if query else self.location.path
        self.location.replace_state(url)
        logger.debug("Filter state for %s written to %s", self.schema.id, url)
