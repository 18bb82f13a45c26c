"""Filter bar view model.

Holds staged values, decides when the apply callback fires, and tracks the
bar/drawer display state. Templates render it; tests drive it directly.
"""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any

from app.exceptions import ValidationError
from app.filters.presets import DATE_PRESETS, DatePreset, last_n_days
from app.filters.saved_views import SavedView, SavedViewStore
from app.filters.schema import (
    DateRangeField,
    FilterField,
    FilterSchema,
    FilterState,
    Responsive,
    TextField,
)
from app.filters.state import FilterStateEngine

logger = logging.getLogger(__name__)

ApplyCallback = Callable[[FilterState], None]


class BarVisibility(str, Enum):
    COLLAPSED = "collapsed"
    EXPANDED = "expanded"


class DrawerState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"


@dataclass(frozen=True)
class Chip:
    key: str
    text: str


class FilterBar:
    """Schema-driven filter controls with staged vs. immediate semantics."""

    def __init__(
        self,
        schema: FilterSchema,
        engine: FilterStateEngine | None = None,
        on_apply: ApplyCallback | None = None,
        views: SavedViewStore | None = None,
        wide: bool = True,
        today: date | None = None,
    ):
        self.schema = schema
        self.engine = engine if engine is not None else FilterStateEngine(schema)
        self.on_apply = on_apply
        self.views = views
        self.today = today
        self.wide = wide
        self.visibility = BarVisibility.EXPANDED if wide else BarVisibility.COLLAPSED
        self.drawer = DrawerState.CLOSED
        self.apply_count = 0
        self.last_applied: FilterState | None = None

    # ------------------------------------------------------------------ layout

    @property
    def values(self) -> FilterState:
        return self.engine.values

    @property
    def active_count(self) -> int:
        return self.engine.active_count

    @property
    def visible_fields(self) -> list[FilterField]:
        return [f for f in self.schema.fields if not f.hidden]

    @property
    def bar_fields(self) -> list[FilterField]:
        if self.wide:
            return self.visible_fields
        return [f for f in self.visible_fields if f.responsive is not Responsive.DRAWER]

    @property
    def drawer_fields(self) -> list[FilterField]:
        if self.wide:
            return []
        return [f for f in self.visible_fields if f.responsive is not Responsive.BAR]

    @property
    def show_drawer_toggle(self) -> bool:
        return bool(self.drawer_fields)

    @property
    def date_field(self) -> DateRangeField | None:
        for f in self.schema.fields:
            if isinstance(f, DateRangeField):
                return f
        return None

    @property
    def presets(self) -> tuple[DatePreset, ...]:
        return DATE_PRESETS if self.date_field is not None else ()

    def set_viewport(self, wide: bool) -> None:
        """Viewport crossed the wide breakpoint; re-derive the initial states."""
        if wide == self.wide:
            return
        self.wide = wide
        self.visibility = BarVisibility.EXPANDED if wide else BarVisibility.COLLAPSED
        if wide:
            self.drawer = DrawerState.CLOSED

    def toggle_bar(self) -> BarVisibility:
        self.visibility = (
            BarVisibility.COLLAPSED
            if self.visibility is BarVisibility.EXPANDED
            else BarVisibility.EXPANDED
        )
        return self.visibility

    def open_drawer(self) -> None:
        if self.show_drawer_toggle:
            self.drawer = DrawerState.OPEN

    def close_drawer(self) -> None:
        self.drawer = DrawerState.CLOSED

    # ------------------------------------------------------------------ values

    def _fire(self, values: Mapping[str, Any]) -> None:
        self.apply_count += 1
        self.last_applied = dict(values)
        if self.on_apply is not None:
            self.on_apply(dict(values))

    def _field(self, key: str) -> FilterField:
        f = self.schema.get(key)
        if f is None:
            raise ValidationError(f"Unknown filter field '{key}'", field=key)
        return f

    def change(self, key: str, value: Any) -> None:
        """Stage a field change; immediate fields apply right away."""
        f = self._field(key)
        self.engine.set_value(key, value)
        if not f.immediate:
            return
        if isinstance(f, TextField) and f.min_chars and not f.is_empty(value):
            if len(str(value).strip()) < f.min_chars:
                return
        merged = dict(self.engine.values)
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = f.coerce(value)
        self._fire(merged)

    def apply(self) -> None:
        self.close_drawer()
        self._fire(self.engine.values)

    def reset(self) -> None:
        self.engine.reset()

    def pick_preset(self, days: int) -> None:
        """Set the date range to the last ``days`` days and apply at once."""
        f = self.date_field
        if f is None:
            return
        date_range = last_n_days(days, self.today)
        self.engine.set_value(f.key, date_range)
        self._fire({**self.engine.values, f.key: date_range})

    # ------------------------------------------------------------------ chips

    @property
    def chips(self) -> list[Chip]:
        values = self.engine.values
        return [
            Chip(key=f.key, text=f.chip_text(values[f.key]))
            for f in self.visible_fields
            if not f.is_empty(values.get(f.key))
        ]

    def remove_chip(self, key: str) -> None:
        f = self._field(key)
        self.engine.set_value(key, None)
        if f.immediate:
            self._fire(self.engine.values)

    # ------------------------------------------------------------------ saved views

    def saved_views(self) -> list[SavedView]:
        return self.views.load() if self.views is not None else []

    def save_view(self, name: str) -> SavedView | None:
        if self.views is None:
            return None
        return self.views.create(name, self.schema.dump_values(self.engine.values))

    def apply_view(self, view_id: str) -> bool:
        """Apply a saved view wholesale, bypassing staged semantics.

        Keys that are no longer part of the schema are dropped.
        """
        view = self.views.get(view_id) if self.views is not None else None
        if view is None:
            return False
        values = self.schema.load_values(view.values)
        self.engine.replace(values)
        self._fire(values)
        return True

    def delete_view(self, view_id: str) -> bool:
        if self.views is None:
            return False
        return self.views.delete(view_id)

    # ------------------------------------------------------------------ export

    def export_filters(self, merge: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Snapshot of the current values with forced values merged on top."""
        return {**self.engine.values, **(merge or {})}
