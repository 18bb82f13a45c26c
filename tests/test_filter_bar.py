"""Tests for the filter bar: staged vs. immediate apply, presets, chips, views."""

from datetime import date

import pytest

from app.filters import (
    BarVisibility,
    BooleanField,
    DateRange,
    DateRangeField,
    DrawerState,
    FilterBar,
    FilterSchema,
    FilterStateEngine,
    MemoryStorage,
    MultiSelectField,
    Responsive,
    SavedViewStore,
    SelectField,
    TextField,
    UrlLocation,
)

SCHEMA = FilterSchema(
    id="work_orders",
    fields=(
        TextField(key="q", label="Buscar", immediate=True, min_chars=2, responsive=Responsive.BAR),
        MultiSelectField(key="status", label="Estado"),
        SelectField(key="location", label="Ubicación", immediate=True),
        DateRangeField(key="created_at", label="Creado", responsive=Responsive.DRAWER),
        BooleanField(key="has_image", label="Con imagen", responsive=Responsive.DRAWER),
    ),
)


@pytest.fixture
def applied() -> list[dict]:
    return []


@pytest.fixture
def bar(applied) -> FilterBar:
    return FilterBar(
        SCHEMA,
        engine=FilterStateEngine(SCHEMA, UrlLocation("/work-orders")),
        on_apply=applied.append,
        views=SavedViewStore(MemoryStorage(), SCHEMA.id, prefix="test:"),
        today=date(2024, 3, 10),
    )


def test_seven_day_preset_applies_immediately(bar, applied):
    bar.pick_preset(7)

    expected = DateRange("2024-03-04", "2024-03-10")
    assert applied == [{"created_at": expected}]
    assert bar.values["created_at"] == expected
    assert "created_at=2024-03-04%7C2024-03-10" in bar.engine.location.url


def test_staged_field_waits_for_apply(bar, applied):
    bar.change("status", ["Pendiente"])
    assert applied == []

    bar.open_drawer()
    bar.apply()
    assert applied == [{"status": ["Pendiente"]}]
    assert bar.drawer is DrawerState.CLOSED


def test_immediate_field_fires_with_merged_values(bar, applied):
    bar.change("status", ["Pendiente"])
    bar.change("location", "M7")
    assert applied == [{"status": ["Pendiente"], "location": "M7"}]


def test_text_below_min_chars_does_not_fire(bar, applied):
    bar.change("q", "a")
    assert applied == []
    bar.change("q", "ag")
    assert applied == [{"q": "ag"}]


def test_chips_and_removal(bar, applied):
    bar.change("has_image", False)
    bar.change("location", "M7")
    assert [c.text for c in bar.chips] == ["Ubicación: M7", "Con imagen: No"]

    applied.clear()
    bar.remove_chip("has_image")
    assert applied == []  # staged field
    bar.remove_chip("location")
    assert applied == [{}]
    assert bar.chips == []


def test_reset_restores_defaults(bar):
    bar.change("status", ["Pendiente"])
    bar.reset()
    assert bar.values == {}
    assert bar.active_count == 0


def test_layout_wide_and_narrow(bar):
    assert bar.visibility is BarVisibility.EXPANDED
    assert bar.drawer_fields == []
    assert not bar.show_drawer_toggle

    bar.set_viewport(False)
    assert bar.visibility is BarVisibility.COLLAPSED
    assert [f.key for f in bar.bar_fields] == ["q", "status", "location"]
    assert [f.key for f in bar.drawer_fields] == ["status", "location", "created_at", "has_image"]

    bar.open_drawer()
    assert bar.drawer is DrawerState.OPEN
    assert bar.toggle_bar() is BarVisibility.EXPANDED


def test_saved_views_round_trip(bar, applied):
    bar.change("status", ["Pendiente"])
    bar.pick_preset(30)
    view = bar.save_view("Marzo")
    assert view is not None
    assert bar.save_view("   ") is None

    bar.reset()
    applied.clear()
    assert bar.apply_view(view.id) is True
    assert bar.values == {
        "status": ["Pendiente"],
        "created_at": DateRange("2024-02-10", "2024-03-10"),
    }
    assert len(applied) == 1

    assert bar.delete_view(view.id) is True
    assert bar.saved_views() == []
    assert bar.apply_view(view.id) is False


def test_stale_view_keys_are_dropped(applied):
    storage = MemoryStorage(
        {
            "test:work_orders": '[{"id": "v1", "name": "Vieja", '
            '"values": {"location": "M7", "removed": "x"}}]'
        }
    )
    bar = FilterBar(
        SCHEMA,
        on_apply=applied.append,
        views=SavedViewStore(storage, SCHEMA.id, prefix="test:"),
    )
    assert bar.apply_view("v1") is True
    assert applied == [{"location": "M7"}]


def test_export_merges_forced_values(bar):
    bar.change("location", "M7")
    assert bar.export_filters({"accepted": False}) == {"location": "M7", "accepted": False}
