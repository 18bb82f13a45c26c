"""Tests for the filter state engine and its URL synchronization."""

import pytest

from app.exceptions import ValidationError
from app.filters import (
    BooleanField,
    DateRange,
    DateRangeField,
    FilterSchema,
    FilterStateEngine,
    MultiSelectField,
    SelectField,
    TextField,
    UrlLocation,
    decode_query_string,
    encode_query_string,
)

SCHEMA = FilterSchema(
    id="work_orders",
    fields=(
        TextField(key="q", label="Buscar"),
        MultiSelectField(key="status", label="Estado"),
        SelectField(key="location", label="Ubicación", default_value="M7"),
        BooleanField(key="has_image", label="Con imagen"),
        DateRangeField(key="created_at", label="Creado"),
        TextField(key="internal", label="Interno", hidden=True),
    ),
)


def test_initial_values_merge_defaults_and_url():
    engine = FilterStateEngine(SCHEMA, UrlLocation("/wo?q=agua&location=Lago"))
    assert engine.values == {"location": "Lago", "q": "agua"}


def test_defaults_written_to_url_on_mount():
    location = UrlLocation("/wo")
    FilterStateEngine(SCHEMA, location)
    assert location.url == "/wo?location=M7"
    assert len(location.writes) == 1


def test_active_count_counts_non_empty_fields():
    engine = FilterStateEngine(SCHEMA, UrlLocation("/wo"))
    engine.set_value("status", [])
    engine.set_value("has_image", False)
    engine.set_value("created_at", DateRange())
    # location default + has_image=False
    assert engine.active_count == 2


def test_round_trip_through_query_string():
    values = {
        "q": "luz",
        "status": ["Pendiente", "En Ejecución"],
        "location": "M7",
        "has_image": True,
        "created_at": DateRange("2024-03-04", "2024-03-10"),
    }
    query = encode_query_string(SCHEMA, values)
    assert decode_query_string(SCHEMA, query) == values


def test_encode_preserves_unrelated_params_and_drops_hidden():
    query = encode_query_string(
        SCHEMA, {"q": "agua", "internal": "x", "status": []}, "view=list&q=old&status=A"
    )
    assert query == "view=list&q=agua"


def test_malformed_params_are_absent():
    values = decode_query_string(SCHEMA, "has_image=perhaps&created_at=2024-13-45|&q=ok")
    assert values == {"q": "ok"}


def test_setting_same_value_does_not_write_again():
    location = UrlLocation("/wo?location=M7")
    engine = FilterStateEngine(SCHEMA, location)
    assert location.writes == []

    assert engine.set_value("status", ["Pendiente"]) is True
    assert len(location.writes) == 1

    assert engine.set_value("status", ["Pendiente"]) is False
    assert engine.replace(engine.values) is False
    assert len(location.writes) == 1
    assert engine.transitions == 1


def test_clearing_a_value_removes_it_from_url():
    location = UrlLocation("/wo?location=M7&q=agua")
    engine = FilterStateEngine(SCHEMA, location)
    engine.set_value("q", None)
    assert "q" not in engine.values
    assert location.url == "/wo?location=M7"


def test_unknown_key_rejected():
    engine = FilterStateEngine(SCHEMA, UrlLocation("/wo"))
    with pytest.raises(ValidationError):
        engine.set_value("nope", "x")


def test_reset_restores_defaults_and_notifies():
    seen = []
    engine = FilterStateEngine(SCHEMA, UrlLocation("/wo?q=agua&location=Lago"))
    engine.subscribe(seen.append)
    assert engine.reset() is True
    assert engine.values == {"location": "M7"}
    assert seen == [{"location": "M7"}]
