"""Tests for work order queries and writes."""

from datetime import date

import pytest

from app.board import RealtimeHub
from app.exceptions import NotFoundError, ValidationError
from app.filters import DateRange
from app.services.filters import PaginationParams
from app.services.work_order_service import (
    archive_work_order,
    fetch_filtered_work_orders,
    fetch_work_orders,
    fetch_work_orders_by_status,
    get_active_assignees,
    get_locations,
    get_status_counts,
    move_work_order_status,
    search_conditions,
    update_work_order,
)


def titles(tickets):
    return [t.title for t in tickets]


class TestFetchWorkOrders:
    def test_excludes_archived_and_unaccepted(self, db_session, work_orders):
        rows, total = fetch_work_orders(db_session, {}, PaginationParams())
        assert total == 3
        assert titles(rows) == ["Puerta rota", "Luz quemada", "Fuga de agua"]

    @pytest.mark.parametrize(
        "term,expected",
        [
            ("luz", ["Luz quemada"]),
            ("PEDRO", ["Luz quemada"]),
            ("rota", ["Puerta rota"]),
            ("l", ["Puerta rota", "Luz quemada", "Fuga de agua"]),
        ],
    )
    def test_search(self, db_session, work_orders, term, expected):
        rows, _ = fetch_work_orders(db_session, {"q": term}, PaginationParams())
        assert titles(rows) == expected

    def test_search_by_id(self, db_session, work_orders):
        target = work_orders[2]
        rows, _ = fetch_work_orders(db_session, {"q": f"{target.id:02d}"}, PaginationParams())
        assert [t.id for t in rows] == [target.id]

    def test_status_and_priority(self, db_session, work_orders):
        rows, _ = fetch_work_orders(
            db_session, {"status": ["Pendiente", "Finalizadas"]}, PaginationParams()
        )
        assert titles(rows) == ["Puerta rota", "Fuga de agua"]

        rows, _ = fetch_work_orders(db_session, {"priority": ["alta"]}, PaginationParams())
        assert titles(rows) == ["Fuga de agua"]

    def test_created_range_includes_whole_last_day(self, db_session, work_orders):
        values = {"created_at": DateRange("2024-03-01", "2024-03-10")}
        rows, _ = fetch_work_orders(db_session, values, PaginationParams())
        assert titles(rows) == ["Puerta rota", "Fuga de agua"]

    def test_has_image_and_assignee(self, db_session, work_orders, assignees):
        rows, _ = fetch_work_orders(db_session, {"has_image": True}, PaginationParams())
        assert titles(rows) == ["Luz quemada"]

        rows, _ = fetch_work_orders(
            db_session, {"assignee_id": str(assignees[0].id)}, PaginationParams()
        )
        assert titles(rows) == ["Luz quemada"]

    def test_pagination(self, db_session, work_orders):
        rows, total = fetch_work_orders(db_session, {}, PaginationParams(page=2, per_page=2))
        assert total == 3
        assert titles(rows) == ["Fuga de agua"]


def test_search_conditions_ignore_short_terms():
    assert search_conditions("a") == []
    assert search_conditions("  ") == []
    assert len(search_conditions("ab")) == 2
    assert len(search_conditions("42")) == 3


def test_column_pages_are_zero_based(db_session, ticket_factory):
    for i in range(5):
        ticket_factory(title=f"T{i}")
    ticket_factory(title="Otra", status="Finalizadas")

    rows, total = fetch_work_orders_by_status(db_session, "Pendiente", 0, 2)
    assert total == 5
    assert titles(rows) == ["T4", "T3"]

    rows, _ = fetch_work_orders_by_status(db_session, "Pendiente", 2, 2)
    assert titles(rows) == ["T0"]


def test_filtered_fetch_is_bounded(db_session, work_orders):
    rows = fetch_filtered_work_orders(db_session, {"location": "M7"}, limit=1)
    assert titles(rows) == ["Puerta rota"]


def test_status_counts(db_session, work_orders):
    assert get_status_counts(db_session) == {
        "Pendiente": 1,
        "En Ejecución": 1,
        "Finalizadas": 1,
    }
    assert get_status_counts(db_session, location="M7")["En Ejecución"] == 0
    assert get_status_counts(db_session, term="fuga") == {
        "Pendiente": 1,
        "En Ejecución": 0,
        "Finalizadas": 0,
    }


class TestUpdateWorkOrder:
    def test_update_publishes_change(self, db_session, work_orders, assignees):
        hub = RealtimeHub()
        events = []
        hub.subscribe("tickets", events.append)

        ticket = update_work_order(
            db_session,
            work_orders[0].id,
            {"priority": "baja", "assignee_id": str(assignees[1].id), "deadline_date": "2024-04-01"},
            hub,
        )
        assert ticket.priority == "baja"
        assert ticket.assignee_id == assignees[1].id
        assert ticket.deadline_date == date(2024, 4, 1)

        assert len(events) == 1
        assert events[0].old["priority"] == "alta"
        assert events[0].new["priority"] == "baja"

    @pytest.mark.parametrize(
        "changes,field",
        [
            ({"priority": "urgente"}, "priority"),
            ({"status": "Cerrada"}, "status"),
            ({"assignee_id": "999"}, "assignee_id"),
            ({"deadline_date": "mañana"}, "deadline_date"),
            ({"title": "Nuevo"}, "title"),
        ],
    )
    def test_invalid_changes(self, db_session, work_orders, changes, field):
        with pytest.raises(ValidationError) as exc:
            update_work_order(db_session, work_orders[0].id, changes)
        assert exc.value.field == field

    def test_work_request_is_not_editable_here(self, db_session, work_orders):
        with pytest.raises(ValidationError):
            update_work_order(db_session, work_orders[4].id, {"priority": "baja"})

    def test_missing(self, db_session, work_orders):
        with pytest.raises(NotFoundError):
            update_work_order(db_session, 999, {"priority": "baja"})

    def test_clear_assignee(self, db_session, work_orders):
        ticket = update_work_order(db_session, work_orders[1].id, {"assignee_id": ""})
        assert ticket.assignee_id is None


def test_move_status(db_session, work_orders):
    ticket = move_work_order_status(db_session, work_orders[0].id, "Finalizadas")
    assert ticket.status == "Finalizadas"
    assert get_status_counts(db_session)["Finalizadas"] == 2


def test_archive_is_conditional(db_session, work_orders):
    hub = RealtimeHub()
    events = []
    hub.subscribe("tickets", events.append)

    assert archive_work_order(db_session, work_orders[0].id, hub) is True
    assert archive_work_order(db_session, work_orders[0].id, hub) is False
    assert len(events) == 1
    assert events[0].new["is_archived"] is True

    rows, total = fetch_work_orders(db_session, {}, PaginationParams())
    assert total == 2


def test_locations_and_assignees(db_session, work_orders):
    assert get_locations(db_session) == ["Adrian Tropical 27", "M7"]
    assert [a.full_name for a in get_active_assignees(db_session)] == [
        "Ana Pérez",
        "Luis Gómez",
    ]
