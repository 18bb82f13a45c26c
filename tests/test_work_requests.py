"""Tests for work request creation and batch acceptance."""

import pytest

from app.board import RealtimeHub
from app.exceptions import BatchOperationError, ValidationError
from app.models import Ticket
from app.services.filters import PaginationParams
from app.services.work_request_service import (
    accept_work_requests,
    create_work_request,
    fetch_work_requests,
)


def test_fetch_lists_only_unaccepted(db_session, work_orders):
    rows, total = fetch_work_requests(db_session, {}, PaginationParams())
    assert total == 1
    assert rows[0].title == "Solicitud nueva"


def test_accepted_filter_widens_to_accepted(db_session, work_orders):
    rows, total = fetch_work_requests(db_session, {"accepted": True}, PaginationParams())
    assert total == 3
    assert all(t.is_accepted for t in rows)


def test_create_work_request(db_session):
    ticket = create_work_request(
        db_session,
        {
            "title": "  Grifo roto ",
            "requester": "Marta",
            "location": "Atracciones el Lago",
            "incident_date": "2024-03-02",
        },
    )
    assert ticket.title == "Grifo roto"
    assert ticket.status == "Pendiente"
    assert ticket.is_accepted is False
    assert ticket.incident_date.isoformat() == "2024-03-02"


def test_create_requires_fields(db_session):
    with pytest.raises(ValidationError) as exc:
        create_work_request(db_session, {"title": "", "requester": "Marta"})
    assert exc.value.field == "title"
    assert "location" in str(exc.value)


class TestAcceptWorkRequests:
    def test_accept_assigns_and_publishes(self, db_session, ticket_factory, assignees):
        hub = RealtimeHub()
        events = []
        hub.subscribe("tickets", events.append)
        first = ticket_factory(title="A", is_accepted=False)
        second = ticket_factory(title="B", is_accepted=False)

        accepted = accept_work_requests(
            db_session,
            [
                {"id": first.id, "assignee_id": assignees[0].id},
                {"id": str(second.id), "assignee_id": str(assignees[1].id)},
            ],
            hub,
        )

        assert accepted == [first.id, second.id]
        db_session.refresh(first)
        assert first.is_accepted is True
        assert first.assignee_id == assignees[0].id
        assert [(e.old["is_accepted"], e.new["is_accepted"]) for e in events] == [
            (False, True),
            (False, True),
        ]

    def test_invalid_item_rejects_whole_batch(self, db_session, ticket_factory, assignees):
        ticket = ticket_factory(is_accepted=False)
        with pytest.raises(ValidationError) as exc:
            accept_work_requests(
                db_session,
                [
                    {"id": ticket.id, "assignee_id": assignees[0].id},
                    {"id": ticket.id + 1},
                ],
            )
        assert exc.value.field == "assignee_id"

        db_session.refresh(ticket)
        assert ticket.is_accepted is False

    def test_partial_failure_keeps_successes(self, db_session, ticket_factory, assignees):
        fresh = ticket_factory(title="Nueva", is_accepted=False)
        done = ticket_factory(title="Ya aceptada", is_accepted=True)
        other = ticket_factory(title="Otra", is_accepted=False)

        with pytest.raises(BatchOperationError) as exc:
            accept_work_requests(
                db_session,
                [
                    {"id": fresh.id, "assignee_id": assignees[0].id},
                    {"id": done.id, "assignee_id": assignees[0].id},
                    {"id": 999, "assignee_id": assignees[0].id},
                    {"id": other.id, "assignee_id": 999},
                ],
            )

        assert exc.value.succeeded == [fresh.id]
        assert exc.value.failed == {
            done.id: "already accepted",
            999: "not found",
            other.id: "unknown assignee",
        }
        assert f"#{done.id}" in str(exc.value)

        accepted_ids = {
            t.id for t in db_session.query(Ticket).filter(Ticket.is_accepted.is_(True))
        }
        assert fresh.id in accepted_ids
        assert other.id not in accepted_ids

    def test_empty_batch(self, db_session):
        assert accept_work_requests(db_session, []) == []
