"""Board event stream fed by writes from other threads."""

import asyncio
import json

import pytest
from sqlalchemy.orm import sessionmaker

from app.board import RealtimeHub, board_events
from app.services import work_order_service
from app.services.board_gateway import ServiceBoardGateway


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def parse(chunk: str) -> tuple[str, dict]:
    event, data = chunk.strip().split("\n")
    return event.removeprefix("event: "), json.loads(data.removeprefix("data: "))


def test_other_users_move_emits_board_changed(session_factory, work_orders):
    hub = RealtimeHub()
    fuga = work_orders[0]

    async def connected():
        return False

    def move_elsewhere():
        with session_factory() as db:
            work_order_service.move_work_order_status(db, fuga.id, "En Ejecución", hub)

    async def scenario():
        stream = board_events(
            ServiceBoardGateway(session_factory, hub),
            hub,
            {},
            connected,
            counts_delay=0.01,
            realtime_delay=0.01,
        )
        event, counts = parse(await stream.__anext__())
        assert event == "connected"
        assert counts == {"Pendiente": 1, "En Ejecución": 1, "Finalizadas": 1}
        assert hub.subscriber_count("tickets") == 1

        await asyncio.to_thread(move_elsewhere)
        event, counts = parse(await asyncio.wait_for(stream.__anext__(), timeout=5))
        assert event == "board-changed"
        assert counts["En Ejecución"] == 2
        assert counts["Pendiente"] == 0

        await stream.aclose()
        assert hub.subscriber_count("tickets") == 0

    asyncio.run(scenario())


def test_idle_stream_sends_keepalive_and_stops_on_disconnect(session_factory, work_orders):
    hub = RealtimeHub()
    checks = []

    async def disconnected():
        checks.append(True)
        return len(checks) > 1

    async def scenario():
        chunks = [
            chunk
            async for chunk in board_events(
                ServiceBoardGateway(session_factory, hub), hub, {}, disconnected, keepalive=0.01
            )
        ]
        assert chunks[0].startswith("event: connected")
        assert chunks[1:] == [": ping\n\n"]
        assert hub.subscriber_count("tickets") == 0

    asyncio.run(scenario())
