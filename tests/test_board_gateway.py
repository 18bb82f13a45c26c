"""The board driven through the database-backed gateway."""

import asyncio

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from app.board import RealtimeHub, WorkOrderBoard
from app.exceptions import RemoteCallError
from app.models import Ticket
from app.services.board_gateway import ServiceBoardGateway


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def test_move_persists_and_own_echo_is_ignored(session_factory, db_session, work_orders):
    fuga = work_orders[0]
    hub = RealtimeHub()

    async def scenario():
        gateway = ServiceBoardGateway(session_factory, hub)
        async with WorkOrderBoard(
            gateway, hub, page_size=10, counts_delay=10, realtime_delay=10
        ) as board:
            await board.load()
            assert board.columns["Pendiente"].keys == [fuga.id]
            assert board.counts == {"Pendiente": 1, "En Ejecución": 1, "Finalizadas": 1}

            assert await board.move(fuga.id, "Finalizadas") is True
            # Let the cross-thread realtime delivery run
            await asyncio.sleep(0.01)
            assert board.counts["Finalizadas"] == 2
            assert board.counts["Pendiente"] == 0
            return board

    board = asyncio.run(scenario())
    assert not board.mounted
    db_session.expire_all()
    assert db_session.get(Ticket, fuga.id).status == "Finalizadas"


def test_status_save_counts_once_despite_own_echo(session_factory, db_session, work_orders):
    fuga = work_orders[0]
    hub = RealtimeHub()

    async def scenario():
        gateway = ServiceBoardGateway(session_factory, hub)
        async with WorkOrderBoard(
            gateway, hub, page_size=10, counts_delay=10, realtime_delay=10
        ) as board:
            await board.load()
            assert await board.save(fuga.id, {"status": "Finalizadas"}) is True
            await asyncio.sleep(0.01)
            assert board.counts == {"Pendiente": 0, "En Ejecución": 1, "Finalizadas": 2}
            assert board.columns["Finalizadas"].keys[-1] == fuga.id

    asyncio.run(scenario())
    db_session.expire_all()
    assert db_session.get(Ticket, fuga.id).status == "Finalizadas"


def test_filtered_load_and_save(session_factory, work_orders):
    async def scenario():
        gateway = ServiceBoardGateway(session_factory)
        async with WorkOrderBoard(gateway, page_size=10) as board:
            await board.load({"location": "M7", "priority": ["alta", "baja"]})
            assert board.columns["Pendiente"].keys == [work_orders[0].id]
            assert board.columns["Finalizadas"].keys == [work_orders[2].id]
            assert board.counts["En Ejecución"] == 0

            assert await board.save(work_orders[0].id, {"priority": "media"}) is True
            assert board.columns["Pendiente"].get(work_orders[0].id)["priority"] == "media"

            assert await board.save(work_orders[2].id, {"priority": "urgente"}) is False
            assert board.columns["Finalizadas"].get(work_orders[2].id)["priority"] == "baja"

    asyncio.run(scenario())


def test_database_errors_surface_as_remote_call_errors():
    def broken_session():
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    async def scenario():
        gateway = ServiceBoardGateway(broken_session)
        with pytest.raises(RemoteCallError) as exc:
            await gateway.fetch_counts({})
        assert isinstance(exc.value.original_error, OperationalError)

        board = WorkOrderBoard(gateway, page_size=10)
        await board.load()
        assert board.columns["Pendiente"].error == "Database request failed"
        assert board.counts["Pendiente"] == 0
        board.close()

    asyncio.run(scenario())
