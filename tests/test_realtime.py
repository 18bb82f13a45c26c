"""Tests for the in-process realtime hub."""

import asyncio
import threading

from app.board import INSERT, UPDATE, ChangeEvent, RealtimeHub


def test_publish_reaches_matching_subscribers():
    hub = RealtimeHub()
    updates, everything, other = [], [], []
    hub.subscribe("tickets", updates.append, UPDATE)
    hub.subscribe("tickets", everything.append, "*")
    hub.subscribe("assignees", other.append, UPDATE)

    change = ChangeEvent("tickets", UPDATE, old={"id": 1}, new={"id": 1, "status": "Finalizadas"})
    assert hub.publish(change) == 2
    hub.publish(ChangeEvent("tickets", INSERT, new={"id": 2}))

    assert updates == [change]
    assert len(everything) == 2
    assert other == []


def test_closed_subscription_stops_delivery():
    hub = RealtimeHub()
    seen = []
    sub = hub.subscribe("tickets", seen.append)
    sub.close()
    sub.close()

    assert hub.subscriber_count("tickets") == 0
    assert hub.publish(ChangeEvent("tickets", UPDATE)) == 0
    assert seen == []


def test_handler_errors_do_not_propagate(caplog):
    hub = RealtimeHub()
    seen = []

    def broken(change):
        raise ValueError("bad handler")

    hub.subscribe("tickets", broken)
    hub.subscribe("tickets", seen.append)

    assert hub.publish(ChangeEvent("tickets", UPDATE)) == 2
    assert len(seen) == 1
    assert "Realtime handler failed" in caplog.text


def test_publish_from_another_thread_runs_on_subscriber_loop():
    hub = RealtimeHub()

    async def scenario():
        received = asyncio.Event()
        threads = []

        def handler(change):
            threads.append(threading.get_ident())
            received.set()

        hub.subscribe("tickets", handler)
        publisher = threading.Thread(
            target=hub.publish, args=(ChangeEvent("tickets", UPDATE),)
        )
        publisher.start()
        publisher.join()
        await asyncio.wait_for(received.wait(), timeout=1)
        return threads

    loop_thread = threading.get_ident()
    assert asyncio.run(scenario()) == [loop_thread]
