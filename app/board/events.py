"""Server-sent event stream of board changes for one browser tab."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Mapping
from typing import Any

from app.board.board import BoardGateway, WorkOrderBoard
from app.board.realtime import RealtimeHub

logger = logging.getLogger(__name__)

KEEPALIVE_SECONDS = 15.0


def format_event(event: str, data: Any) -> str:
    return f"event: {event}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"


async def board_events(
    gateway: BoardGateway,
    hub: RealtimeHub | None,
    filters: Mapping[str, Any] | None,
    is_disconnected: Callable[[], Awaitable[bool]],
    keepalive: float = KEEPALIVE_SECONDS,
    **board_options: Any,
) -> AsyncIterator[str]:
    """
    Keep a board subscribed to ``hub`` for the life of the stream.

    Yields ``connected`` once loaded, then ``board-changed`` with the current
    counts after every reconciliation or counts refresh. The board is closed
    when the client goes away or the generator is closed.
    """
    changed = asyncio.Event()
    async with WorkOrderBoard(gateway, hub, on_change=changed.set, **board_options) as board:
        await board.load(filters)
        changed.clear()
        yield format_event("connected", board.counts)
        while not await is_disconnected():
            try:
                await asyncio.wait_for(changed.wait(), timeout=keepalive)
            except asyncio.TimeoutError:
                yield ": ping\n\n"
                continue
            changed.clear()
            yield format_event("board-changed", board.counts)
    logger.debug("Board event stream closed")
