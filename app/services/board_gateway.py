"""Board gateway backed by the synchronous work-order service."""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.board.realtime import RealtimeHub
from app.database import SessionLocal
from app.exceptions import RemoteCallError
from app.services import work_order_service
from app.services.filters import SEARCH_KEY

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ServiceBoardGateway:
    """Runs each service call in a worker thread.

    Each call opens its own session from ``session_factory`` unless a
    request-scoped ``db`` is given, which is then reused and left open.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        hub: RealtimeHub | None = None,
        db: Session | None = None,
    ):
        self.session_factory = session_factory
        self.hub = hub
        self.db = db

    def _run(self, fn: Callable[[Session], T]) -> T:
        if self.db is not None:
            return fn(self.db)
        with self.session_factory() as db:
            return fn(db)

    async def _call(self, fn: Callable[[Session], T]) -> T:
        try:
            return await asyncio.to_thread(self._run, fn)
        except SQLAlchemyError as e:
            logger.error("Board gateway call failed: %s", e)
            raise RemoteCallError("Database request failed", original_error=e) from e

    async def fetch_page(
        self, status: str, page: int, page_size: int
    ) -> tuple[list[dict], int]:
        def load(db: Session) -> tuple[list[dict], int]:
            rows, total = work_order_service.fetch_work_orders_by_status(
                db, status, page, page_size
            )
            return [r.to_row() for r in rows], total

        return await self._call(load)

    async def fetch_filtered(self, values: Mapping[str, Any], limit: int) -> list[dict]:
        def load(db: Session) -> list[dict]:
            rows = work_order_service.fetch_filtered_work_orders(db, values, limit)
            return [r.to_row() for r in rows]

        return await self._call(load)

    async def update(self, work_order_id: int, changes: Mapping[str, Any]) -> dict:
        return await self._call(
            lambda db: work_order_service.update_work_order(
                db, work_order_id, changes, self.hub
            ).to_row()
        )

    async def move_status(self, work_order_id: int, status: str) -> dict:
        return await self._call(
            lambda db: work_order_service.move_work_order_status(
                db, work_order_id, status, self.hub
            ).to_row()
        )

    async def fetch_counts(self, values: Mapping[str, Any]) -> dict[str, int]:
        term = values.get(SEARCH_KEY)
        location = values.get("location")
        return await self._call(
            lambda db: work_order_service.get_status_counts(
                db,
                term=term if isinstance(term, str) else None,
                location=location if isinstance(location, str) else None,
            )
        )
