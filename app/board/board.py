"""Work-order board: paginated columns kept in sync optimistically.

The board owns one ``BoardCollection`` per status column. With an active
filter set it fetches one bounded result and partitions it client-side;
otherwise each column paginates lazily. Local saves and drag-and-drop moves
patch the columns before the remote call resolves and roll back on failure.
Realtime row updates are reconciled after a debounce.
"""

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from enum import Enum
from typing import Any, Protocol

from app.board.realtime import UPDATE, ChangeEvent, RealtimeHub, Subscription
from app.board.sync import BoardCollection, EntitySync, Row, SyncState
from app.board.tasks import DebouncedTask
from app.config import get_settings
from app.exceptions import NotFoundError
from app.models.ticket import STATUSES

logger = logging.getLogger(__name__)

# Fields whose change can affect membership, grouping or ordering
RELEVANT_FIELDS = (
    "status",
    "priority",
    "assignee_id",
    "location",
    "title",
    "incident_date",
    "is_archived",
    "is_accepted",
)

# Fields that feed the per-status counts
COUNT_FIELDS = ("status", "is_accepted", "location", "is_archived")


class BoardGateway(Protocol):
    """Remote calls the board depends on."""

    async def fetch_page(
        self, status: str, page: int, page_size: int
    ) -> tuple[list[Row], int]: ...

    async def fetch_filtered(self, values: Mapping[str, Any], limit: int) -> list[Row]: ...

    async def update(self, work_order_id: int, changes: Mapping[str, Any]) -> Row: ...

    async def move_status(self, work_order_id: int, status: str) -> Row: ...

    async def fetch_counts(self, values: Mapping[str, Any]) -> dict[str, int]: ...


class BoardMode(str, Enum):
    BROWSE = "browse"
    FILTERED = "filtered"


def has_active_filters(values: Mapping[str, Any] | None) -> bool:
    for value in (values or {}).values():
        if value is None or value == "":
            continue
        if isinstance(value, (list, tuple)) and len(value) == 0:
            continue
        return True
    return False


def _error_message(exc: Exception) -> str:
    return str(exc) or exc.__class__.__name__


class WorkOrderBoard:
    """Board state for accepted, non-archived work orders."""

    def __init__(
        self,
        gateway: BoardGateway,
        hub: RealtimeHub | None = None,
        *,
        statuses: Iterable[str] = STATUSES,
        table: str = "tickets",
        page_size: int | None = None,
        filtered_limit: int | None = None,
        counts_delay: float | None = None,
        realtime_delay: float | None = None,
        echo_suppress: float | None = None,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[[], None] | None = None,
    ):
        settings = get_settings()
        self.gateway = gateway
        self.statuses = list(statuses)
        self.page_size = page_size or settings.board_page_size
        self.filtered_limit = filtered_limit or settings.filtered_fetch_limit
        self.echo_suppress = (
            settings.realtime_echo_suppress_seconds if echo_suppress is None else echo_suppress
        )
        self.clock = clock
        # Called after realtime reconciliation and counts refreshes
        self.on_change = on_change

        self.columns: dict[str, BoardCollection] = {s: BoardCollection() for s in self.statuses}
        self.counts: dict[str, int] = {s: 0 for s in self.statuses}
        self.filters: dict[str, Any] = {}
        self.entities: dict[Any, EntitySync] = {}
        self.error: str | None = None
        self.moving_id: int | None = None
        self.mounted = True

        self._generation = 0
        self._pending_rows: dict[Any, Row] = {}
        self._suppress_until: dict[Any, float] = {}
        self._counts_task = DebouncedTask(
            self.refresh_counts,
            (settings.counts_refresh_debounce_ms / 1000) if counts_delay is None else counts_delay,
            name="board-counts",
        )
        self._realtime_task = DebouncedTask(
            self._reconcile,
            (settings.realtime_refresh_debounce_ms / 1000) if realtime_delay is None else realtime_delay,
            name="board-realtime",
        )
        self._subscription: Subscription | None = (
            hub.subscribe(table, self.handle_change, UPDATE) if hub is not None else None
        )

    async def __aenter__(self) -> "WorkOrderBoard":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------ queries

    @property
    def mode(self) -> BoardMode:
        return BoardMode.FILTERED if has_active_filters(self.filters) else BoardMode.BROWSE

    @property
    def can_drag(self) -> bool:
        return self.moving_id is None

    @property
    def loading(self) -> bool:
        return any(col.loading for col in self.columns.values())

    def entity(self, work_order_id: Any) -> EntitySync:
        if work_order_id not in self.entities:
            self.entities[work_order_id] = EntitySync()
        return self.entities[work_order_id]

    def locate(self, work_order_id: Any) -> tuple[str, int, Row] | None:
        for status, col in self.columns.items():
            row = col.get(work_order_id)
            if row is not None:
                return status, col.index_of(work_order_id), row
        return None

    def _belongs(self, row: Row) -> bool:
        return (
            row.get("status") in self.columns
            and not row.get("is_archived")
            and row.get("is_accepted", True) is not False
        )

    # ------------------------------------------------------------------ loading

    async def load(self, filters: Mapping[str, Any] | None = None) -> None:
        """(Re)load the board for a new filter set; supersedes earlier loads."""
        self.filters = dict(filters or {})
        self._generation += 1
        self.error = None
        for col in self.columns.values():
            col.reset()

        if self.mode is BoardMode.FILTERED:
            await self._load_filtered()
        else:
            for status in self.statuses:
                await self.load_more(status)
        await self.refresh_counts()

    async def _load_filtered(self) -> None:
        generation = self._generation
        for col in self.columns.values():
            col.loading = True
        try:
            rows = await self.gateway.fetch_filtered(self.filters, self.filtered_limit)
        except Exception as e:
            logger.warning("Filtered board fetch failed: %s", e)
            self.error = _error_message(e)
            return
        finally:
            for col in self.columns.values():
                col.loading = False

        if not self.mounted or generation != self._generation:
            logger.debug("Discarding stale filtered board response")
            return

        for status, col in self.columns.items():
            col.replace_all(r for r in rows if r.get("status") == status)
            col.has_more = False
            col.loaded = True

    async def load_more(self, status: str) -> bool:
        """Fetch the next page of one column (browse mode only)."""
        col = self.columns[status]
        if self.mode is BoardMode.FILTERED or col.loading or not col.has_more:
            return False

        generation = self._generation
        col.loading = True
        try:
            rows, total = await self.gateway.fetch_page(status, col.page, self.page_size)
        except Exception as e:
            logger.warning("Page fetch failed for column %s: %s", status, e)
            col.error = _error_message(e)
            return False
        finally:
            col.loading = False

        if not self.mounted or generation != self._generation:
            return False

        col.merge(rows)
        col.page += 1
        col.has_more = col.page * self.page_size < total and len(rows) > 0
        col.loaded = True
        col.error = None
        return True

    async def refresh_counts(self) -> None:
        try:
            counts = await self.gateway.fetch_counts(self.filters)
        except Exception as e:
            logger.warning("Counts refresh failed: %s", e)
            return
        if not self.mounted:
            return
        for status in self.statuses:
            self.counts[status] = counts.get(status, 0)
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()

    def _bump_counts(self, old: Row, new: Row) -> None:
        if self._belongs(old):
            self.counts[old["status"]] = max(0, self.counts[old["status"]] - 1)
        if self._belongs(new):
            self.counts[new["status"]] += 1

    # ------------------------------------------------------------------ local changes

    def _place(self, work_order_id: Any, row: Row) -> None:
        """Put ``row`` where it belongs, evicting it from any other column."""
        current = self.locate(work_order_id)
        if not self._belongs(row):
            if current is not None:
                self.columns[current[0]].evict(work_order_id)
            return
        target = row["status"]
        if current is not None and current[0] != target:
            self.columns[current[0]].evict(work_order_id)
        self.columns[target].put(row)

    def _restore(self, work_order_id: Any, snapshot: Row, status: str | None, index: int | None) -> None:
        current = self.locate(work_order_id)
        if current is not None:
            self.columns[current[0]].evict(work_order_id)
        if status is None:
            return
        self.columns[status].insert(index if index is not None else 0, snapshot)

    async def save(self, work_order_id: int, changes: Mapping[str, Any]) -> bool:
        """Patch a work order locally, then persist it.

        On failure the local row is restored and ``error`` is set.
        """
        found = self.locate(work_order_id)
        if found is None:
            raise NotFoundError("WorkOrder", work_order_id)
        status, index, row = found

        entity = self.entity(work_order_id)
        if self.moving_id == work_order_id or entity.state is SyncState.OPTIMISTIC_PENDING:
            self.error = f"Work order #{work_order_id} has a change in progress. Try again."
            logger.warning(self.error)
            return False

        entity.begin(row, status, index)
        optimistic = {**row, **changes}
        self._place(work_order_id, optimistic)
        if any(row.get(f) != optimistic.get(f) for f in COUNT_FIELDS):
            # Counts are bumped below; the realtime echo must not bump them again
            self._suppress_until[work_order_id] = self.clock() + self.echo_suppress

        try:
            saved = await self.gateway.update(work_order_id, changes)
        except Exception as e:
            snapshot, prev_status, prev_index = entity.fail()
            if self.mounted:
                self._restore(work_order_id, snapshot, prev_status, prev_index)
            self._suppress_until.pop(work_order_id, None)
            self.error = f"Could not update work order #{work_order_id}. {_error_message(e)}"
            logger.warning(self.error)
            return False

        entity.confirm()
        if not self.mounted:
            return True
        final = {**optimistic, **(saved or {})}
        self._place(work_order_id, final)
        if any(row.get(f) != final.get(f) for f in COUNT_FIELDS):
            self._bump_counts(row, final)
            self._counts_task.schedule()
        return True

    async def move(self, work_order_id: int, target_status: str) -> bool:
        """Drag-and-drop status transition; one move at a time."""
        if self.moving_id is not None:
            return False
        if target_status not in self.columns:
            raise NotFoundError("Status", target_status)
        found = self.locate(work_order_id)
        if found is None:
            raise NotFoundError("WorkOrder", work_order_id)
        status, index, row = found
        if status == target_status:
            return False

        self.moving_id = work_order_id
        self._suppress_until[work_order_id] = self.clock() + self.echo_suppress
        entity = self.entity(work_order_id)
        entity.begin(row, status, index)
        moved = {**row, "status": target_status}
        self._place(work_order_id, moved)
        self._bump_counts(row, moved)

        try:
            await self.gateway.move_status(work_order_id, target_status)
        except Exception as e:
            snapshot, prev_status, prev_index = entity.fail()
            if self.mounted:
                self._restore(work_order_id, snapshot, prev_status, prev_index)
                self._bump_counts(moved, row)
            self._suppress_until.pop(work_order_id, None)
            self.error = f"Could not move work order #{work_order_id}. {_error_message(e)}"
            logger.warning(self.error)
            return False
        finally:
            self.moving_id = None

        entity.confirm()
        if self.mounted:
            self._counts_task.schedule()
        return True

    # ------------------------------------------------------------------ realtime

    def handle_change(self, change: ChangeEvent) -> None:
        """Push notification handler; schedules a debounced reconciliation."""
        if not self.mounted or change.event != UPDATE:
            return
        old, new = change.old, change.new
        work_order_id = new.get("id", old.get("id"))

        suppress_until = self._suppress_until.get(work_order_id)
        if suppress_until is not None:
            if suppress_until > self.clock():
                return
            del self._suppress_until[work_order_id]

        if not any(old.get(f) != new.get(f) for f in RELEVANT_FIELDS):
            return

        # A pending local write decides the outcome and does its own counts bump
        if not self.entity(work_order_id).push_received():
            return

        if any(old.get(f) != new.get(f) for f in COUNT_FIELDS):
            self._bump_counts(old, new)
            self._counts_task.schedule()

        self._pending_rows[work_order_id] = dict(new)
        self._realtime_task.schedule()

    async def _reconcile(self) -> None:
        rows, self._pending_rows = self._pending_rows, {}
        if not self.mounted:
            return

        if self.mode is BoardMode.FILTERED:
            await self._load_filtered()
        else:
            for work_order_id, row in rows.items():
                if self.entity(work_order_id).state is SyncState.OPTIMISTIC_PENDING:
                    continue
                current = self.locate(work_order_id)
                if current is None:
                    # Not loaded yet; pagination will bring it in
                    continue
                self._place(work_order_id, {**current[2], **row})

        for work_order_id in rows:
            self.entity(work_order_id).reconciled()
        self._notify()

    async def flush(self) -> None:
        """Run pending debounced refreshes immediately."""
        await self._realtime_task.flush()
        await self._counts_task.flush()

    # ------------------------------------------------------------------ teardown

    def close(self) -> None:
        """Cancel timers and release the realtime subscription."""
        self.mounted = False
        self._counts_task.close()
        self._realtime_task.close()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
