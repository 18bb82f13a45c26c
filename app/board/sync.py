"""Keyed collection state and per-entity optimistic sync states."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

Row = dict[str, Any]


class SyncState(str, Enum):
    CLEAN = "clean"
    OPTIMISTIC_PENDING = "optimistic_pending"
    RECONCILING = "reconciling"


class SyncTransitionError(RuntimeError):
    """Raised when an entity is asked for a transition its state forbids."""


@dataclass
class EntitySync:
    """Optimistic sync state machine for one entity.

    CLEAN --local action--> OPTIMISTIC_PENDING(snapshot)
    OPTIMISTIC_PENDING --remote success--> CLEAN
    OPTIMISTIC_PENDING --remote failure--> CLEAN (snapshot restored by caller)
    CLEAN --push--> RECONCILING --reconciled--> CLEAN
    RECONCILING --local action--> OPTIMISTIC_PENDING(snapshot)

    A push arriving while OPTIMISTIC_PENDING does not change the state; the
    outcome of the pending write decides.
    """

    state: SyncState = SyncState.CLEAN
    snapshot: Row | None = None
    snapshot_status: str | None = None
    snapshot_index: int | None = None

    def begin(self, row: Row, status: str | None = None, index: int | None = None) -> None:
        if self.state is SyncState.OPTIMISTIC_PENDING:
            raise SyncTransitionError("An optimistic change is already pending")
        self.state = SyncState.OPTIMISTIC_PENDING
        self.snapshot = dict(row)
        self.snapshot_status = status
        self.snapshot_index = index

    def confirm(self) -> None:
        self.state = SyncState.CLEAN
        self.snapshot = None
        self.snapshot_status = None
        self.snapshot_index = None

    def fail(self) -> tuple[Row | None, str | None, int | None]:
        """Leave the pending state; returns (snapshot, column, index) to restore."""
        restored = (self.snapshot, self.snapshot_status, self.snapshot_index)
        self.confirm()
        return restored

    def push_received(self) -> bool:
        """Returns True when the push should be applied locally."""
        if self.state is SyncState.OPTIMISTIC_PENDING:
            return False
        self.state = SyncState.RECONCILING
        return True

    def reconciled(self) -> None:
        if self.state is SyncState.RECONCILING:
            self.state = SyncState.CLEAN


@dataclass
class BoardCollection:
    """Ordered, de-duplicated rows of one column or list page.

    Merge policy: newly fetched data always wins, and a row keeps the position
    of its first occurrence. Rows with new keys are appended in fetch order.
    """

    key: str = "id"
    items: dict[Any, Row] = field(default_factory=dict)
    page: int = 0
    has_more: bool = True
    loading: bool = False
    loaded: bool = False
    error: str | None = None

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[Row]:
        return iter(self.items.values())

    def __contains__(self, key: Any) -> bool:
        return key in self.items

    @property
    def rows(self) -> list[Row]:
        return list(self.items.values())

    @property
    def keys(self) -> list[Any]:
        return list(self.items.keys())

    def get(self, key: Any) -> Row | None:
        return self.items.get(key)

    def index_of(self, key: Any) -> int | None:
        for index, existing in enumerate(self.items):
            if existing == key:
                return index
        return None

    def merge(self, rows: Iterable[Row]) -> None:
        for row in rows:
            self.items[row[self.key]] = dict(row)

    def put(self, row: Row) -> None:
        """Replace in place, or append when the key is new."""
        self.items[row[self.key]] = dict(row)

    def insert(self, index: int, row: Row) -> None:
        key = row[self.key]
        entries = [(k, v) for k, v in self.items.items() if k != key]
        index = max(0, min(index, len(entries)))
        entries.insert(index, (key, dict(row)))
        self.items = dict(entries)

    def patch(self, key: Any, changes: Row) -> Row | None:
        """Merge ``changes`` into an existing row. Returns the previous row."""
        previous = self.items.get(key)
        if previous is None:
            return None
        self.items[key] = {**previous, **changes}
        return previous

    def evict(self, key: Any) -> Row | None:
        return self.items.pop(key, None)

    def replace_all(self, rows: Iterable[Row]) -> None:
        self.items = {}
        self.merge(rows)

    def reset(self) -> None:
        self.items = {}
        self.page = 0
        self.has_more = True
        self.loading = False
        self.loaded = False
        self.error = None
