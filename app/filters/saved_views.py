"""Named filter snapshots persisted per schema."""

import json
import logging
import uuid
from dataclasses import asdict, dataclass, field
from typing import Any

from app.config import get_settings
from app.filters.storage import KeyValueStorage

logger = logging.getLogger(__name__)


@dataclass
class SavedView:
    id: str
    name: str
    values: dict[str, Any] = field(default_factory=dict)


def views_key(schema_id: str, prefix: str | None = None) -> str:
    if prefix is None:
        prefix = get_settings().saved_views_key_prefix
    return f"{prefix}{schema_id}"


class SavedViewStore:
    """Saved views for one schema, stored as a JSON array under one key."""

    def __init__(self, storage: KeyValueStorage, schema_id: str, prefix: str | None = None):
        self.storage = storage
        self.schema_id = schema_id
        self.key = views_key(schema_id, prefix)

    def load(self) -> list[SavedView]:
        """Read all views; malformed storage reads as no views."""
        raw = self.storage.get_item(self.key)
        if not raw:
            return []
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed saved views under %s", self.key)
            return []
        if not isinstance(data, list):
            return []

        views = []
        for item in data:
            if not isinstance(item, dict) or "id" not in item or "name" not in item:
                continue
            values = item.get("values")
            views.append(
                SavedView(
                    id=str(item["id"]),
                    name=str(item["name"]),
                    values=values if isinstance(values, dict) else {},
                )
            )
        return views

    def _write(self, views: list[SavedView]) -> None:
        self.storage.set_item(self.key, json.dumps([asdict(v) for v in views]))

    def get(self, view_id: str) -> SavedView | None:
        for view in self.load():
            if view.id == view_id:
                return view
        return None

    def create(self, name: str, values: dict[str, Any]) -> SavedView | None:
        """Append a view. A blank name creates nothing."""
        name = (name or "").strip()
        if not name:
            return None
        view = SavedView(id=str(uuid.uuid4()), name=name, values=dict(values))
        self._write([*self.load(), view])
        return view

    def delete(self, view_id: str) -> bool:
        views = self.load()
        remaining = [v for v in views if v.id != view_id]
        if len(remaining) == len(views):
            return False
        self._write(remaining)
        return True
