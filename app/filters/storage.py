"""Key-value storage backends for client-side persisted state."""

from typing import Protocol

from sqlalchemy.orm import Session

from app.models import StorageEntry


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """Process-local storage, mainly for tests and previews."""

    def __init__(self, initial: dict[str, str] | None = None):
        self._data: dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class DatabaseStorage:
    """Storage persisted in the ``storage_entries`` table."""

    def __init__(self, db: Session):
        self.db = db

    def _entry(self, key: str) -> StorageEntry | None:
        return self.db.query(StorageEntry).filter(StorageEntry.key == key).first()

    def get_item(self, key: str) -> str | None:
        entry = self._entry(key)
        return entry.value if entry else None

    def set_item(self, key: str, value: str) -> None:
        entry = self._entry(key)
        if entry:
            entry.value = value
        else:
            self.db.add(StorageEntry(key=key, value=value))
        self.db.commit()

    def remove_item(self, key: str) -> None:
        entry = self._entry(key)
        if entry:
            self.db.delete(entry)
            self.db.commit()
