"""Shared lookups and row-update helpers for services."""

from collections.abc import Mapping
from typing import Any, TypeVar

from sqlalchemy.orm import Session

from app.exceptions import NotFoundError

T = TypeVar("T")


def get_by_id(db: Session, model: type[T], id: int) -> T | None:
    """Generic get by ID function."""
    return db.query(model).filter(model.id == id).first()  # type: ignore[attr-defined]


def get_or_404(db: Session, model: type[T], id: int) -> T:
    """Get by ID, raising NotFoundError when missing."""
    obj = get_by_id(db, model, id)
    if obj is None:
        raise NotFoundError(model.__name__, id)
    return obj


def conditional_update(
    db: Session,
    model: type[T],
    id: int,
    changes: Mapping[str, Any],
    **conditions: Any,
) -> bool:
    """UPDATE one row only if it still matches ``conditions``.

    Returns True when a row was updated. Does not commit.
    """
    query = db.query(model).filter(model.id == id)  # type: ignore[attr-defined]
    for column, expected in conditions.items():
        query = query.filter(getattr(model, column) == expected)
    updated = query.update(
        {getattr(model, k): v for k, v in changes.items()},
        synchronize_session="fetch",
    )
    return updated > 0
