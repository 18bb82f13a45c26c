"""Parsing of query-string and form values."""

from collections.abc import Iterable
from datetime import date, datetime

TRUE_VALUES = ("true", "1", "yes", "on", "si", "sí")
FALSE_VALUES = ("false", "0", "no", "off")


def parse_int_param(value: str | None) -> int | None:
    """Parse string to int, returning None for empty/invalid values."""
    if not value:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def parse_bool_param(value: str | None) -> bool | None:
    """
    Parse string to bool, returning None for empty or unrecognised values.

    Accepts "true"/"false", "1"/"0", "yes"/"no", "sí"/"no" and checkbox "on".
    """
    if not value:
        return None
    lower = value.strip().lower()
    if lower in TRUE_VALUES:
        return True
    if lower in FALSE_VALUES:
        return False
    return None


def parse_date_param(value: str | None) -> date | None:
    """Parse ISO date string (YYYY-MM-DD) to date, returning None for invalid."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except (ValueError, TypeError):
        return None


def parse_id_list(values: Iterable[str | None]) -> list[int]:
    """Ids from repeated and/or comma-separated form values, in order, without duplicates."""
    ids: list[int] = []
    for value in values:
        for part in (value or "").split(","):
            parsed = parse_int_param(part.strip())
            if parsed is not None and parsed not in ids:
                ids.append(parsed)
    return ids
