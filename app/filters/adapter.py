"""Translate filter state into constraints on a query builder."""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, time
from typing import Any, Protocol, TypeVar

from sqlalchemy import Boolean, Date, DateTime, Integer, or_
from sqlalchemy.orm import Query
from sqlalchemy.orm.attributes import InstrumentedAttribute

from app.exceptions import QueryError
from app.filters.schema import (
    DateRange,
    FilterField,
    FilterOperator,
    FilterSchema,
)
from app.utils.query_params import parse_bool_param, parse_date_param, parse_int_param

Q = TypeVar("Q", bound="QueryBuilder")


@dataclass(frozen=True)
class Condition:
    """One comparison, used to compose OR groups."""

    column: str
    operator: FilterOperator
    value: Any


class QueryBuilder(Protocol):
    """Minimal fluent builder the adapter depends on."""

    def eq(self: Q, column: str, value: Any) -> Q: ...

    def neq(self: Q, column: str, value: Any) -> Q: ...

    def ilike(self: Q, column: str, pattern: str) -> Q: ...

    def in_(self: Q, column: str, values: list[Any]) -> Q: ...

    def gte(self: Q, column: str, value: Any) -> Q: ...

    def lte(self: Q, column: str, value: Any) -> Q: ...

    def or_(self: Q, *conditions: Condition) -> Q: ...


def resolve_operator(field: FilterField, value: Any) -> FilterOperator:
    return field.operator or field.default_operator(value)


def apply_filters(query: Q, schema: FilterSchema, values: Mapping[str, Any]) -> Q:
    """Apply every non-empty filter value to ``query`` (AND semantics)."""
    for f in schema.fields:
        value = values.get(f.key)
        if f.is_empty(value):
            continue
        value = f.coerce(value)
        column = schema.resolve_column(f)
        query = _apply_operator(query, resolve_operator(f, value), column, value)
    return query


def _apply_operator(query: Q, op: FilterOperator, column: str, value: Any) -> Q:
    if op is FilterOperator.EQ:
        return query.eq(column, value)
    if op is FilterOperator.NEQ:
        return query.neq(column, value)
    if op is FilterOperator.ILIKE:
        return query.ilike(column, f"%{value}%")
    if op is FilterOperator.IN:
        return query.in_(column, list(value) if isinstance(value, (list, tuple)) else [value])
    if op is FilterOperator.BETWEEN:
        if not isinstance(value, DateRange):
            return query
        if value.from_:
            query = query.gte(column, value.from_)
        if value.to:
            query = query.lte(column, value.to)
        return query
    if op is FilterOperator.GTE:
        return query.gte(column, value)
    if op is FilterOperator.LTE:
        return query.lte(column, value)
    if op is FilterOperator.IS_TRUE:
        return query.eq(column, True)
    if op is FilterOperator.IS_FALSE:
        return query.eq(column, False)
    raise QueryError(f"Unsupported operator {op!r}", column=column)


class SQLAlchemyQueryBuilder:
    """``QueryBuilder`` over a SQLAlchemy ``Query`` for one mapped model.

    String values are converted to the column's Python type so that values
    coming straight from the query string (dates, ids, booleans) compare
    correctly. Upper date bounds on datetime columns cover the whole day.
    """

    def __init__(self, query: Query, model: type):
        self.query = query
        self.model = model

    def _column(self, name: str) -> InstrumentedAttribute:
        attr = getattr(self.model, name, None)
        if not isinstance(attr, InstrumentedAttribute) or not hasattr(
            attr.property, "columns"
        ):
            raise QueryError(
                f"{self.model.__name__} has no column '{name}'", column=name
            )
        return attr

    def _convert(self, attr: InstrumentedAttribute, value: Any, upper: bool = False) -> Any:
        if not isinstance(value, str):
            return value
        column_type = attr.property.columns[0].type
        if isinstance(column_type, DateTime):
            parsed = parse_date_param(value)
            if parsed is not None:
                return datetime.combine(parsed, time.max if upper else time.min)
            try:
                return datetime.fromisoformat(value)
            except ValueError as e:
                raise QueryError(f"Invalid datetime '{value}'", column=attr.key) from e
        if isinstance(column_type, Date):
            parsed = parse_date_param(value)
            if parsed is None:
                raise QueryError(f"Invalid date '{value}'", column=attr.key)
            return parsed
        if isinstance(column_type, Boolean):
            parsed_bool = parse_bool_param(value)
            if parsed_bool is None:
                raise QueryError(f"Invalid boolean '{value}'", column=attr.key)
            return parsed_bool
        if isinstance(column_type, Integer):
            parsed_int = parse_int_param(value)
            if parsed_int is None:
                raise QueryError(f"Invalid integer '{value}'", column=attr.key)
            return parsed_int
        return value

    def _clause(self, condition: Condition):
        attr = self._column(condition.column)
        op = condition.operator
        value = condition.value
        if op is FilterOperator.EQ:
            return attr == self._convert(attr, value)
        if op is FilterOperator.NEQ:
            return attr != self._convert(attr, value)
        if op is FilterOperator.ILIKE:
            return attr.ilike(value)
        if op is FilterOperator.IN:
            return attr.in_([self._convert(attr, v) for v in value])
        if op is FilterOperator.GTE:
            return attr >= self._convert(attr, value)
        if op is FilterOperator.LTE:
            return attr <= self._convert(attr, value, upper=True)
        if op is FilterOperator.IS_TRUE:
            return attr.is_(True)
        if op is FilterOperator.IS_FALSE:
            return attr.is_(False)
        raise QueryError(f"Unsupported operator {op!r}", column=condition.column)

    def where(self, condition: Condition) -> "SQLAlchemyQueryBuilder":
        return SQLAlchemyQueryBuilder(
            self.query.filter(self._clause(condition)), self.model
        )

    def eq(self, column: str, value: Any) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.EQ, value))

    def neq(self, column: str, value: Any) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.NEQ, value))

    def ilike(self, column: str, pattern: str) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.ILIKE, pattern))

    def in_(self, column: str, values: list[Any]) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.IN, list(values)))

    def gte(self, column: str, value: Any) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.GTE, value))

    def lte(self, column: str, value: Any) -> "SQLAlchemyQueryBuilder":
        return self.where(Condition(column, FilterOperator.LTE, value))

    def or_(self, *conditions: Condition) -> "SQLAlchemyQueryBuilder":
        if not conditions:
            return self
        return SQLAlchemyQueryBuilder(
            self.query.filter(or_(*(self._clause(c) for c in conditions))),
            self.model,
        )

