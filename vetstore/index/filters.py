"""Structured entity filters.

A filter field is one of:

- ``None``: wildcard, the field is not constrained
- a plain value: exact equality
- ``Contains(text)``: substring match; ``%``, ``_`` and the escape character
  in ``text`` are matched literally
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Select
from sqlalchemy.sql.elements import ColumnElement


@dataclass(frozen=True)
class Contains:
    text: str


def match(column: Any, value: Any) -> ColumnElement[bool] | None:
    """Build the WHERE clause for one filter field, or None for a wildcard."""
    if value is None:
        return None
    if isinstance(value, Contains):
        return column.contains(value.text, autoescape=True)
    return column == value


def apply_filters(stmt: Select, *pairs: tuple[Any, Any]) -> Select:
    """Apply ``(column, filter_value)`` pairs to a select."""
    for column, value in pairs:
        clause = match(column, value)
        if clause is not None:
            stmt = stmt.where(clause)
    return stmt
