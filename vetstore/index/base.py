"""Base index protocol and helpers."""

from __future__ import annotations

from typing import Any, Protocol, TypeVar, runtime_checkable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.exceptions import ConstraintViolation
from ..store import StoreTransaction

T = TypeVar("T", covariant=True)


@runtime_checkable
class EntityIndex(Protocol[T]):
    """Entity index interface. Every call runs inside the caller's transaction."""

    def get(self, fields: Any = None) -> list[T]: ...
    def remove(self, fields: Any = None) -> int: ...


class TransactionBound:
    def __init__(self, tx: StoreTransaction):
        self._tx = tx

    @property
    def _session(self) -> Session:
        return self._tx.session

    def _flush(self, message: str, details: dict[str, Any]) -> None:
        """Flush pending writes, surfacing integrity failures as ConstraintViolation."""
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise ConstraintViolation(f"{message}: {exc.orig}", details=details) from exc

    def _execute(
        self,
        stmt: Any,
        message: str,
        details: dict[str, Any],
        params: list[dict[str, Any]] | None = None,
    ) -> Any:
        try:
            if params is not None:
                return self._session.execute(stmt, params)
            return self._session.execute(stmt)
        except IntegrityError as exc:
            raise ConstraintViolation(f"{message}: {exc.orig}", details=details) from exc

    def _get_record(self, model: Any, record_id: int) -> Any:
        """Load a row by primary key, always checking the database."""
        return self._session.execute(select(model).where(model.id == record_id)).scalar_one_or_none()
