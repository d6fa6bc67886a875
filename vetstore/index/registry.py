"""Registry index."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, select

from ..core.exceptions import ConstraintViolation
from ..core.logging import get_logger
from ..db.models import RegistryRecord
from ..entities import Registry
from .base import TransactionBound
from .filters import Contains, apply_filters

logger = get_logger(__name__)


@dataclass(frozen=True)
class RegistryFields:
    id: int | None = None
    host_name: str | Contains | None = None


def to_registry(record: RegistryRecord) -> Registry:
    return Registry(id=record.id, host_name=record.host_name)


class RegistryIndex(TransactionBound):
    def insert(self, host_name: str) -> Registry:
        if self.get(RegistryFields(host_name=host_name)):
            raise ConstraintViolation(
                f"Registry already exists: {host_name}", details={"host_name": host_name}
            )
        record = RegistryRecord(host_name=host_name)
        self._session.add(record)
        self._flush("Failed to insert registry", {"host_name": host_name})
        logger.debug("Inserted registry", data={"id": record.id, "host_name": host_name})
        return to_registry(record)

    def get_or_insert(self, host_name: str) -> Registry:
        existing = self.get(RegistryFields(host_name=host_name))
        if existing:
            return existing[0]
        return self.insert(host_name)

    def get(self, fields: RegistryFields | None = None) -> list[Registry]:
        fields = fields or RegistryFields()
        stmt = apply_filters(
            select(RegistryRecord),
            (RegistryRecord.id, fields.id),
            (RegistryRecord.host_name, fields.host_name),
        ).order_by(RegistryRecord.id)
        return [to_registry(r) for r in self._session.execute(stmt).scalars().all()]

    def remove(self, fields: RegistryFields | None = None) -> int:
        """Delete matching registries. Registries still referenced by packages cannot be removed."""
        ids = [r.id for r in self.get(fields)]
        if not ids:
            return 0
        self._execute(
            delete(RegistryRecord).where(RegistryRecord.id.in_(ids)),
            "Failed to remove registry",
            {"ids": ids},
        )
        return len(ids)
