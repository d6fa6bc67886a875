"""Package index. Packages are immutable once inserted."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, select

from ..core.exceptions import ConstraintViolation
from ..core.logging import get_logger
from ..db.models import PackageRecord, RegistryRecord
from ..entities import Package
from .base import TransactionBound
from .filters import Contains, apply_filters
from .registry import RegistryIndex, to_registry

logger = get_logger(__name__)


@dataclass(frozen=True)
class PackageFields:
    id: int | None = None
    name: str | Contains | None = None
    version: str | Contains | None = None
    registry_host_name: str | Contains | None = None


def to_package(record: PackageRecord) -> Package:
    return Package(
        id=record.id,
        name=record.name,
        version=record.version,
        registry=to_registry(record.registry_record),
        registry_package_url=record.registry_package_url,
        registry_package_version_url=record.registry_package_version_url,
        source_code_url=record.source_code_url,
        source_code_hash=record.source_code_hash,
    )


class PackageIndex(TransactionBound):
    def insert(
        self,
        name: str,
        version: str,
        registry_host_name: str,
        registry_package_url: str | None = None,
        registry_package_version_url: str | None = None,
        source_code_url: str | None = None,
        source_code_hash: str | None = None,
    ) -> Package:
        """Insert a package, creating its registry on first use."""
        key = {"name": name, "version": version, "registry_host_name": registry_host_name}
        if self.get(PackageFields(name=name, version=version, registry_host_name=registry_host_name)):
            raise ConstraintViolation(
                f"Package already exists: {name}@{version}@{registry_host_name}", details=key
            )

        registry = RegistryIndex(self._tx).get_or_insert(registry_host_name)
        record = PackageRecord(
            name=name,
            version=version,
            registry_id=registry.id,
            registry_package_url=registry_package_url,
            registry_package_version_url=registry_package_version_url,
            source_code_url=source_code_url,
            source_code_hash=source_code_hash,
        )
        self._session.add(record)
        self._flush("Failed to insert package", key)
        logger.debug("Inserted package", data={"id": record.id, **key})
        return Package(
            id=record.id,
            name=name,
            version=version,
            registry=registry,
            registry_package_url=registry_package_url,
            registry_package_version_url=registry_package_version_url,
            source_code_url=source_code_url,
            source_code_hash=source_code_hash,
        )

    def get(self, fields: PackageFields | None = None) -> list[Package]:
        fields = fields or PackageFields()
        stmt = apply_filters(
            select(PackageRecord).join(RegistryRecord, PackageRecord.registry_id == RegistryRecord.id),
            (PackageRecord.id, fields.id),
            (PackageRecord.name, fields.name),
            (PackageRecord.version, fields.version),
            (RegistryRecord.host_name, fields.registry_host_name),
        ).order_by(PackageRecord.id)
        return [to_package(r) for r in self._session.execute(stmt).scalars().all()]

    def get_by_natural_key(self, registry_host_name: str, name: str, version: str) -> Package | None:
        matches = self.get(
            PackageFields(name=name, version=version, registry_host_name=registry_host_name)
        )
        return matches[0] if matches else None

    def remove(self, fields: PackageFields | None = None) -> int:
        """Delete matching packages. Packages still referenced by reviews cannot be removed."""
        ids = [p.id for p in self.get(fields)]
        if not ids:
            return 0
        self._execute(
            delete(PackageRecord).where(PackageRecord.id.in_(ids)),
            "Failed to remove package",
            {"ids": ids},
        )
        return len(ids)
