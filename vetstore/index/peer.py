"""Peer index."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import delete, select

from ..core.exceptions import ConstraintViolation, PeerNotFound
from ..core.logging import get_logger
from ..db.models import PeerRecord
from ..entities import Peer
from .base import TransactionBound
from .filters import Contains, apply_filters

logger = get_logger(__name__)


@dataclass(frozen=True)
class PeerFields:
    id: int | None = None
    alias: str | Contains | None = None
    url: str | Contains | None = None
    is_root: bool | None = None


def to_peer(record: PeerRecord) -> Peer:
    return Peer(id=record.id, alias=record.alias, url=record.url, is_root=record.is_root)


class PeerIndex(TransactionBound):
    def insert(self, alias: str, url: str, is_root: bool = False) -> Peer:
        if self.get(PeerFields(url=url)):
            raise ConstraintViolation(f"Peer already exists: {url}", details={"url": url})
        if is_root and self.get_root() is not None:
            raise ConstraintViolation("Root peer already exists", details={"url": url})
        record = PeerRecord(alias=alias, url=url, is_root=is_root)
        self._session.add(record)
        self._flush("Failed to insert peer", {"url": url})
        logger.debug("Inserted peer", data={"id": record.id, "alias": alias, "url": url})
        return to_peer(record)

    def get(self, fields: PeerFields | None = None) -> list[Peer]:
        fields = fields or PeerFields()
        stmt = apply_filters(
            select(PeerRecord),
            (PeerRecord.id, fields.id),
            (PeerRecord.alias, fields.alias),
            (PeerRecord.url, fields.url),
            (PeerRecord.is_root, fields.is_root),
        ).order_by(PeerRecord.id)
        return [to_peer(r) for r in self._session.execute(stmt).scalars().all()]

    def get_root(self) -> Peer | None:
        peers = self.get(PeerFields(is_root=True))
        return peers[0] if peers else None

    def get_by_url(self, url: str) -> Peer | None:
        peers = self.get(PeerFields(url=url))
        return peers[0] if peers else None

    def update(self, peer: Peer) -> Peer:
        """Replace alias and URL of an existing peer. Root status is fixed at creation."""
        record = self._get_record(PeerRecord, peer.id)
        if record is None:
            raise PeerNotFound(peer.url)
        clash = self.get_by_url(peer.url)
        if clash is not None and clash.id != peer.id:
            raise ConstraintViolation(f"Peer already exists: {peer.url}", details={"url": peer.url})
        record.alias = peer.alias
        record.url = peer.url
        self._flush("Failed to update peer", {"id": peer.id, "url": peer.url})
        return to_peer(record)

    def remove(self, fields: PeerFields | None = None) -> int:
        """Delete matching peers. The root peer and peers referenced by reviews cannot be removed."""
        peers = self.get(fields)
        if any(p.is_root for p in peers):
            raise ConstraintViolation("The root peer cannot be removed")
        ids = [p.id for p in peers]
        if not ids:
            return 0
        self._execute(
            delete(PeerRecord).where(PeerRecord.id.in_(ids)),
            "Failed to remove peer",
            {"ids": ids},
        )
        return len(ids)
