"""Review index.

A review's comment set is persisted as ordered rows in ``review_comments``.
Comments are owned by exactly one review: replacing or removing a review's
comments deletes the comment rows themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import delete, insert, select

from ..core.exceptions import (
    ConstraintViolation,
    InvariantViolation,
    PackageNotFound,
    PeerNotFound,
    ReviewNotFound,
)
from ..core.logging import get_logger
from ..db.models import (
    CommentRecord,
    PackageRecord,
    PeerRecord,
    RegistryRecord,
    ReviewCommentRecord,
    ReviewRecord,
)
from ..entities import Comment, Package, PackageSecurity, Peer, Review, ReviewConfidence
from .base import TransactionBound
from .comment import CommentFields, CommentIndex
from .filters import Contains, apply_filters
from .package import PackageFields, PackageIndex
from .peer import PeerFields, PeerIndex

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReviewFields:
    id: int | None = None
    peer_id: int | None = None
    package_id: int | None = None
    package_name: str | Contains | None = None
    package_version: str | Contains | None = None
    registry_host_name: str | Contains | None = None
    security: PackageSecurity | None = None
    confidence: ReviewConfidence | None = None


class ReviewIndex(TransactionBound):
    def insert(
        self,
        comments: Iterable[Comment],
        peer: Peer,
        package: Package,
        security: PackageSecurity = PackageSecurity.UNSET,
        confidence: ReviewConfidence = ReviewConfidence.UNSET,
    ) -> Review:
        """Insert a review of ``package`` by ``peer``. Comments must already exist."""
        comments = frozenset(comments)
        self._check_references(peer, package)
        if self.get_for(peer, package) is not None:
            raise ConstraintViolation(
                f"Review already exists for peer {peer.url} and package {package}",
                details={"peer_url": peer.url, "package": str(package)},
            )
        self._check_comments_exist(comments)

        record = ReviewRecord(
            peer_id=peer.id,
            package_id=package.id,
            security=security,
            confidence=confidence,
        )
        self._session.add(record)
        self._flush("Failed to insert review", {"peer_url": peer.url, "package": str(package)})
        self._write_comment_ids(record.id, comments)
        logger.debug(
            "Inserted review",
            data={"id": record.id, "peer_id": peer.id, "package_id": package.id, "comments": len(comments)},
        )
        return Review(
            id=record.id,
            peer=peer,
            package=package,
            comments=comments,
            security=security,
            confidence=confidence,
        )

    def update(self, review: Review) -> Review:
        """Rewrite a review; comments no longer in ``review.comments`` are deleted."""
        record = self._get_record(ReviewRecord, review.id)
        if record is None:
            raise ReviewNotFound(review.id)
        self._check_references(review.peer, review.package)
        self._check_comments_exist(review.comments)

        new_ids = {c.id for c in review.comments}
        stale_ids = set(self._stored_comment_ids(review.id)) - new_ids

        record.peer_id = review.peer.id
        record.package_id = review.package.id
        record.security = review.security
        record.confidence = review.confidence
        self._flush("Failed to update review", {"id": review.id, "peer_url": review.peer.url})
        self._write_comment_ids(review.id, review.comments)

        if stale_ids:
            CommentIndex(self._tx).remove(CommentFields(ids=stale_ids))
        logger.debug("Updated review", data={"id": review.id, "stale_comments": sorted(stale_ids)})
        return self._materialize(record)

    def get(self, fields: ReviewFields | None = None) -> list[Review]:
        fields = fields or ReviewFields()
        stmt = (
            select(ReviewRecord)
            .outerjoin(PeerRecord, ReviewRecord.peer_id == PeerRecord.id)
            .outerjoin(PackageRecord, ReviewRecord.package_id == PackageRecord.id)
            .outerjoin(RegistryRecord, PackageRecord.registry_id == RegistryRecord.id)
        )
        stmt = apply_filters(
            stmt,
            (ReviewRecord.id, fields.id),
            (ReviewRecord.peer_id, fields.peer_id),
            (ReviewRecord.package_id, fields.package_id),
            (PackageRecord.name, fields.package_name),
            (PackageRecord.version, fields.package_version),
            (RegistryRecord.host_name, fields.registry_host_name),
            (ReviewRecord.security, fields.security),
            (ReviewRecord.confidence, fields.confidence),
        ).order_by(ReviewRecord.id)
        records = self._session.execute(stmt).scalars().all()
        return [self._materialize(r) for r in records]

    def get_for(self, peer: Peer, package: Package) -> Review | None:
        reviews = self.get(ReviewFields(peer_id=peer.id, package_id=package.id))
        return reviews[0] if reviews else None

    def remove(self, fields: ReviewFields | None = None) -> int:
        """Delete matching reviews together with their comments."""
        reviews = self.get(fields)
        if not reviews:
            return 0
        review_ids = [r.id for r in reviews]
        comment_ids = [c.id for r in reviews for c in r.comments]

        self._execute(
            delete(ReviewCommentRecord).where(ReviewCommentRecord.review_id.in_(review_ids)),
            "Failed to remove review comments",
            {"ids": review_ids},
        )
        self._execute(
            delete(ReviewRecord).where(ReviewRecord.id.in_(review_ids)),
            "Failed to remove review",
            {"ids": review_ids},
        )
        if comment_ids:
            CommentIndex(self._tx).remove(CommentFields(ids=comment_ids))
        logger.debug("Removed reviews", data={"ids": review_ids, "comments": len(comment_ids)})
        return len(review_ids)

    def _materialize(self, record: ReviewRecord) -> Review:
        peer = next(iter(PeerIndex(self._tx).get(PeerFields(id=record.peer_id))), None)
        if peer is None:
            raise InvariantViolation(
                "Failed to find review peer in index",
                details={"review_id": record.id, "peer_id": record.peer_id},
            )
        package = next(iter(PackageIndex(self._tx).get(PackageFields(id=record.package_id))), None)
        if package is None:
            raise InvariantViolation(
                "Failed to find review package in index",
                details={"review_id": record.id, "package_id": record.package_id},
            )

        comment_ids = self._stored_comment_ids(record.id)
        comments = CommentIndex(self._tx).get(CommentFields(ids=comment_ids))
        if len(comments) != len(comment_ids):
            raise InvariantViolation(
                "Failed to find review comments in index",
                details={"review_id": record.id, "comment_ids": comment_ids},
            )
        return Review(
            id=record.id,
            peer=peer,
            package=package,
            comments=frozenset(comments),
            security=record.security,
            confidence=record.confidence,
        )

    def _stored_comment_ids(self, review_id: int) -> list[int]:
        result = self._session.execute(
            select(ReviewCommentRecord.comment_id)
            .where(ReviewCommentRecord.review_id == review_id)
            .order_by(ReviewCommentRecord.position)
        )
        return list(result.scalars().all())

    def _write_comment_ids(self, review_id: int, comments: Iterable[Comment]) -> None:
        self._execute(
            delete(ReviewCommentRecord).where(ReviewCommentRecord.review_id == review_id),
            "Failed to clear review comments",
            {"review_id": review_id},
        )
        rows = [
            {"review_id": review_id, "comment_id": comment_id, "position": position}
            for position, comment_id in enumerate(sorted(c.id for c in comments))
        ]
        if rows:
            self._execute(
                insert(ReviewCommentRecord),
                "Comment already belongs to another review",
                {"review_id": review_id, "comment_ids": [r["comment_id"] for r in rows]},
                params=rows,
            )

    def _check_references(self, peer: Peer, package: Package) -> None:
        if self._get_record(PeerRecord, peer.id) is None:
            raise PeerNotFound(peer.url)
        if self._get_record(PackageRecord, package.id) is None:
            raise PackageNotFound(package.name, package.version, package.registry.host_name)

    def _check_comments_exist(self, comments: Iterable[Comment]) -> None:
        ids = {c.id for c in comments}
        if not ids:
            return
        found = set(
            self._session.execute(select(CommentRecord.id).where(CommentRecord.id.in_(ids))).scalars()
        )
        missing = ids - found
        if missing:
            raise ConstraintViolation(
                "Review comments must be inserted before the review",
                details={"missing_comment_ids": sorted(missing)},
            )
