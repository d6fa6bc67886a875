"""Comment index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from sqlalchemy import delete, select

from ..core.exceptions import CommentNotFound
from ..core.logging import get_logger
from ..db.models import CommentRecord
from ..entities import Comment
from .base import TransactionBound
from .filters import Contains, apply_filters

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommentFields:
    id: int | None = None
    ids: Iterable[int] | None = None
    summary: str | Contains | None = None


def to_comment(record: CommentRecord) -> Comment:
    return Comment(id=record.id, summary=record.summary, message=record.message, path=record.path)


class CommentIndex(TransactionBound):
    def insert(self, summary: str, message: str = "", path: str | None = None) -> Comment:
        record = CommentRecord(summary=summary, message=message, path=path)
        self._session.add(record)
        self._flush("Failed to insert comment", {"summary": summary})
        return to_comment(record)

    def insert_copy(self, comment: Comment) -> Comment:
        """Insert a fresh row with the same content under a new local id."""
        return self.insert(comment.summary, comment.message, comment.path)

    def get(self, fields: CommentFields | None = None) -> list[Comment]:
        fields = fields or CommentFields()
        stmt = apply_filters(
            select(CommentRecord),
            (CommentRecord.id, fields.id),
            (CommentRecord.summary, fields.summary),
        )
        if fields.ids is not None:
            ids = list(fields.ids)
            if not ids:
                return []
            stmt = stmt.where(CommentRecord.id.in_(ids))
        stmt = stmt.order_by(CommentRecord.id)
        return [to_comment(r) for r in self._session.execute(stmt).scalars().all()]

    def update(self, comment: Comment) -> Comment:
        record = self._get_record(CommentRecord, comment.id)
        if record is None:
            raise CommentNotFound(comment.id)
        record.summary = comment.summary
        record.message = comment.message
        record.path = comment.path
        self._flush("Failed to update comment", {"id": comment.id})
        return to_comment(record)

    def remove(self, fields: CommentFields | None = None) -> int:
        ids = [c.id for c in self.get(fields)]
        if not ids:
            return 0
        self._execute(
            delete(CommentRecord).where(CommentRecord.id.in_(ids)),
            "Failed to remove comment",
            {"ids": ids},
        )
        logger.debug("Removed comments", data={"ids": ids})
        return len(ids)
