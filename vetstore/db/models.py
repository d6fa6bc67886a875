"""SQLAlchemy ORM models: six tables (SQLite first, portable types)."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from ..entities import PackageSecurity, ReviewConfidence
from .types import EnumString


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class CreatedAtMixin:
    """Provides a created_at column."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )


# ---------------------------------------------------------------------------
# 1. registry
# ---------------------------------------------------------------------------
class RegistryRecord(CreatedAtMixin, Base):
    __tablename__ = "registry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    host_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    packages: Mapped[list[PackageRecord]] = relationship(back_populates="registry_record")


# ---------------------------------------------------------------------------
# 2. package
# ---------------------------------------------------------------------------
class PackageRecord(CreatedAtMixin, Base):
    __tablename__ = "package"
    __table_args__ = (
        UniqueConstraint("registry_id", "name", "version", name="uq_package_registry_name_version"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    version: Mapped[str] = mapped_column(Text, nullable=False)
    registry_id: Mapped[int] = mapped_column(Integer, ForeignKey("registry.id"), nullable=False)
    registry_package_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    registry_package_version_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_code_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    source_code_hash: Mapped[str | None] = mapped_column(Text, nullable=True)

    registry_record: Mapped[RegistryRecord] = relationship(back_populates="packages")


# ---------------------------------------------------------------------------
# 3. peer
# ---------------------------------------------------------------------------
class PeerRecord(CreatedAtMixin, Base):
    __tablename__ = "peer"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    alias: Mapped[str] = mapped_column(String(200), nullable=False)
    # Natural key: transport URL of the peer's store
    url: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    is_root: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


# ---------------------------------------------------------------------------
# 4. comment
# ---------------------------------------------------------------------------
class CommentRecord(CreatedAtMixin, Base):
    __tablename__ = "comment"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    summary: Mapped[str] = mapped_column(Text, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    path: Mapped[str | None] = mapped_column(Text, nullable=True)


# ---------------------------------------------------------------------------
# 5. review
# ---------------------------------------------------------------------------
class ReviewRecord(CreatedAtMixin, Base):
    __tablename__ = "review"
    __table_args__ = (
        UniqueConstraint("peer_id", "package_id", name="uq_review_peer_package"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    peer_id: Mapped[int] = mapped_column(Integer, ForeignKey("peer.id"), nullable=False, index=True)
    package_id: Mapped[int] = mapped_column(Integer, ForeignKey("package.id"), nullable=False, index=True)
    security: Mapped[PackageSecurity] = mapped_column(
        EnumString(PackageSecurity), nullable=False, default=PackageSecurity.UNSET
    )
    confidence: Mapped[ReviewConfidence] = mapped_column(
        EnumString(ReviewConfidence), nullable=False, default=ReviewConfidence.UNSET
    )


# ---------------------------------------------------------------------------
# 6. review_comments
# ---------------------------------------------------------------------------
class ReviewCommentRecord(Base):
    """Ordered comment membership of a review. A comment belongs to one review."""

    __tablename__ = "review_comments"

    review_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("review.id", ondelete="CASCADE"), primary_key=True
    )
    comment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("comment.id", ondelete="CASCADE"), primary_key=True, unique=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
