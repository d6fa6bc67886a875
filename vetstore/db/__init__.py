"""Database module for vetstore."""

from vetstore.db.models import (
    Base,
    CommentRecord,
    PackageRecord,
    PeerRecord,
    RegistryRecord,
    ReviewCommentRecord,
    ReviewRecord,
)
from vetstore.db.session import make_engine, make_session_factory

__all__ = [
    # Database infrastructure
    "Base",
    "make_engine",
    "make_session_factory",
    # Entities
    "RegistryRecord",
    "PackageRecord",
    "PeerRecord",
    "CommentRecord",
    "ReviewRecord",
    "ReviewCommentRecord",
]
