"""Local-first web-of-trust database for vetting third-party packages."""

from vetstore.entities import (
    Comment,
    Package,
    PackageSecurity,
    Peer,
    Registry,
    Review,
    ReviewConfidence,
)
from vetstore.merge import MergeConflictPolicy, MergeEngine, MergeResult, merge
from vetstore.store import Store, StoreTransaction

__version__ = "0.1.0"

__all__ = [
    "Comment",
    "Package",
    "PackageSecurity",
    "Peer",
    "Registry",
    "Review",
    "ReviewConfidence",
    "MergeConflictPolicy",
    "MergeEngine",
    "MergeResult",
    "merge",
    "Store",
    "StoreTransaction",
]
