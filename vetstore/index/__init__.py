"""Entity indexes, one per table, each bound to a StoreTransaction."""

from .base import EntityIndex
from .comment import CommentFields, CommentIndex
from .filters import Contains
from .package import PackageFields, PackageIndex
from .peer import PeerFields, PeerIndex
from .registry import RegistryFields, RegistryIndex
from .review import ReviewFields, ReviewIndex

__all__ = [
    "EntityIndex",
    "Contains",
    "RegistryIndex", "RegistryFields",
    "PackageIndex", "PackageFields",
    "PeerIndex", "PeerFields",
    "CommentIndex", "CommentFields",
    "ReviewIndex", "ReviewFields",
]
