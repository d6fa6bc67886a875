"""Merge another store's trust facts into the local store.

Identity across stores is always resolved by natural key: a Peer by its
transport URL, a Package by (registry host, name, version). Surrogate ids are
local to one store and are never compared across stores. Comments have no
natural key; each one merged is re-inserted under a fresh local id.

Merge is additive and one-directional. Nothing is written to the incoming
store, and the caller owns both transactions: any exception leaves the local
transaction for the caller to roll back, so a batch is applied completely or
not at all.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace

from .core.exceptions import ConstraintViolation, PackageNotFound, PeerNotFound
from .core.logging import get_logger, log_context
from .entities import Package, Peer, Registry, Review
from .index.comment import CommentIndex
from .index.package import PackageIndex
from .index.peer import PeerIndex
from .index.registry import RegistryFields, RegistryIndex
from .index.review import ReviewIndex
from .store import StoreTransaction

logger = get_logger(__name__)


class MergeConflictPolicy(str, enum.Enum):
    """What to do when the local store already has a review for (peer, package)."""

    SKIP = "skip"
    OVERWRITE = "overwrite"
    RAISE = "raise"


@dataclass
class MergeResult:
    registries: set[Registry] = field(default_factory=set)
    packages: set[Package] = field(default_factory=set)
    peers: set[Peer] = field(default_factory=set)
    reviews: set[Review] = field(default_factory=set)


def _review_content(review: Review) -> tuple:
    comments = sorted((c.summary, c.message, c.path or "") for c in review.comments)
    return (review.security, review.confidence, tuple(comments))


def _check_not_root_collision(incoming: Peer, local: Peer) -> None:
    """Reject an incoming root peer that resolves to the local root."""
    if incoming.is_root and local.is_root:
        raise ConstraintViolation(
            f"Incoming root peer has the local root URL: {local.url}",
            details={"url": local.url},
        )


class MergeEngine:
    def __init__(
        self,
        incoming_tx: StoreTransaction,
        local_tx: StoreTransaction,
        policy: MergeConflictPolicy = MergeConflictPolicy.SKIP,
    ):
        self.incoming_tx = incoming_tx
        self.local_tx = local_tx
        self.policy = MergeConflictPolicy(policy)

    def merge(self) -> MergeResult:
        """Merge registries, packages, peers and reviews, in dependency order."""
        with log_context(operation="merge", incoming=self.incoming_tx.label):
            result = MergeResult(
                registries=self.merge_registries(),
                packages=self.merge_packages(),
                peers=self.merge_peers(),
            )
            result.reviews = self.merge_reviews()
            logger.info(
                "Merge complete",
                data={
                    "registries": len(result.registries),
                    "packages": len(result.packages),
                    "peers": len(result.peers),
                    "reviews": len(result.reviews),
                },
            )
            return result

    def merge_registries(self) -> set[Registry]:
        local = RegistryIndex(self.local_tx)
        new_registries = set()
        for registry in RegistryIndex(self.incoming_tx).get():
            if local.get(RegistryFields(host_name=registry.host_name)):
                continue
            new_registries.add(local.insert(registry.host_name))
        return new_registries

    def merge_packages(self) -> set[Package]:
        local = PackageIndex(self.local_tx)
        new_packages = set()
        for package in PackageIndex(self.incoming_tx).get():
            host_name, name, version = package.natural_key
            if local.get_by_natural_key(host_name, name, version) is not None:
                continue
            new_packages.add(
                local.insert(
                    name=name,
                    version=version,
                    registry_host_name=host_name,
                    registry_package_url=package.registry_package_url,
                    registry_package_version_url=package.registry_package_version_url,
                    source_code_url=package.source_code_url,
                    source_code_hash=package.source_code_hash,
                )
            )
        return new_packages

    def merge_peers(self) -> set[Peer]:
        """Add peers unseen by URL. Merged peers are never root."""
        local = PeerIndex(self.local_tx)
        new_peers = set()
        for peer in PeerIndex(self.incoming_tx).get():
            existing = local.get_by_url(peer.url)
            if existing is not None:
                _check_not_root_collision(peer, existing)
                continue
            new_peers.add(local.insert(alias=peer.alias, url=peer.url, is_root=False))
        return new_peers

    def merge_reviews(self) -> set[Review]:
        """Insert incoming reviews locally; returns only reviews that are new (or overwritten).

        Peers and packages must already exist locally.
        """
        local_peers = PeerIndex(self.local_tx)
        local_packages = PackageIndex(self.local_tx)
        local_comments = CommentIndex(self.local_tx)
        local_reviews = ReviewIndex(self.local_tx)

        new_reviews = set()
        for review in ReviewIndex(self.incoming_tx).get():
            peer = local_peers.get_by_url(review.peer.url)
            if peer is None:
                raise PeerNotFound(review.peer.url)
            _check_not_root_collision(review.peer, peer)

            host_name, name, version = review.package.natural_key
            package = local_packages.get_by_natural_key(host_name, name, version)
            if package is None:
                raise PackageNotFound(name, version, host_name)

            existing = local_reviews.get_for(peer, package)
            if existing is not None:
                merged = self._resolve_conflict(existing, review)
                if merged is not None:
                    new_reviews.add(merged)
                continue

            comments = [local_comments.insert_copy(c) for c in sorted(review.comments)]
            new_reviews.add(
                local_reviews.insert(
                    comments, peer, package, security=review.security, confidence=review.confidence
                )
            )
        logger.debug("Merged reviews", data={"new": len(new_reviews)})
        return new_reviews

    def _resolve_conflict(self, existing: Review, incoming: Review) -> Review | None:
        if self.policy is MergeConflictPolicy.RAISE:
            raise ConstraintViolation(
                f"Review already exists for peer {existing.peer.url} and package {existing.package}",
                details={"peer_url": existing.peer.url, "package": str(existing.package)},
            )
        if self.policy is MergeConflictPolicy.SKIP or existing.peer.is_root:
            return None
        if _review_content(existing) == _review_content(incoming):
            return None

        comments = [CommentIndex(self.local_tx).insert_copy(c) for c in sorted(incoming.comments)]
        overwritten = replace(
            existing,
            comments=frozenset(comments),
            security=incoming.security,
            confidence=incoming.confidence,
        )
        logger.info(
            "Overwriting review from incoming store",
            data={"peer_url": existing.peer.url, "package": str(existing.package)},
        )
        return ReviewIndex(self.local_tx).update(overwritten)


def merge(
    incoming_tx: StoreTransaction,
    local_tx: StoreTransaction,
    policy: MergeConflictPolicy = MergeConflictPolicy.SKIP,
) -> set[Review]:
    """Merge reviews from the incoming store; returns the newly merged reviews."""
    with log_context(operation="merge", incoming=incoming_tx.label):
        return MergeEngine(incoming_tx, local_tx, policy).merge_reviews()
