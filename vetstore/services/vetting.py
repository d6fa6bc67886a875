"""Vetting workflow: resolve packages, record reviews, import peer stores."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Iterable

from vetstore.core.exceptions import PackageNotFound, StoreError
from vetstore.core.logging import get_logger, log_context
from vetstore.entities import Package, PackageSecurity, Peer, Review, ReviewConfidence
from vetstore.extension.base import Extension, LocalDependency
from vetstore.index.comment import CommentIndex
from vetstore.index.package import PackageIndex
from vetstore.index.peer import PeerIndex
from vetstore.index.review import ReviewFields, ReviewIndex
from vetstore.merge import MergeConflictPolicy, MergeEngine, MergeResult
from vetstore.store import Store, StoreTransaction

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommentDraft:
    """A comment to attach to a review; not yet stored."""

    summary: str
    message: str = ""
    path: str | None = None


@dataclass(frozen=True)
class DependencyReviews:
    dependency: LocalDependency
    reviews: tuple[Review, ...]


class VettingService:
    """Store-backed operations behind the vetting commands."""

    def __init__(self, store: Store, extension: Extension):
        self.store = store
        self.extension = extension

    def close(self) -> None:
        """Release the store and the extension's HTTP client."""
        close = getattr(self.extension, "close", None)
        if close is not None:
            close()
        self.store.close()

    def add_peer(self, alias: str, url: str) -> Peer:
        with self.store.transaction() as tx:
            peer = PeerIndex(tx).insert(alias=alias, url=url)
            tx.commit()
        logger.info("Added peer", data={"alias": alias, "url": url})
        return peer

    def ensure_package(
        self,
        package_name: str,
        package_version: str,
        working_directory: str | os.PathLike,
        tx: StoreTransaction,
    ) -> Package:
        """Return the stored package, resolving and inserting it on first use."""
        packages = PackageIndex(tx)
        host_name = self.extension.registry_host_name
        existing = packages.get_by_natural_key(host_name, package_name, package_version)
        if existing is not None:
            return existing

        metadata = self.extension.remote_package_metadata(
            package_name, package_version, working_directory
        )
        if not metadata.is_registered:
            raise PackageNotFound(package_name, package_version, metadata.registry_host_name)

        package = packages.insert(
            name=package_name,
            version=package_version,
            registry_host_name=metadata.registry_host_name,
            registry_package_url=metadata.registry_package_url,
            registry_package_version_url=metadata.registry_package_version_url,
            source_code_url=metadata.source_code_url,
            source_code_hash=metadata.source_code_hash,
        )
        logger.info(
            "Stored package metadata",
            data={"package": str(package), "found_local_use": metadata.found_local_use},
        )
        return package

    def review_package(
        self,
        package_name: str,
        package_version: str,
        working_directory: str | os.PathLike,
        comments: Iterable[CommentDraft] = (),
        security: PackageSecurity = PackageSecurity.UNSET,
        confidence: ReviewConfidence = ReviewConfidence.UNSET,
    ) -> Review:
        """Record the root peer's review; re-vetting replaces the previous one."""
        with log_context(operation="review", package=f"{package_name}@{package_version}"):
            with self.store.transaction() as tx:
                root = PeerIndex(tx).get_root()
                if root is None:
                    raise StoreError("Store has no root peer; was it initialized?")
                package = self.ensure_package(package_name, package_version, working_directory, tx)

                comment_index = CommentIndex(tx)
                stored_comments = frozenset(
                    comment_index.insert(c.summary, c.message, c.path) for c in comments
                )

                reviews = ReviewIndex(tx)
                existing = reviews.get_for(root, package)
                if existing is None:
                    review = reviews.insert(
                        stored_comments, root, package, security=security, confidence=confidence
                    )
                else:
                    review = reviews.update(
                        replace(
                            existing,
                            comments=stored_comments,
                            security=security,
                            confidence=confidence,
                        )
                    )
                tx.commit()
            logger.info(
                "Recorded review",
                data={"review_id": review.id, "comments": len(review.comments), "updated": existing is not None},
            )
            return review

    def dependency_reviews(self, working_directory: str | os.PathLike) -> list[DependencyReviews]:
        """Stored reviews for every dependency declared by the local project."""
        dependencies = sorted(self.extension.identify_local_dependencies(working_directory))
        results = []
        with self.store.transaction() as tx:
            reviews = ReviewIndex(tx)
            for dependency in dependencies:
                matches = reviews.get(
                    ReviewFields(
                        package_name=dependency.name,
                        package_version=dependency.version,
                        registry_host_name=self.extension.registry_host_name,
                    )
                )
                results.append(DependencyReviews(dependency=dependency, reviews=tuple(matches)))
        return results

    def import_store(
        self,
        incoming: Store,
        policy: MergeConflictPolicy | str | None = None,
    ) -> MergeResult:
        """Merge another peer's store into this one, committing only on success."""
        policy = MergeConflictPolicy(policy or self.store.settings.merge_conflict_policy)
        with incoming.transaction() as incoming_tx, self.store.transaction() as local_tx:
            result = MergeEngine(incoming_tx, local_tx, policy).merge()
            local_tx.commit()
        return result
