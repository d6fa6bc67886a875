"""Immutable value objects returned by the entity indexes.

Entities never hold a reference to the session that produced them, so values
read from one store can be handed to another (see ``vetstore.merge``). Each
entity carries its store-local surrogate ``id`` and, where it has one, a
``natural_key`` used for cross-store identity.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Iterable


class PackageSecurity(str, enum.Enum):
    UNSET = "unset"
    SAFE = "safe"
    UNSAFE = "unsafe"


class ReviewConfidence(str, enum.Enum):
    UNSET = "unset"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True, order=True)
class Registry:
    id: int
    host_name: str


@dataclass(frozen=True, order=True)
class Package:
    id: int
    name: str
    version: str
    registry: Registry
    registry_package_url: str | None = None
    registry_package_version_url: str | None = None
    source_code_url: str | None = None
    source_code_hash: str | None = None

    @property
    def natural_key(self) -> tuple[str, str, str]:
        return (self.registry.host_name, self.name, self.version)

    def __str__(self) -> str:
        return f"{self.name}@{self.version}@{self.registry.host_name}"


@dataclass(frozen=True, order=True)
class Peer:
    id: int
    alias: str
    url: str
    is_root: bool = False

    @property
    def natural_key(self) -> str:
        return self.url


@dataclass(frozen=True, order=True)
class Comment:
    id: int
    summary: str
    message: str = ""
    path: str | None = None


@dataclass(frozen=True)
class Review:
    id: int
    peer: Peer
    package: Package
    comments: frozenset[Comment] = field(default_factory=frozenset)
    security: PackageSecurity = PackageSecurity.UNSET
    confidence: ReviewConfidence = ReviewConfidence.UNSET

    @property
    def comment_ids(self) -> list[int]:
        """Comment ids in stable (ascending) order."""
        return sorted(c.id for c in self.comments)

    def with_comments(self, comments: Iterable[Comment]) -> Review:
        return replace(self, comments=frozenset(comments))
