"""Core module with logging and exceptions."""

from vetstore.core.exceptions import (
    CommentNotFound,
    ConstraintViolation,
    ExtensionError,
    ExtensionNotFound,
    InvariantViolation,
    ManifestInvalid,
    NotFoundError,
    PackageNotFound,
    PeerNotFound,
    RegistryRequestError,
    RegistryResponseInvalid,
    ReviewNotFound,
    StoreError,
    VersionNotFound,
    VetStoreError,
)
from vetstore.core.logging import get_logger, log_context, setup_logging

__all__ = [
    "get_logger",
    "log_context",
    "setup_logging",
    "VetStoreError",
    "StoreError",
    "NotFoundError",
    "PeerNotFound",
    "PackageNotFound",
    "ReviewNotFound",
    "CommentNotFound",
    "ConstraintViolation",
    "InvariantViolation",
    "ExtensionError",
    "ExtensionNotFound",
    "ManifestInvalid",
    "RegistryRequestError",
    "RegistryResponseInvalid",
    "VersionNotFound",
]
