"""Exception hierarchy for vetstore."""

from typing import Any, Dict, Optional


class VetStoreError(Exception):
    """Base exception for vetstore."""

    def __init__(
        self,
        message: str,
        code: str = "E5000",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(message)


class StoreError(VetStoreError):
    """Store or transaction misuse."""

    def __init__(self, message: str):
        super().__init__(message, code="E5001")


class NotFoundError(VetStoreError):
    """An entity could not be resolved."""

    def __init__(self, message: str = "Entity not found", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="E4040", details=details)


class PeerNotFound(NotFoundError):
    def __init__(self, url: str):
        super().__init__(f"Peer not found: {url}", details={"url": url})
        self.url = url


class PackageNotFound(NotFoundError):
    def __init__(self, name: str, version: str, registry_host_name: str):
        super().__init__(
            f"Package not found: {name}@{version}@{registry_host_name}",
            details={
                "name": name,
                "version": version,
                "registry_host_name": registry_host_name,
            },
        )
        self.name = name
        self.version = version
        self.registry_host_name = registry_host_name


class ReviewNotFound(NotFoundError):
    def __init__(self, review_id: int):
        super().__init__(f"Review not found: {review_id}", details={"id": review_id})


class CommentNotFound(NotFoundError):
    def __init__(self, comment_id: int):
        super().__init__(f"Comment not found: {comment_id}", details={"id": comment_id})


class ConstraintViolation(VetStoreError):
    """A natural-key uniqueness constraint or reference was violated on write."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="E4090", details=details)


class InvariantViolation(VetStoreError):
    """The local store is in a state that should be impossible (corruption)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="E5002", details=details)


class ExtensionError(VetStoreError):
    """Ecosystem extension failure."""

    def __init__(
        self,
        message: str,
        code: str = "E3000",
        extension: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if extension:
            details["extension"] = extension
        super().__init__(message, code=code, details=details)


class ExtensionNotFound(ExtensionError):
    def __init__(self, name: str):
        super().__init__(f"Extension not enabled: {name}", code="E3001", extension=name)


class ManifestInvalid(ExtensionError):
    def __init__(self, path: str, reason: str, extension: Optional[str] = None):
        super().__init__(
            f"Invalid dependency manifest {path}: {reason}",
            code="E3002",
            extension=extension,
            details={"path": path},
        )


class RegistryRequestError(ExtensionError):
    """The registry could not be reached or answered with an unexpected status."""

    def __init__(self, url: str, reason: str, extension: Optional[str] = None):
        super().__init__(
            f"Registry request failed for {url}: {reason}",
            code="E3003",
            extension=extension,
            details={"url": url},
        )


class RegistryResponseInvalid(ExtensionError):
    def __init__(self, url: str, reason: str, extension: Optional[str] = None):
        super().__init__(
            f"Registry response from {url} is invalid: {reason}",
            code="E3004",
            extension=extension,
            details={"url": url},
        )


class VersionNotFound(ExtensionError):
    def __init__(self, name: str, version: str, registry_host_name: str, extension: Optional[str] = None):
        super().__init__(
            f"Version not found in registry: {name}@{version}@{registry_host_name}",
            code="E3005",
            extension=extension,
            details={
                "name": name,
                "version": version,
                "registry_host_name": registry_host_name,
            },
        )
