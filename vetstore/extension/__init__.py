"""Ecosystem extensions."""

from vetstore.extension.base import (
    Extension,
    ExtensionType,
    LocalDependency,
    RemotePackageMetadata,
    find_manifest_files,
)
from vetstore.extension.js import JsExtension
from vetstore.extension.registry import ExtensionRegistry

__all__ = [
    "Extension",
    "ExtensionType",
    "ExtensionRegistry",
    "JsExtension",
    "LocalDependency",
    "RemotePackageMetadata",
    "find_manifest_files",
]
