"""Ecosystem extension protocol and shared helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable


class ExtensionType(str, Enum):
    """Built-in extension names."""

    JS = "js"


@dataclass(frozen=True, order=True)
class LocalDependency:
    """A dependency declared by a local project manifest."""

    name: str
    version: str


@dataclass(frozen=True)
class RemotePackageMetadata:
    """What a registry knows about one package version.

    ``source_code_url`` and ``source_code_hash`` are None when the registry
    has no entry for the package at all.
    """

    found_local_use: bool
    registry_host_name: str
    registry_package_url: str | None = None
    registry_package_version_url: str | None = None
    source_code_url: str | None = None
    source_code_hash: str | None = None

    @property
    def is_registered(self) -> bool:
        return self.source_code_url is not None


@runtime_checkable
class Extension(Protocol):
    """One package ecosystem: local dependency discovery + registry metadata."""

    name: str
    registry_host_name: str

    def identify_local_dependencies(self, working_directory: str | os.PathLike) -> set[LocalDependency]: ...

    def remote_package_metadata(
        self,
        package_name: str,
        package_version: str,
        working_directory: str | os.PathLike,
    ) -> RemotePackageMetadata: ...


def find_manifest_files(
    working_directory: str | os.PathLike,
    file_names: Iterable[str],
) -> list[Path] | None:
    """Walk from ``working_directory`` up to the filesystem root.

    Returns the recognized manifest files of the first directory that has at
    least one, or None when no directory up to the root has any. Relative
    paths are taken relative to the current working directory, and ``..``
    segments are collapsed before walking up.
    """
    file_names = tuple(file_names)
    directory = Path(working_directory).resolve()
    for candidate in (directory, *directory.parents):
        found = [candidate / name for name in file_names if (candidate / name).is_file()]
        if found:
            return found
    return None
