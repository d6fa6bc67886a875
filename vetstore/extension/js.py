"""JavaScript (npm) extension."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Set
from urllib.parse import quote, urlsplit

import httpx

from vetstore.core.exceptions import (
    ManifestInvalid,
    RegistryRequestError,
    RegistryResponseInvalid,
    VersionNotFound,
)
from vetstore.core.logging import get_logger
from vetstore.extension.base import (
    ExtensionType,
    LocalDependency,
    RemotePackageMetadata,
    find_manifest_files,
)

logger = get_logger(__name__)

MANIFEST_FILE_NAMES = ("package.json",)
DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


def parse_package_json(path: Path) -> Set[LocalDependency]:
    """Read every declared dependency from a package.json file."""
    try:
        manifest = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        raise ManifestInvalid(str(path), str(e), extension=ExtensionType.JS.value) from e
    if not isinstance(manifest, dict):
        raise ManifestInvalid(str(path), "top-level value is not an object", extension=ExtensionType.JS.value)

    dependencies = set()
    for section in DEPENDENCY_SECTIONS:
        declared = manifest.get(section)
        if declared is None:
            continue
        if not isinstance(declared, dict):
            raise ManifestInvalid(str(path), f"'{section}' is not an object", extension=ExtensionType.JS.value)
        for name, version in declared.items():
            if not isinstance(version, str):
                raise ManifestInvalid(
                    str(path), f"version of '{name}' is not a string", extension=ExtensionType.JS.value
                )
            dependencies.add(LocalDependency(name=name.strip(), version=version.strip()))
    return dependencies


class JsExtension:
    """Extension for packages published on the npm registry."""

    name = ExtensionType.JS.value
    registry_host_name = "npmjs.com"

    def __init__(
        self,
        registry_url: str = "https://registry.npmjs.com",
        display_root_url: str = "https://www.npmjs.com",
        timeout: float = 30,
        client: httpx.Client | None = None,
    ):
        """Initialize the npm extension."""
        self.registry_url = registry_url.rstrip("/")
        self.display_root_url = display_root_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.Client:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self.timeout, follow_redirects=True)
        return self._client

    def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            self._client.close()
            self._client = None

    def package_url(self, package_name: str) -> str:
        # e.g. https://www.npmjs.com/package/d3/
        return f"{self.display_root_url}/package/{package_name}/"

    def package_version_url(self, package_name: str, package_version: str) -> str:
        # e.g. https://www.npmjs.com/package/d3/v/6.5.0
        return f"{self.display_root_url}/package/{package_name}/v/{package_version}"

    def identify_local_dependencies(self, working_directory: str | os.PathLike) -> Set[LocalDependency]:
        manifests = find_manifest_files(working_directory, MANIFEST_FILE_NAMES)
        if manifests is None:
            return set()

        dependencies: Set[LocalDependency] = set()
        for manifest in manifests:
            dependencies |= parse_package_json(manifest)
        logger.debug(
            "Identified local dependencies",
            data={"manifests": [str(m) for m in manifests], "count": len(dependencies)},
        )
        return dependencies

    def remote_package_metadata(
        self,
        package_name: str,
        package_version: str,
        working_directory: str | os.PathLike,
    ) -> RemotePackageMetadata:
        found_local_use = find_manifest_files(working_directory, MANIFEST_FILE_NAMES) is not None
        package_url = self.package_url(package_name)
        package_version_url = self.package_version_url(package_name, package_version)

        entry_url = self.registry_entry_url(package_name)
        entry = self._get_registry_entry(entry_url)
        if entry is None:
            logger.info(
                "Package not found in registry",
                data={"package": package_name, "registry": self.registry_host_name},
            )
            return RemotePackageMetadata(
                found_local_use=found_local_use,
                registry_host_name=self.registry_host_name,
                registry_package_url=package_url,
                registry_package_version_url=package_version_url,
            )

        source_code_url, source_code_hash = self._get_source_code_dist(
            entry, entry_url, package_name, package_version
        )
        return RemotePackageMetadata(
            found_local_use=found_local_use,
            registry_host_name=self.registry_host_name,
            registry_package_url=package_url,
            registry_package_version_url=package_version_url,
            source_code_url=source_code_url,
            source_code_hash=source_code_hash,
        )

    def registry_entry_url(self, package_name: str) -> str:
        # Scoped names keep their "@" but the "/" must be escaped.
        return f"{self.registry_url}/{quote(package_name, safe='@')}"

    def _get_registry_entry(self, url: str) -> Dict[str, Any] | None:
        """Fetch the registry document for a package; None if the registry has no such package."""
        try:
            response = self.client.get(url, headers={"Accept": "application/json"})
        except httpx.HTTPError as e:
            raise RegistryRequestError(url, str(e), extension=self.name) from e

        if response.status_code == 404:
            return None
        if response.is_error:
            raise RegistryRequestError(url, f"HTTP {response.status_code}", extension=self.name)

        try:
            entry = response.json()
        except ValueError as e:
            raise RegistryResponseInvalid(url, "JSON was not well-formatted", extension=self.name) from e
        if not isinstance(entry, dict):
            raise RegistryResponseInvalid(url, "top-level value is not an object", extension=self.name)
        return entry

    def _get_source_code_dist(
        self,
        entry: Dict[str, Any],
        entry_url: str,
        package_name: str,
        package_version: str,
    ) -> tuple[str, str]:
        versions = entry.get("versions")
        if not isinstance(versions, dict):
            raise RegistryResponseInvalid(entry_url, "missing 'versions' map", extension=self.name)
        if package_version not in versions:
            raise VersionNotFound(package_name, package_version, self.registry_host_name, extension=self.name)

        release = versions[package_version]
        dist = release.get("dist") if isinstance(release, dict) else None
        if not isinstance(dist, dict):
            raise RegistryResponseInvalid(
                entry_url, f"missing 'dist' for version {package_version}", extension=self.name
            )

        tarball = dist.get("tarball")
        if not isinstance(tarball, str) or urlsplit(tarball).scheme not in ("http", "https"):
            raise RegistryResponseInvalid(entry_url, "Failed to parse package source code URL", extension=self.name)
        shasum = dist.get("shasum")
        if not isinstance(shasum, str) or not shasum:
            raise RegistryResponseInvalid(entry_url, "Failed to parse package source code digest", extension=self.name)
        return tarball, shasum
