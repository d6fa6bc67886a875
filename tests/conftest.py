"""Pytest configuration and fixtures for vetstore tests.

Every store used by the tests is an in-memory SQLite database unless a test
asks for a file-backed one through ``tmp_path``.
"""

import os

import pytest

from vetstore.config import Settings, get_settings
from vetstore.index.package import PackageIndex
from vetstore.store import Store

LOCAL_ROOT_URL = "local://root"
ALICE_URL = "https://git.example.com/alice/reviews.git"


def pytest_configure(config):
    """Configure the test environment before any tests run.

    Settings are read from the environment, so pin the values tests rely on
    and keep a developer's ~/.vetstore or .env from leaking in.
    """
    os.environ.setdefault("VETSTORE_ENVIRONMENT", "test")
    os.environ["VETSTORE_DATABASE_URL"] = "sqlite://"
    os.environ.pop("VETSTORE_ROOT_PEER_URL", None)
    os.environ["VETSTORE_MERGE_CONFLICT_POLICY"] = "skip"
    get_settings.cache_clear()

    config.addinivalue_line("markers", "merge: Merge engine tests")
    config.addinivalue_line("markers", "extension: Ecosystem extension tests")


@pytest.fixture
def settings():
    return Settings(root_peer_url=LOCAL_ROOT_URL)


@pytest.fixture
def store(settings):
    """The local store, bootstrapped with its root peer."""
    s = Store.in_memory(settings=settings)
    yield s
    s.close()


@pytest.fixture
def tx(store):
    with store.transaction() as t:
        yield t


@pytest.fixture
def incoming_store():
    """A second, independently created store (Alice's)."""
    s = Store.in_memory(settings=Settings(root_peer_alias="alice", root_peer_url=ALICE_URL))
    yield s
    s.close()


def add_package(tx, name="left-pad", version="1.3.0", host="npmjs.com"):
    return PackageIndex(tx).insert(
        name=name,
        version=version,
        registry_host_name=host,
        registry_package_url=f"https://www.{host}/package/{name}/",
        registry_package_version_url=f"https://www.{host}/package/{name}/v/{version}",
        source_code_url=f"https://registry.{host}/{name}/-/{name}-{version}.tgz",
        source_code_hash="5b5f5bb3e4a5a5e5d5c5b5a5f5e5d5c5b5a5f5e5",
    )
