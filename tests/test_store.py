"""Store bootstrap and transaction scoping."""

import pytest

from vetstore.config import Settings
from vetstore.core.exceptions import StoreError
from vetstore.index.peer import PeerFields, PeerIndex
from vetstore.store import Store


class TestStoreBootstrap:
    def test_root_peer_exists_after_initialization(self, store, settings):
        with store.transaction() as tx:
            root = PeerIndex(tx).get_root()
        assert root is not None
        assert root.is_root is True
        assert root.url == settings.root_peer_url
        assert root.alias == settings.root_peer_alias

    def test_initialize_is_idempotent(self, store):
        store.initialize()
        store.initialize()
        with store.transaction() as tx:
            peers = PeerIndex(tx).get(PeerFields(is_root=True))
        assert len(peers) == 1

    def test_file_store_persists_between_opens(self, tmp_path):
        path = tmp_path / "nested" / "index.db"
        settings = Settings(root_peer_url="local://me")

        first = Store.from_path(path, settings=settings)
        with first.transaction() as tx:
            PeerIndex(tx).insert(alias="bob", url="https://git.example.com/bob.git")
            tx.commit()
        first.close()

        second = Store.from_path(path, settings=settings)
        try:
            with second.transaction() as tx:
                urls = [p.url for p in PeerIndex(tx).get()]
        finally:
            second.close()
        assert urls == ["local://me", "https://git.example.com/bob.git"]


class TestStoreTransaction:
    def test_uncommitted_work_is_rolled_back(self, store):
        with store.transaction() as tx:
            PeerIndex(tx).insert(alias="bob", url="https://git.example.com/bob.git")

        with store.transaction() as tx:
            assert PeerIndex(tx).get(PeerFields(alias="bob")) == []

    def test_exception_rolls_back(self, store):
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                PeerIndex(tx).insert(alias="bob", url="https://git.example.com/bob.git")
                raise RuntimeError("boom")

        with store.transaction() as tx:
            assert PeerIndex(tx).get(PeerFields(alias="bob")) == []

    def test_commit_persists(self, store):
        with store.transaction() as tx:
            PeerIndex(tx).insert(alias="bob", url="https://git.example.com/bob.git")
            tx.commit()

        with store.transaction() as tx:
            assert len(PeerIndex(tx).get(PeerFields(alias="bob"))) == 1

    def test_closed_transaction_cannot_be_used(self, store):
        with store.transaction() as tx:
            pass
        assert tx.closed
        with pytest.raises(StoreError):
            PeerIndex(tx).get()
