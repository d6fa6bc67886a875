"""Merge engine: natural-key identity, idempotence and conflict policies."""

import pytest

from conftest import ALICE_URL, add_package
from vetstore.config import Settings
from vetstore.core.exceptions import ConstraintViolation, PackageNotFound, PeerNotFound
from vetstore.db import Base, make_engine
from vetstore.entities import PackageSecurity, ReviewConfidence
from vetstore.index import CommentIndex, PackageIndex, PeerFields, PeerIndex, ReviewFields, ReviewIndex
from vetstore.merge import MergeConflictPolicy, MergeEngine, merge
from vetstore.store import Store

pytestmark = pytest.mark.merge

BOB_URL = "https://git.example.com/bob/reviews.git"


@pytest.fixture
def seeded_incoming(incoming_store):
    """Alice's store: her own review of left-pad and a review by Bob of d3."""
    with incoming_store.transaction() as tx:
        alice = PeerIndex(tx).get_root()
        bob = PeerIndex(tx).insert(alias="bob", url=BOB_URL)
        left_pad = add_package(tx, name="left-pad", version="1.3.0")
        d3 = add_package(tx, name="d3", version="6.5.0")

        comments = CommentIndex(tx)
        ReviewIndex(tx).insert(
            [comments.insert("Tiny and readable"), comments.insert("No install scripts")],
            alice,
            left_pad,
            security=PackageSecurity.SAFE,
            confidence=ReviewConfidence.HIGH,
        )
        ReviewIndex(tx).insert([comments.insert("Minified bundle checked in")], bob, d3)
        tx.commit()
    return incoming_store


def review_facts(store):
    """Store-independent view of all reviews: natural keys + content."""
    with store.transaction() as tx:
        return {
            (
                r.peer.url,
                r.package.natural_key,
                r.security,
                r.confidence,
                tuple(sorted(c.summary for c in r.comments)),
            )
            for r in ReviewIndex(tx).get()
        }


def full_merge(incoming, local, policy=MergeConflictPolicy.SKIP):
    with incoming.transaction() as incoming_tx, local.transaction() as local_tx:
        result = MergeEngine(incoming_tx, local_tx, policy).merge()
        local_tx.commit()
    return result


class TestMergeEngine:
    def test_merge_adds_peers_packages_and_reviews(self, seeded_incoming, store):
        result = full_merge(seeded_incoming, store)

        assert {p.url for p in result.peers} == {ALICE_URL, BOB_URL}
        assert {p.name for p in result.packages} == {"left-pad", "d3"}
        assert {r.package.name for r in result.reviews} == {"left-pad", "d3"}
        assert review_facts(store) == review_facts(seeded_incoming)

    def test_merged_peers_are_never_root(self, seeded_incoming, store, settings):
        full_merge(seeded_incoming, store)
        with store.transaction() as tx:
            roots = PeerIndex(tx).get(PeerFields(is_root=True))
            alice = PeerIndex(tx).get_by_url(ALICE_URL)
        assert [r.url for r in roots] == [settings.root_peer_url]
        assert alice.is_root is False

    def test_merging_twice_is_idempotent(self, seeded_incoming, store):
        full_merge(seeded_incoming, store)
        once = review_facts(store)
        with store.transaction() as tx:
            comment_count = len(CommentIndex(tx).get())

        second = full_merge(seeded_incoming, store)

        assert second.reviews == set()
        assert second.peers == set()
        assert second.packages == set()
        assert review_facts(store) == once
        with store.transaction() as tx:
            assert len(CommentIndex(tx).get()) == comment_count

    def test_existing_peer_is_reused_by_url(self, seeded_incoming, store):
        with store.transaction() as tx:
            # Pad the id sequence so Bob's local id differs from his id in Alice's store.
            PeerIndex(tx).insert(alias="carol", url="https://git.example.com/carol.git")
            PeerIndex(tx).insert(alias="dave", url="https://git.example.com/dave.git")
            local_bob = PeerIndex(tx).insert(alias="robert", url=BOB_URL)
            tx.commit()
        with seeded_incoming.transaction() as tx:
            incoming_bob = PeerIndex(tx).get_by_url(BOB_URL)
        assert local_bob.id != incoming_bob.id

        full_merge(seeded_incoming, store)

        with store.transaction() as tx:
            bobs = PeerIndex(tx).get(PeerFields(url=BOB_URL))
            bob_reviews = ReviewIndex(tx).get(ReviewFields(peer_id=local_bob.id))
        assert bobs == [local_bob]
        assert [r.package.name for r in bob_reviews] == ["d3"]

    def test_comments_get_fresh_local_ids(self, seeded_incoming, store):
        with store.transaction() as tx:
            for i in range(5):
                CommentIndex(tx).insert(f"local note {i}")
            tx.commit()

        full_merge(seeded_incoming, store)

        with store.transaction() as tx:
            review = ReviewIndex(tx).get(ReviewFields(package_name="d3"))[0]
        assert [c.summary for c in review.comments] == ["Minified bundle checked in"]
        assert min(c.id for c in review.comments) > 5


class TestMergeReviews:
    def test_missing_peer_fails(self, seeded_incoming, store):
        with seeded_incoming.transaction() as incoming_tx, store.transaction() as local_tx:
            with pytest.raises(PeerNotFound) as exc:
                merge(incoming_tx, local_tx)
        assert exc.value.url in (ALICE_URL, BOB_URL)

    def test_missing_package_fails(self, seeded_incoming, store):
        with seeded_incoming.transaction() as incoming_tx, store.transaction() as local_tx:
            MergeEngine(incoming_tx, local_tx).merge_peers()
            with pytest.raises(PackageNotFound) as exc:
                merge(incoming_tx, local_tx)
        assert "npmjs.com" in str(exc.value)

    def test_returns_only_new_reviews(self, seeded_incoming, store):
        with seeded_incoming.transaction() as incoming_tx, store.transaction() as local_tx:
            engine = MergeEngine(incoming_tx, local_tx)
            engine.merge_peers()
            engine.merge_packages()
            first = merge(incoming_tx, local_tx)
            second = merge(incoming_tx, local_tx)
        assert len(first) == 2
        assert second == set()

    def test_failure_leaves_local_store_untouched(self, seeded_incoming, store):
        with pytest.raises(PackageNotFound):
            with seeded_incoming.transaction() as incoming_tx, store.transaction() as local_tx:
                MergeEngine(incoming_tx, local_tx).merge_peers()
                merge(incoming_tx, local_tx)
                local_tx.commit()

        with store.transaction() as tx:
            assert PeerIndex(tx).get_by_url(BOB_URL) is None


class TestMergeConflicts:
    @pytest.fixture
    def conflicting_local(self, store):
        """Local store already holding Bob's review of d3 with different content."""
        with store.transaction() as tx:
            bob = PeerIndex(tx).insert(alias="bob", url=BOB_URL)
            d3 = add_package(tx, name="d3", version="6.5.0")
            ReviewIndex(tx).insert([CommentIndex(tx).insert("Old note")], bob, d3)
            tx.commit()
        return store

    def test_skip_keeps_local_review(self, seeded_incoming, conflicting_local):
        result = full_merge(seeded_incoming, conflicting_local, MergeConflictPolicy.SKIP)

        assert {r.package.name for r in result.reviews} == {"left-pad"}
        with conflicting_local.transaction() as tx:
            d3_review = ReviewIndex(tx).get(ReviewFields(package_name="d3"))[0]
        assert [c.summary for c in d3_review.comments] == ["Old note"]

    def test_raise_surfaces_conflict(self, seeded_incoming, conflicting_local):
        with pytest.raises(ConstraintViolation):
            full_merge(seeded_incoming, conflicting_local, MergeConflictPolicy.RAISE)

    def test_overwrite_replaces_comments(self, seeded_incoming, conflicting_local):
        result = full_merge(seeded_incoming, conflicting_local, MergeConflictPolicy.OVERWRITE)

        assert {r.package.name for r in result.reviews} == {"left-pad", "d3"}
        with conflicting_local.transaction() as tx:
            d3_review = ReviewIndex(tx).get(ReviewFields(package_name="d3"))[0]
            old_notes = CommentIndex(tx).get()
        assert [c.summary for c in d3_review.comments] == ["Minified bundle checked in"]
        assert "Old note" not in {c.summary for c in old_notes}

    def test_overwrite_is_idempotent(self, seeded_incoming, conflicting_local):
        full_merge(seeded_incoming, conflicting_local, MergeConflictPolicy.OVERWRITE)
        again = full_merge(seeded_incoming, conflicting_local, MergeConflictPolicy.OVERWRITE)
        assert again.reviews == set()

    def test_overwrite_never_touches_root_reviews(self, incoming_store, settings):
        # Alice's store holds a review attributed to our own root URL.
        local = Store.in_memory(settings=settings)
        try:
            with incoming_store.transaction() as tx:
                me = PeerIndex(tx).insert(alias="me", url=settings.root_peer_url)
                ReviewIndex(tx).insert([CommentIndex(tx).insert("Rewritten")], me, add_package(tx))
                tx.commit()
            with local.transaction() as tx:
                root = PeerIndex(tx).get_root()
                ReviewIndex(tx).insert([CommentIndex(tx).insert("Mine")], root, add_package(tx))
                tx.commit()

            full_merge(incoming_store, local, MergeConflictPolicy.OVERWRITE)

            with local.transaction() as tx:
                review = ReviewIndex(tx).get_for(PeerIndex(tx).get_root(), PackageIndex(tx).get()[0])
            assert [c.summary for c in review.comments] == ["Mine"]
        finally:
            local.close()


class TestRootIdentity:
    def test_default_stores_get_distinct_root_urls(self):
        first = Store.in_memory(settings=Settings())
        second = Store.in_memory(settings=Settings())
        try:
            with first.transaction() as tx:
                first_root = PeerIndex(tx).get_root()
            with second.transaction() as tx:
                second_root = PeerIndex(tx).get_root()
        finally:
            first.close()
            second.close()
        assert first_root.url.startswith("local://")
        assert first_root.url != second_root.url

    def test_merging_default_stores_keeps_operators_apart(self):
        incoming = Store.in_memory(settings=Settings(root_peer_alias="alice"))
        local = Store.in_memory(settings=Settings())
        try:
            with incoming.transaction() as tx:
                alice = PeerIndex(tx).get_root()
                ReviewIndex(tx).insert(
                    [CommentIndex(tx).insert("alice says safe")],
                    alice,
                    add_package(tx),
                    security=PackageSecurity.SAFE,
                )
                tx.commit()

            full_merge(incoming, local)

            with local.transaction() as tx:
                root = PeerIndex(tx).get_root()
                reviews = ReviewIndex(tx).get()
        finally:
            incoming.close()
            local.close()

        assert [r.peer.url for r in reviews] == [alice.url]
        assert all(r.peer != root for r in reviews)
        assert reviews[0].peer.is_root is False

    def test_shared_root_url_is_rejected(self, store, settings):
        twin = Store.in_memory(settings=Settings(root_peer_alias="twin", root_peer_url=settings.root_peer_url))
        try:
            with pytest.raises(ConstraintViolation):
                full_merge(twin, store)
        finally:
            twin.close()

    def test_merge_reviews_rejects_root_collision(self, store, settings):
        twin = Store.in_memory(settings=Settings(root_peer_url=settings.root_peer_url))
        try:
            with twin.transaction() as tx:
                ReviewIndex(tx).insert([], PeerIndex(tx).get_root(), add_package(tx))
                tx.commit()
            with store.transaction() as tx:
                add_package(tx)
                tx.commit()
            with twin.transaction() as incoming_tx, store.transaction() as local_tx:
                with pytest.raises(ConstraintViolation):
                    merge(incoming_tx, local_tx)
        finally:
            twin.close()


class TestIncomingStoreIsReadOnly:
    def test_uninitialized_incoming_store_is_not_written(self, tmp_path, store, settings):
        path = tmp_path / "fetched.db"
        # A peer's store whose schema exists but which has no root row.
        engine = make_engine(f"sqlite:///{path}")
        Base.metadata.create_all(bind=engine)
        engine.dispose()

        incoming = Store.from_path(path, settings=settings, initialize=False)
        try:
            with incoming.transaction() as tx:
                bob = PeerIndex(tx).insert(alias="bob", url=BOB_URL)
                ReviewIndex(tx).insert([], bob, add_package(tx))
                tx.commit()

            full_merge(incoming, store)

            with incoming.transaction() as tx:
                assert [p.url for p in PeerIndex(tx).get()] == [BOB_URL]
                assert PeerIndex(tx).get_root() is None
        finally:
            incoming.close()

        with store.transaction() as tx:
            assert [r.peer.url for r in ReviewIndex(tx).get()] == [BOB_URL]
