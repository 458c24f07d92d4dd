"""
Tests - In-Memory Claim Store
================================
"""

from __future__ import annotations

import threading

import pytest

from core.uniqueness.store import (
    NO_OWNER,
    NOTHING_HELD,
    ClaimStatus,
    ClaimStore,
    InMemoryClaimStore,
)


P = "partition"


@pytest.fixture
def store():
    return InMemoryClaimStore()


class TestContract:
    def test_implements_claim_store(self, store):
        assert isinstance(store, ClaimStore)


class TestClaim:
    def test_claim_free_value(self, store):
        assert store.claim("email", "a@x.com", "owner-a", P) is ClaimStatus.OK
        assert store.holder("email", "a@x.com", P) == "owner-a"

    def test_same_owner_same_value_twice(self, store):
        assert store.claim("email", "a@x.com", "owner-a", P).is_ok
        assert store.claim("email", "a@x.com", "owner-a", P).is_ok
        assert len(store) == 1

    def test_reclaim_reports_already_held(self, store):
        assert store.claim("email", "a@x.com", "owner-a", P) is ClaimStatus.OK
        assert store.claim("email", "a@x.com", "owner-a", P) is ClaimStatus.ALREADY_HELD

    def test_held_value(self, store):
        assert store.held_value("email", "owner-a", P) is NOTHING_HELD

        store.claim("email", "old@x.com", "owner-a", P)
        assert store.held_value("email", "owner-a", P) == "old@x.com"

        store.claim("email", "new@x.com", "owner-a", P)
        assert store.held_value("email", "owner-a", P) == "new@x.com"

        store.release("email", "new@x.com", "owner-a", P)
        assert store.held_value("email", "owner-a", P) is NOTHING_HELD

    def test_other_owner_conflicts(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        assert store.claim("email", "a@x.com", "owner-b", P) is ClaimStatus.ALREADY_EXISTS
        assert store.holder("email", "a@x.com", P) == "owner-a"

    def test_same_owner_new_value_frees_old(self, store):
        store.claim("email", "old@x.com", "owner-a", P)
        assert store.claim("email", "new@x.com", "owner-a", P).is_ok
        assert not store.is_claimed("email", "old@x.com", P)
        assert store.holder("email", "new@x.com", P) == "owner-a"

    def test_conflict_keeps_old_value(self, store):
        store.claim("email", "old@x.com", "owner-a", P)
        store.claim("email", "b@x.com", "owner-b", P)

        assert store.claim("email", "b@x.com", "owner-a", P) is ClaimStatus.ALREADY_EXISTS
        assert store.holder("email", "old@x.com", P) == "owner-a"

    def test_owner_may_hold_values_under_different_keys(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        store.claim("username", "ada", "owner-a", P)
        assert len(store) == 2

    def test_partitions_are_independent(self, store):
        store.claim("email", "a@x.com", "owner-a", "tenant-1")
        assert store.claim("email", "a@x.com", "owner-b", "tenant-2").is_ok


class TestClaimWithoutOwner:
    def test_claim_and_conflict(self, store):
        assert store.claim_without_owner("sku", "ABC", P).is_ok
        assert store.claim_without_owner("sku", "ABC", P) is ClaimStatus.ALREADY_EXISTS
        assert store.holder("sku", "ABC", P) is NO_OWNER

    def test_owned_value_blocks_owner_less_claim(self, store):
        store.claim("sku", "ABC", "owner-a", P)
        assert store.claim_without_owner("sku", "ABC", P) is ClaimStatus.ALREADY_EXISTS

    def test_owner_less_value_blocks_owner_claim(self, store):
        store.claim_without_owner("sku", "ABC", P)
        assert store.claim("sku", "ABC", "owner-a", P) is ClaimStatus.ALREADY_EXISTS


class TestRelease:
    def test_release_by_holder(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        assert store.release("email", "a@x.com", "owner-a", P).is_ok
        assert len(store) == 0

    def test_release_free_value_is_ok(self, store):
        assert store.release("email", "a@x.com", "owner-a", P).is_ok

    def test_release_by_other_owner_refused(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        status = store.release("email", "a@x.com", "owner-b", P)
        assert status is ClaimStatus.CLAIMED_BY_ANOTHER_OWNER
        assert store.is_claimed("email", "a@x.com", P)

    def test_release_owner_less_value_refused(self, store):
        store.claim_without_owner("sku", "ABC", P)
        status = store.release("sku", "ABC", None, P)
        assert status is ClaimStatus.CLAIMED_BY_ANOTHER_OWNER

    def test_release_by_owner(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        assert store.release_by_owner("email", "owner-a", P).is_ok
        assert len(store) == 0
        # the owner can claim a fresh value afterwards without side effects
        assert store.claim("email", "b@x.com", "owner-a", P).is_ok
        assert len(store) == 1

    def test_release_by_owner_unknown_owner(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        assert store.release_by_owner("email", "owner-b", P).is_ok
        assert len(store) == 1

    def test_release_by_value_ignores_owner(self, store):
        store.claim("email", "a@x.com", "owner-a", P)
        assert store.release_by_value("email", "a@x.com", P).is_ok
        assert len(store) == 0
        # owner index was cleared too
        store.claim("email", "b@x.com", "owner-b", P)
        assert store.claim("email", "c@x.com", "owner-a", P).is_ok
        assert store.is_claimed("email", "b@x.com", P)

    def test_release_by_value_owner_less(self, store):
        store.claim_without_owner("sku", "ABC", P)
        assert store.release_by_value("sku", "ABC", P).is_ok
        assert store.claim_without_owner("sku", "ABC", P).is_ok


class TestConcurrency:
    def test_one_winner_per_value(self, store):
        results = []
        barrier = threading.Barrier(8)

        def worker(owner):
            barrier.wait()
            results.append(store.claim("email", "a@x.com", owner, P))

        threads = [
            threading.Thread(target=worker, args=(f"owner-{i}",)) for i in range(8)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert results.count(ClaimStatus.OK) == 1
        assert results.count(ClaimStatus.ALREADY_EXISTS) == 7
