"""
Uniqueness Layer - Claim Store Contract
==========================================
The storage primitives the claim orchestrator drives.

A claim reserves a (key, value) pair inside a partition, either for an
owner or, in no-owner mode, for nobody in particular.

Rules every adapter honours:
- claim by owner fails with ALREADY_EXISTS if anyone else holds the value
- the same owner claiming the same value again is ALREADY_HELD, a
  success that changed nothing (one claim stands)
- the same owner claiming a new value frees its old value first
- held_value reports the value an owner holds under a key, so a caller
  can put a displaced value back
- release only frees a value held by that owner
- release_by_owner frees whatever the owner holds under the key
- release_by_value frees the value regardless of owner
- partitions never conflict with each other
- claim is atomic with respect to concurrent callers

InMemoryClaimStore is the reference adapter (tests, single process).
Distributed adapters live under adapters/.
"""

from __future__ import annotations

import logging
from enum import Enum
from threading import Lock
from typing import Any, Dict, Hashable, List, Protocol, Tuple, runtime_checkable

logger = logging.getLogger("uniqueness.store")


# ══════════════════════════════════════════════════════════════
# CLAIM STATUS
# ══════════════════════════════════════════════════════════════

class ClaimStatus(Enum):
    """Result of a claim or release primitive."""
    OK = "OK"
    ALREADY_HELD = "ALREADY_HELD"
    ALREADY_EXISTS = "ALREADY_EXISTS"
    CLAIMED_BY_ANOTHER_OWNER = "CLAIMED_BY_ANOTHER_OWNER"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    NO_ADAPTER = "NO_ADAPTER"

    @property
    def is_ok(self) -> bool:
        return self in (ClaimStatus.OK, ClaimStatus.ALREADY_HELD)


class _Marker:
    """Named placeholder that can never collide with a real value."""

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name


# Held in place of an owner for owner-less claims.
NO_OWNER = _Marker("NO_OWNER")

# Returned by held_value when the owner holds nothing under the key.
NOTHING_HELD = _Marker("NOTHING_HELD")


# ══════════════════════════════════════════════════════════════
# CLAIM STORE PROTOCOL
# ══════════════════════════════════════════════════════════════

@runtime_checkable
class ClaimStore(Protocol):
    """
    Adapter contract for claim storage.

    Adapters report failures as ClaimStatus values; they do not raise
    for conflicts or backend trouble.
    """

    def claim(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        """Reserve (key, value) for owner within partition."""
        ...  # pragma: no cover

    def held_value(self, key: Hashable, owner: Any, partition: Hashable) -> Any:
        """Value owner holds under key, or NOTHING_HELD."""
        ...  # pragma: no cover

    def claim_without_owner(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        """Reserve (key, value) within partition with no owner."""
        ...  # pragma: no cover

    def release(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        """Free (key, value) if owner holds it."""
        ...  # pragma: no cover

    def release_by_owner(
        self, key: Hashable, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        """Free whatever value owner holds under key."""
        ...  # pragma: no cover

    def release_by_value(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        """Free (key, value) regardless of owner."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IN-MEMORY CLAIM STORE
# ══════════════════════════════════════════════════════════════

_MISSING = object()

Slot = Tuple[Hashable, Hashable]


class InMemoryClaimStore:
    """
    Thread-safe in-memory claim store.

    Per (partition, key) slot it keeps two indexes:
        value → owner   (who holds a value)
        owner → value   (which value an owner holds)
    """

    def __init__(self) -> None:
        self._holders: Dict[Slot, Dict[Any, Any]] = {}
        self._owned: Dict[Slot, Dict[Any, Any]] = {}
        self._lock = Lock()

    # ── claims ────────────────────────────────────────────────

    def claim(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        slot = (partition, key)
        with self._lock:
            holders = self._holders.setdefault(slot, {})
            owned = self._owned.setdefault(slot, {})

            current = holders.get(value, _MISSING)
            if current is not _MISSING:
                if current is not NO_OWNER and current == owner:
                    return ClaimStatus.ALREADY_HELD
                return ClaimStatus.ALREADY_EXISTS

            previous = owned.get(owner, _MISSING)
            if previous is not _MISSING:
                holders.pop(previous, None)

            holders[value] = owner
            owned[owner] = value

        logger.debug(f"Claimed {key}={value!r} for {owner!r} in {partition!r}")
        return ClaimStatus.OK

    def claim_without_owner(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        slot = (partition, key)
        with self._lock:
            holders = self._holders.setdefault(slot, {})
            if value in holders:
                return ClaimStatus.ALREADY_EXISTS
            holders[value] = NO_OWNER

        logger.debug(f"Claimed {key}={value!r} without owner in {partition!r}")
        return ClaimStatus.OK

    def held_value(self, key: Hashable, owner: Any, partition: Hashable) -> Any:
        with self._lock:
            return self._owned.get((partition, key), {}).get(owner, NOTHING_HELD)

    # ── releases ──────────────────────────────────────────────

    def release(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        slot = (partition, key)
        with self._lock:
            holders = self._holders.get(slot, {})
            current = holders.get(value, _MISSING)
            if current is _MISSING:
                return ClaimStatus.OK
            if current is NO_OWNER or current != owner:
                return ClaimStatus.CLAIMED_BY_ANOTHER_OWNER

            del holders[value]
            self._owned.get(slot, {}).pop(owner, None)
            self._prune(slot)
        return ClaimStatus.OK

    def release_by_owner(
        self, key: Hashable, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        slot = (partition, key)
        with self._lock:
            owned = self._owned.get(slot, {})
            value = owned.pop(owner, _MISSING)
            if value is not _MISSING:
                holders = self._holders.get(slot, {})
                if holders.get(value, _MISSING) == owner:
                    del holders[value]
            self._prune(slot)
        return ClaimStatus.OK

    def release_by_value(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        slot = (partition, key)
        with self._lock:
            holders = self._holders.get(slot, {})
            current = holders.pop(value, _MISSING)
            if current is not _MISSING and current is not NO_OWNER:
                self._owned.get(slot, {}).pop(current, None)
            self._prune(slot)
        return ClaimStatus.OK

    # ── introspection ─────────────────────────────────────────

    def holder(self, key: Hashable, value: Any, partition: Hashable) -> Any:
        """Owner holding (key, value), NO_OWNER, or None when free."""
        with self._lock:
            return self._holders.get((partition, key), {}).get(value)

    def is_claimed(self, key: Hashable, value: Any, partition: Hashable) -> bool:
        with self._lock:
            return value in self._holders.get((partition, key), {})

    def claims(self) -> List[Tuple[Hashable, Hashable, Any, Any]]:
        """Snapshot of every standing claim as (partition, key, value, owner)."""
        with self._lock:
            return [
                (partition, key, value, owner)
                for (partition, key), holders in self._holders.items()
                for value, owner in holders.items()
            ]

    def clear(self) -> None:
        with self._lock:
            self._holders.clear()
            self._owned.clear()

    def __len__(self) -> int:
        with self._lock:
            return sum(len(h) for h in self._holders.values())

    def _prune(self, slot: Slot) -> None:
        if not self._holders.get(slot):
            self._holders.pop(slot, None)
        if not self._owned.get(slot):
            self._owned.pop(slot, None)
