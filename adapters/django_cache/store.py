"""
Django Cache Claim Store
===========================
ClaimStore backed by Django's cache framework, so claims are shared by
every process pointing at the same cache (Redis, Memcached, database).

Layout, per partition and key:
    value entry   (partition, key, value) → ("owner", owner) | ("none",)
    owner index   (partition, key, owner) → value

cache.add() is the atomic "claim if absent" step. Cache keys are
SHA-256 digests of repr() of their parts, so keys, values, owners and
partitions must have a stable repr (strings, numbers, UUIDs, tuples).

Backend exceptions never leave the adapter: they are logged and
reported as ClaimStatus.UNKNOWN_ERROR.
"""

from __future__ import annotations

import functools
import hashlib
import logging
from typing import Any, Hashable, Optional

from django.core.cache import caches

from core.uniqueness.store import NOTHING_HELD, ClaimStatus

logger = logging.getLogger("uniqueness.adapters.django_cache")

_MISSING = object()

NO_OWNER_MARKER = ("none",)


def _owner_marker(owner: Any) -> tuple:
    return ("owner", owner)


def _reports_backend_errors(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception:
            logger.exception(
                f"Cache backend '{self._alias}' failed during "
                f"{method.__name__}{args!r}"
            )
            return ClaimStatus.UNKNOWN_ERROR

    return wrapper


class DjangoCacheClaimStore:
    """
    Usage:
        # settings.py
        CACHES = {"uniqueness": {"BACKEND": "django.core.cache.backends.redis.RedisCache",
                                 "LOCATION": "redis://localhost:6379/3"}}
        UNIQUENESS_CACHE_ALIAS = "uniqueness"
        UNIQUENESS_ADAPTER = "adapters.django_cache.DjangoCacheClaimStore"

    alias defaults to settings.UNIQUENESS_CACHE_ALIAS, then "default".
    timeout None keeps claims until released.
    """

    def __init__(
        self,
        alias: Optional[str] = None,
        timeout: Optional[float] = None,
        key_prefix: str = "uniqueness",
    ):
        if alias is None:
            from django.conf import settings

            alias = getattr(settings, "UNIQUENESS_CACHE_ALIAS", "default")
        self._alias = alias
        self._timeout = timeout
        self._key_prefix = key_prefix

    @property
    def alias(self) -> str:
        return self._alias

    @property
    def cache(self):
        return caches[self._alias]

    # ── cache keys ────────────────────────────────────────────

    def _digest(self, kind: str, *parts: Any) -> str:
        raw = repr((kind,) + parts).encode("utf-8")
        return f"{self._key_prefix}:{kind}:{hashlib.sha256(raw).hexdigest()}"

    def _value_key(self, partition: Hashable, key: Hashable, value: Any) -> str:
        return self._digest("value", partition, key, value)

    def _owner_key(self, partition: Hashable, key: Hashable, owner: Any) -> str:
        return self._digest("owner", partition, key, owner)

    # ── claims ────────────────────────────────────────────────

    @_reports_backend_errors
    def claim(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        cache = self.cache
        value_key = self._value_key(partition, key, value)
        owner_key = self._owner_key(partition, key, owner)
        marker = _owner_marker(owner)

        if not cache.add(value_key, marker, self._timeout):
            if cache.get(value_key, _MISSING) != marker:
                return ClaimStatus.ALREADY_EXISTS
            cache.set(owner_key, value, self._timeout)
            return ClaimStatus.ALREADY_HELD

        # The value entry is ours now. It must not outlive failed bookkeeping.
        try:
            previous = cache.get(owner_key, _MISSING)
            if previous is not _MISSING and previous != value:
                previous_key = self._value_key(partition, key, previous)
                if cache.get(previous_key, _MISSING) == marker:
                    cache.delete(previous_key)

            cache.set(owner_key, value, self._timeout)
        except Exception:
            cache.delete(value_key)
            raise

        logger.debug(f"Claimed {key}={value!r} for {owner!r} in {partition!r}")
        return ClaimStatus.OK

    def held_value(self, key: Hashable, owner: Any, partition: Hashable) -> Any:
        """Backend trouble reads as NOTHING_HELD."""
        try:
            cache = self.cache
            value = cache.get(self._owner_key(partition, key, owner), _MISSING)
            if value is _MISSING:
                return NOTHING_HELD
            value_key = self._value_key(partition, key, value)
            if cache.get(value_key, _MISSING) != _owner_marker(owner):
                return NOTHING_HELD
        except Exception:
            logger.exception(
                f"Cache backend '{self._alias}' failed during "
                f"held_value{(key, owner, partition)!r}"
            )
            return NOTHING_HELD
        return value

    @_reports_backend_errors
    def claim_without_owner(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        value_key = self._value_key(partition, key, value)
        if not self.cache.add(value_key, NO_OWNER_MARKER, self._timeout):
            return ClaimStatus.ALREADY_EXISTS

        logger.debug(f"Claimed {key}={value!r} without owner in {partition!r}")
        return ClaimStatus.OK

    # ── releases ──────────────────────────────────────────────

    @_reports_backend_errors
    def release(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        cache = self.cache
        value_key = self._value_key(partition, key, value)

        current = cache.get(value_key, _MISSING)
        if current is _MISSING:
            return ClaimStatus.OK
        if current != _owner_marker(owner):
            return ClaimStatus.CLAIMED_BY_ANOTHER_OWNER

        cache.delete(value_key)
        owner_key = self._owner_key(partition, key, owner)
        if cache.get(owner_key, _MISSING) == value:
            cache.delete(owner_key)
        return ClaimStatus.OK

    @_reports_backend_errors
    def release_by_owner(
        self, key: Hashable, owner: Any, partition: Hashable
    ) -> ClaimStatus:
        cache = self.cache
        owner_key = self._owner_key(partition, key, owner)

        value = cache.get(owner_key, _MISSING)
        if value is _MISSING:
            return ClaimStatus.OK

        value_key = self._value_key(partition, key, value)
        if cache.get(value_key, _MISSING) == _owner_marker(owner):
            cache.delete(value_key)
        cache.delete(owner_key)
        return ClaimStatus.OK

    @_reports_backend_errors
    def release_by_value(
        self, key: Hashable, value: Any, partition: Hashable
    ) -> ClaimStatus:
        cache = self.cache
        value_key = self._value_key(partition, key, value)

        current = cache.get(value_key, _MISSING)
        if current is _MISSING:
            return ClaimStatus.OK

        cache.delete(value_key)
        if current != NO_OWNER_MARKER:
            owner_key = self._owner_key(partition, key, current[1])
            if cache.get(owner_key, _MISSING) == value:
                cache.delete(owner_key)
        return ClaimStatus.OK
