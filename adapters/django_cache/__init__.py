"""
Django cache adapter.
Claim storage on top of django.core.cache backends.
"""

from adapters.django_cache.store import DjangoCacheClaimStore

__all__ = [
    "DjangoCacheClaimStore",
]
