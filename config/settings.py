"""
Django Settings (Infrastructure Only)
========================================
Django is used for its settings and cache framework. The claim store
adapter talks to the cache named by UNIQUENESS_CACHE_ALIAS.

Development and tests run on the local-memory cache backend. Point
the "uniqueness" cache at Redis or Memcached in production so claims
are shared across processes.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "uniqueness-dev-key")

DEBUG = os.environ.get("DJANGO_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

INSTALLED_APPS = []

# ── Database ──────────────────────────────────────────────────
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# ── Caches ────────────────────────────────────────────────────
UNIQUENESS_CACHE_ALIAS = "uniqueness"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "default",
    },
    UNIQUENESS_CACHE_ALIAS: {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "uniqueness-claims",
        # Claims must not be evicted while their owner holds them.
        "OPTIONS": {"MAX_ENTRIES": 1_000_000},
    },
}

# ── Uniqueness ────────────────────────────────────────────────
# Dotted path, class or instance of a ClaimStore. None disables checks
# (every command is assumed unique).
UNIQUENESS_ADAPTER = "adapters.django_cache.DjangoCacheClaimStore"
UNIQUENESS_USE_COMMAND_AS_PARTITION = False

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "console": {"class": "logging.StreamHandler"},
    },
    "loggers": {
        "uniqueness": {
            "handlers": ["console"],
            "level": os.environ.get("UNIQUENESS_LOG_LEVEL", "INFO"),
        },
    },
}

TIME_ZONE = "UTC"
USE_TZ = True
