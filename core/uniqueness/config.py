"""
Uniqueness Layer - Configuration
===================================
Process-wide choices, handed to the orchestrator at construction:

- adapter:                  ClaimStore implementation, or None
- use_command_as_partition: derive partitions from the command type
- default_partition:        namespace used when nothing else applies

load_uniqueness_config() builds a config from Django settings:

    UNIQUENESS_ADAPTER = "adapters.django_cache.DjangoCacheClaimStore"
    UNIQUENESS_USE_COMMAND_AS_PARTITION = True

The adapter setting may be an instance, a class or a dotted path.
It is resolved once at process start and never swapped mid-run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Optional

from core.uniqueness.errors import UniquenessConfigError
from core.uniqueness.partitions import DEFAULT_PARTITION
from core.uniqueness.store import ClaimStore

logger = logging.getLogger("uniqueness.config")

ADAPTER_SETTING = "UNIQUENESS_ADAPTER"
PARTITION_SETTING = "UNIQUENESS_USE_COMMAND_AS_PARTITION"


@dataclass(frozen=True)
class UniquenessConfig:
    adapter: Optional[ClaimStore] = None
    use_command_as_partition: bool = False
    default_partition: Hashable = DEFAULT_PARTITION

    def __post_init__(self):
        if self.adapter is not None and not isinstance(self.adapter, ClaimStore):
            raise UniquenessConfigError(
                "adapter",
                f"{type(self.adapter).__name__} does not implement ClaimStore.",
            )
        if not isinstance(self.use_command_as_partition, bool):
            raise UniquenessConfigError(
                "use_command_as_partition", "must be True or False."
            )

    @property
    def has_adapter(self) -> bool:
        return self.adapter is not None


def _build_adapter(value: Any) -> Optional[ClaimStore]:
    if value is None:
        return None

    if isinstance(value, str):
        from django.utils.module_loading import import_string

        try:
            value = import_string(value)
        except ImportError as exc:
            raise UniquenessConfigError(ADAPTER_SETTING, str(exc)) from exc

    if isinstance(value, type):
        value = value()

    if not isinstance(value, ClaimStore):
        raise UniquenessConfigError(
            ADAPTER_SETTING,
            f"{type(value).__name__} does not implement ClaimStore.",
        )
    return value


def load_uniqueness_config(settings: Any = None) -> UniquenessConfig:
    """
    Read uniqueness settings. Defaults to django.conf.settings.
    """
    if settings is None:
        from django.conf import settings

    adapter = _build_adapter(getattr(settings, ADAPTER_SETTING, None))
    use_command_as_partition = bool(getattr(settings, PARTITION_SETTING, False))

    if adapter is None:
        logger.warning(
            f"{ADAPTER_SETTING} is not set. "
            f"Uniqueness checks will assume every value is unique."
        )
    else:
        logger.info(
            f"Uniqueness adapter configured: {type(adapter).__name__} "
            f"(use_command_as_partition={use_command_as_partition})"
        )

    return UniquenessConfig(
        adapter=adapter,
        use_command_as_partition=use_command_as_partition,
    )
