"""
Uniqueness Layer - Pipeline Middleware
=========================================
Plugs the claim orchestrator into the command pipeline.

    middleware = UniquenessMiddleware(config, registry)
    dispatcher.register_middleware(middleware)

before_dispatch claims the command's unique fields. Any violation
halts the command with a VALIDATION_FAILURE rejection listing every
(label, message) pair at once.

The middleware also exposes the claim primitives directly, with the
default partition filled in and NO_ADAPTER reported when no store is
configured. Aggregates use them (or release_command) to free values
they no longer hold, e.g. after deletion.
"""

from __future__ import annotations

import logging
from typing import Any, Hashable, List, Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.uniqueness.config import UniquenessConfig
from core.uniqueness.descriptors import normalize_descriptors
from core.uniqueness.fields import resolve_field_value
from core.uniqueness.orchestrator import ClaimOrchestrator
from core.uniqueness.partitions import resolve_partition
from core.uniqueness.result import UniquenessResult
from core.uniqueness.rules import UniqueFieldsRegistry
from core.uniqueness.store import ClaimStatus

logger = logging.getLogger("uniqueness.middleware")

POLICY_NAME = "uniqueness"


class UniquenessMiddleware:
    def __init__(
        self,
        config: UniquenessConfig,
        rules: Optional[UniqueFieldsRegistry] = None,
    ):
        self._config = config
        self._rules = rules if rules is not None else UniqueFieldsRegistry()
        self._orchestrator = ClaimOrchestrator(config)

    @property
    def rules(self) -> UniqueFieldsRegistry:
        return self._rules

    @property
    def default_partition(self) -> Hashable:
        return self._config.default_partition

    # ══════════════════════════════════════════════════════════
    # PIPELINE HOOKS
    # ══════════════════════════════════════════════════════════

    def evaluate(self, command: Any) -> UniquenessResult:
        """Claim every unique field the command declares, all or nothing."""
        if not self._config.has_adapter:
            logger.warning(
                "No claim store adapter defined in config! "
                "Assume the value is unique."
            )
            return UniquenessResult.ok()

        return self._orchestrator.ensure_uniqueness(
            command, self._rules.unique(command)
        )

    def before_dispatch(self, command: Any) -> Optional[RejectionReason]:
        result = self.evaluate(command)
        if result.is_ok:
            return None

        labels = ", ".join(v.label for v in result.violations)
        return RejectionReason(
            code=ReasonCode.VALIDATION_FAILURE,
            message=f"Uniqueness violated: {labels}.",
            policy_name=POLICY_NAME,
            details=tuple(result.errors),
        )

    def after_dispatch(self, command: Any, result: Any) -> None:
        return None

    def after_failure(self, command: Any, error: BaseException) -> None:
        return None

    # ══════════════════════════════════════════════════════════
    # RELEASE A COMMAND'S CLAIMS
    # ══════════════════════════════════════════════════════════

    def release_command(self, command: Any) -> List[ClaimStatus]:
        """
        Release every claim the command's rules describe.

        Owner-scoped rules are released by owner, owner-less rules by
        value. Returns one status per rule.
        """
        adapter = self._config.adapter
        rules = self._rules.unique(command)
        if adapter is None:
            return [ClaimStatus.NO_ADAPTER for _ in rules]

        statuses = []
        for rule in normalize_descriptors(rules):
            options = rule.options
            key, value = resolve_field_value(
                command, rule.field_spec, options.ignore_case
            )
            partition = resolve_partition(
                options,
                command,
                self._config.use_command_as_partition,
                self._config.default_partition,
            )
            if options.no_owner:
                status = adapter.release_by_value(key, value, partition)
            else:
                status = adapter.release_by_owner(key, rule.owner, partition)
            statuses.append(status)
        return statuses

    # ══════════════════════════════════════════════════════════
    # CLAIM PRIMITIVES
    # ══════════════════════════════════════════════════════════

    def _partition(self, partition: Optional[Hashable]) -> Hashable:
        if partition is None:
            return self._config.default_partition
        return partition

    def claim(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable = None
    ) -> ClaimStatus:
        """
        Claim (key, value) for owner, releasing the owner's old value
        under key first. ALREADY_HELD when owner already had the value.
        """
        adapter = self._config.adapter
        if adapter is None:
            return ClaimStatus.NO_ADAPTER
        return adapter.claim(key, value, owner, self._partition(partition))

    def claim_without_owner(
        self, key: Hashable, value: Any, partition: Hashable = None
    ) -> ClaimStatus:
        adapter = self._config.adapter
        if adapter is None:
            return ClaimStatus.NO_ADAPTER
        return adapter.claim_without_owner(key, value, self._partition(partition))

    def release(
        self, key: Hashable, value: Any, owner: Any, partition: Hashable = None
    ) -> ClaimStatus:
        adapter = self._config.adapter
        if adapter is None:
            return ClaimStatus.NO_ADAPTER
        return adapter.release(key, value, owner, self._partition(partition))

    def release_by_owner(
        self, key: Hashable, owner: Any, partition: Hashable = None
    ) -> ClaimStatus:
        adapter = self._config.adapter
        if adapter is None:
            return ClaimStatus.NO_ADAPTER
        return adapter.release_by_owner(key, owner, self._partition(partition))

    def release_by_value(
        self, key: Hashable, value: Any, partition: Hashable = None
    ) -> ClaimStatus:
        adapter = self._config.adapter
        if adapter is None:
            return ClaimStatus.NO_ADAPTER
        return adapter.release_by_value(key, value, self._partition(partition))
