"""
Uniqueness Layer - Claim Orchestrator
========================================
Drives a command's uniqueness rules through the claim store.

Flow (single pass, no early exit):
    0. No adapter configured → OK without looking at the rules
    1. Normalize every rule (configuration errors raise here,
       before anything is claimed)
    2. For each rule, in order:
         resolve (key, value), partition and label
         claim (owner-scoped unless no_owner)
         claim failed        → violation
         verifier said no    → undo that one claim, violation
         otherwise           → remember the claim
    3. No violations → OK, every claim stays standing
       Violations    → undo every remembered claim, REJECTED

Only claims this evaluation changed the store for are remembered. A
value the owner already held (ALREADY_HELD) is left alone on rollback.
When an owner moves to a new value the store frees the old one, so
undoing that claim releases the new value and claims the old one back.

After a rejected evaluation the store is as it was before. Rollback is
best effort: a failed compensating step is logged, never surfaced.

No state survives between evaluations. Concurrency between
evaluations is the adapter's problem.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, List, Optional, Tuple

from core.uniqueness.config import UniquenessConfig
from core.uniqueness.descriptors import UniquenessDescriptor, normalize_descriptors
from core.uniqueness.fields import resolve_field_value
from core.uniqueness.partitions import resolve_partition
from core.uniqueness.result import UniquenessResult, UniquenessViolation
from core.uniqueness.store import NOTHING_HELD, ClaimStatus, ClaimStore

logger = logging.getLogger("uniqueness.claims")


@dataclass(frozen=True)
class ClaimRecord:
    """
    A claim made by the running evaluation. Used only for rollback.

    displaced is the value the owner held under key before the claim
    freed it, or NOTHING_HELD.
    """

    key: str
    value: Any
    owner: Any
    partition: Hashable
    no_owner: bool = False
    displaced: Any = NOTHING_HELD


class ClaimOrchestrator:
    """
    All-or-nothing claiming of a command's unique fields.

    Usage:
        orchestrator = ClaimOrchestrator(
            UniquenessConfig(adapter=InMemoryClaimStore())
        )
        result = orchestrator.ensure_uniqueness(command, [
            ("email", "has already been taken", user_id, {"ignore_case": True}),
        ])
        # result.is_ok or result.errors
    """

    def __init__(self, config: UniquenessConfig):
        self._config = config

    @property
    def config(self) -> UniquenessConfig:
        return self._config

    # ══════════════════════════════════════════════════════════
    # ENSURE UNIQUENESS
    # ══════════════════════════════════════════════════════════

    def ensure_uniqueness(
        self, command: Any, descriptors: Iterable[Any]
    ) -> UniquenessResult:
        adapter = self._config.adapter
        if adapter is None:
            logger.warning(
                "No claim store adapter configured. "
                "Assuming the values are unique."
            )
            return UniquenessResult.ok()

        rules = normalize_descriptors(descriptors)

        committed: List[ClaimRecord] = []
        violations: List[UniquenessViolation] = []

        try:
            for rule in rules:
                claimed, record = self._claim_rule(adapter, command, rule)
                if not claimed:
                    violations.append(
                        UniquenessViolation(rule.label, rule.error_message)
                    )
                elif record is not None:
                    committed.append(record)
        except Exception:
            # A raising verifier or adapter must not leak earlier claims.
            self._rollback(adapter, committed)
            raise

        if not violations:
            return UniquenessResult.ok()

        self._rollback(adapter, committed)

        logger.info(
            f"Uniqueness rejected ({len(violations)} violation(s), "
            f"{len(committed)} claim(s) rolled back)"
        )
        return UniquenessResult.rejected(violations)

    # ══════════════════════════════════════════════════════════
    # SINGLE RULE
    # ══════════════════════════════════════════════════════════

    def _claim_rule(
        self, adapter: ClaimStore, command: Any, rule: UniquenessDescriptor
    ) -> Tuple[bool, Optional[ClaimRecord]]:
        """
        Claim one rule.

        Returns (claimed, record). record is None when the claim failed
        or when the owner already held the value.
        """
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
            displaced = NOTHING_HELD
            status = adapter.claim_without_owner(key, value, partition)
        else:
            displaced = adapter.held_value(key, rule.owner, partition)
            status = adapter.claim(key, value, rule.owner, partition)

        if not status.is_ok:
            logger.debug(
                f"Claim {key}={value!r} in {partition!r} failed: {status.value}"
            )
            return False, None

        record = None
        if status is not ClaimStatus.ALREADY_HELD:
            record = ClaimRecord(
                key=key,
                value=value,
                owner=None if options.no_owner else rule.owner,
                partition=partition,
                no_owner=options.no_owner,
                displaced=displaced,
            )

        if options.is_unique is not None:
            try:
                verified = options.is_unique(key, value, rule.owner, options)
            except Exception:
                if record is not None:
                    self._undo(adapter, record)
                raise
            if not verified:
                logger.debug(
                    f"External check rejected {key}={value!r} in {partition!r}"
                )
                if record is not None:
                    self._undo(adapter, record)
                return False, None

        return True, record

    # ══════════════════════════════════════════════════════════
    # ROLLBACK
    # ══════════════════════════════════════════════════════════

    def _rollback(self, adapter: ClaimStore, records: List[ClaimRecord]) -> None:
        # Newest first, so an owner claiming twice under one key unwinds
        # back to the value it started with.
        for record in reversed(records):
            self._undo(adapter, record)

    def _undo(self, adapter: ClaimStore, record: ClaimRecord) -> None:
        if record.no_owner:
            status = adapter.release_by_value(
                record.key, record.value, record.partition
            )
        else:
            status = adapter.release(
                record.key, record.value, record.owner, record.partition
            )

        if status is not ClaimStatus.OK:
            logger.warning(
                f"Compensating release of {record.key}={record.value!r} "
                f"in {record.partition!r} failed: {status.value}"
            )

        if record.displaced is NOTHING_HELD:
            return

        status = adapter.claim(
            record.key, record.displaced, record.owner, record.partition
        )
        if not status.is_ok:
            logger.warning(
                f"Could not restore {record.key}={record.displaced!r} for "
                f"{record.owner!r} in {record.partition!r}: {status.value}"
            )
