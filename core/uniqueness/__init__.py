"""
Uniqueness Layer - Public API
================================
Claims unique field values of a command before it is accepted.

Either every claim a command needs is standing after evaluation,
or none of them is.
"""

from core.uniqueness.config import UniquenessConfig, load_uniqueness_config
from core.uniqueness.descriptors import (
    UniqueOptions,
    UniquenessDescriptor,
    normalize_descriptor,
    normalize_descriptors,
)
from core.uniqueness.errors import (
    DuplicateRulesError,
    ExternalCheckMisconfigured,
    InvalidDescriptor,
    UniquenessConfigError,
    UniquenessError,
)
from core.uniqueness.fields import composite_key, resolve_field_value
from core.uniqueness.middleware import UniquenessMiddleware
from core.uniqueness.orchestrator import ClaimOrchestrator, ClaimRecord
from core.uniqueness.partitions import (
    DEFAULT_PARTITION,
    command_type_of,
    resolve_partition,
)
from core.uniqueness.result import UniquenessResult, UniquenessViolation
from core.uniqueness.rules import (
    NoUniquenessRules,
    UniqueFieldsRegistry,
    UniquenessRules,
)
from core.uniqueness.store import (
    NO_OWNER,
    NOTHING_HELD,
    ClaimStatus,
    ClaimStore,
    InMemoryClaimStore,
)

__all__ = [
    # ── Config ────────────────────────────────────────────────
    "UniquenessConfig",
    "load_uniqueness_config",
    # ── Descriptors ───────────────────────────────────────────
    "UniqueOptions",
    "UniquenessDescriptor",
    "normalize_descriptor",
    "normalize_descriptors",
    # ── Errors ────────────────────────────────────────────────
    "UniquenessError",
    "InvalidDescriptor",
    "ExternalCheckMisconfigured",
    "DuplicateRulesError",
    "UniquenessConfigError",
    # ── Resolution ────────────────────────────────────────────
    "composite_key",
    "resolve_field_value",
    "DEFAULT_PARTITION",
    "command_type_of",
    "resolve_partition",
    # ── Orchestration ─────────────────────────────────────────
    "ClaimOrchestrator",
    "ClaimRecord",
    "UniquenessResult",
    "UniquenessViolation",
    "UniquenessMiddleware",
    # ── Rules ─────────────────────────────────────────────────
    "UniquenessRules",
    "NoUniquenessRules",
    "UniqueFieldsRegistry",
    # ── Store ─────────────────────────────────────────────────
    "ClaimStatus",
    "ClaimStore",
    "InMemoryClaimStore",
    "NO_OWNER",
    "NOTHING_HELD",
]
