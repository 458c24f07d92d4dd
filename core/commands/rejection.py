"""
Command Layer - Rejection Model
==================================
Structured rejection reasons for denied commands.

A rejection is deterministic (same input, same rejection) and carries
both a machine-readable code and a human-readable message. Middleware
that finds several problems at once lists them in details as
(label, message) pairs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for command rejection.

    Fields:
        code:        Machine-readable rejection code (e.g. 'VALIDATION_FAILURE').
        message:     Human-readable explanation.
        policy_name: Name of the middleware that caused rejection.
        details:     (label, message) pairs, one per violated rule.
    """

    code: str
    message: str
    policy_name: str
    details: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

        details = tuple(tuple(pair) for pair in self.details)
        for pair in details:
            if len(pair) != 2:
                raise ValueError("details must be (label, message) pairs.")
        object.__setattr__(self, "details", details)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
            "details": [
                {"label": label, "message": message}
                for label, message in self.details
            ],
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes. Extensible by middleware.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Command structure ─────────────────────────────────────
    INVALID_COMMAND_STRUCTURE = "INVALID_COMMAND_STRUCTURE"

    # ── Field validation ──────────────────────────────────────
    VALIDATION_FAILURE = "VALIDATION_FAILURE"
