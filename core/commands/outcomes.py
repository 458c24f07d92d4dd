"""
Command Layer - Command Outcome
==================================
Every dispatched Command produces exactly one Outcome.

ACCEPTED → every middleware let the command through.
REJECTED → a middleware stopped it; the reason is mandatory.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import List, Optional, Tuple

from core.commands.rejection import RejectionReason


class CommandStatus(Enum):
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class CommandOutcome:
    """
    Result of dispatching one command.

    Invariants:
        - REJECTED + reason is None → ValueError
        - ACCEPTED + reason is not None → ValueError
    """

    command_id: uuid.UUID
    status: CommandStatus
    reason: Optional[RejectionReason]
    occurred_at: datetime

    def __post_init__(self):
        if not isinstance(self.status, CommandStatus):
            raise ValueError(
                f"status must be CommandStatus, got {type(self.status).__name__}."
            )

        if self.status == CommandStatus.REJECTED and self.reason is None:
            raise ValueError("REJECTED outcome must include a RejectionReason.")

        if self.status == CommandStatus.ACCEPTED and self.reason is not None:
            raise ValueError("ACCEPTED outcome must NOT include a RejectionReason.")

    @classmethod
    def accepted(cls, command_id: uuid.UUID, occurred_at: datetime) -> "CommandOutcome":
        return cls(command_id, CommandStatus.ACCEPTED, None, occurred_at)

    @classmethod
    def rejected(
        cls,
        command_id: uuid.UUID,
        reason: RejectionReason,
        occurred_at: datetime,
    ) -> "CommandOutcome":
        return cls(command_id, CommandStatus.REJECTED, reason, occurred_at)

    @property
    def is_accepted(self) -> bool:
        return self.status == CommandStatus.ACCEPTED

    @property
    def is_rejected(self) -> bool:
        return self.status == CommandStatus.REJECTED

    @property
    def errors(self) -> List[Tuple[str, str]]:
        """(label, message) pairs of a validation rejection."""
        if self.reason is None:
            return []
        return list(self.reason.details)
