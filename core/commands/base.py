"""
Command Layer - Command Base Contract
========================================
Every action begins as a Command.

A Command is a frozen declaration of intent. It carries identity and
payload, nothing else. Uniqueness rules read their field values from
the payload.

Rules:
- Immutable once created (frozen dataclass)
- No business logic inside
- command_type must end with '.request'
- command_type follows engine.domain.action.request format
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime


# ══════════════════════════════════════════════════════════════
# CANONICAL COMMAND
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Command:
    """
    Canonical command: declaration of intent awaiting judgment.

    Fields:
        command_id:     Unique identifier (UUID).
        command_type:   Namespaced type ending in '.request'
                        (e.g. 'identity.user.register.request').
        actor_id:       Identity of the actor.
        payload:        Intent data (dict). Unique fields live here.
        issued_at:      When the command was issued.
        correlation_id: Groups related commands.

    Example:
        Command(
            command_id=uuid.uuid4(),
            command_type="identity.user.register.request",
            actor_id="user-123",
            payload={"user_id": "u-1", "email": "ada@example.com"},
            issued_at=datetime.now(timezone.utc),
            correlation_id=uuid.uuid4(),
        )
    """

    command_id: uuid.UUID
    command_type: str
    actor_id: str
    payload: dict
    issued_at: datetime
    correlation_id: uuid.UUID

    def __post_init__(self):
        # ── command_id must be UUID ───────────────────────────
        if not isinstance(self.command_id, uuid.UUID):
            raise ValueError(
                f"command_id must be UUID, got {type(self.command_id).__name__}"
            )

        # ── command_type must end with .request ───────────────
        if not self.command_type or not isinstance(self.command_type, str):
            raise ValueError("command_type must be a non-empty string.")

        if not self.command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{self.command_type}' must end with "
                f"'.request' (e.g. 'identity.user.register.request')."
            )

        # ── command_type minimum 4 segments ───────────────────
        if len(self.command_type.split(".")) < 4:
            raise ValueError(
                f"command_type '{self.command_type}' must follow "
                f"engine.domain.action.request format (minimum 4 segments)."
            )

        # ── actor_id must be non-empty ────────────────────────
        if not self.actor_id or not isinstance(self.actor_id, str):
            raise ValueError("actor_id must be a non-empty string.")

        # ── payload must be dict ──────────────────────────────
        if not isinstance(self.payload, dict):
            raise TypeError("payload must be a dict.")

        if not isinstance(self.issued_at, datetime):
            raise ValueError("issued_at must be a datetime.")

        # ── correlation_id must be UUID ───────────────────────
        if not isinstance(self.correlation_id, uuid.UUID):
            raise ValueError("correlation_id must be UUID.")

    @property
    def source_engine(self) -> str:
        """identity.user.register.request → identity"""
        return self.command_type.split(".")[0]
