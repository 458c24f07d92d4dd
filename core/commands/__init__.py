"""
Command Layer
================
Every action begins as a Command.
Every dispatched Command produces exactly one Outcome.
Middleware (such as the uniqueness middleware) decides the Outcome.
"""

from core.commands.base import Command
from core.commands.outcomes import (
    CommandOutcome,
    CommandStatus,
)
from core.commands.rejection import (
    ReasonCode,
    RejectionReason,
)
from core.commands.dispatcher import (
    CommandDispatcher,
    CommandMiddleware,
)
from core.commands.bus import (
    CommandBus,
    CommandBusError,
    CommandResult,
    NoHandlerRegistered,
)

__all__ = [
    # ── Base ──────────────────────────────────────────────────
    "Command",
    # ── Outcomes ──────────────────────────────────────────────
    "CommandOutcome",
    "CommandStatus",
    # ── Rejection ─────────────────────────────────────────────
    "RejectionReason",
    "ReasonCode",
    # ── Dispatcher ────────────────────────────────────────────
    "CommandDispatcher",
    "CommandMiddleware",
    # ── Bus ────────────────────────────────────────────────────
    "CommandBus",
    "CommandBusError",
    "CommandResult",
    "NoHandlerRegistered",
]
