"""
Command Layer - Command Dispatcher
=====================================
Accept Command → run middleware → produce Outcome.

The Dispatcher is the DECISION MAKER. It decides ACCEPTED or REJECTED.
It does not execute handlers (that is the CommandBus).

Middleware is pluggable. Each middleware exposes:

    before_dispatch(command) → Optional[RejectionReason]
    after_dispatch(command, result) → None
    after_failure(command, error) → None

Middleware runs in registration order. The first rejection halts the
pipeline. A middleware that checks several rules reports all of its
own violations in one RejectionReason.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional, Protocol, runtime_checkable

from core.commands.base import Command
from core.commands.outcomes import CommandOutcome
from core.commands.rejection import RejectionReason

logger = logging.getLogger("uniqueness.commands")


# ══════════════════════════════════════════════════════════════
# MIDDLEWARE PROTOCOL
# ══════════════════════════════════════════════════════════════

@runtime_checkable
class CommandMiddleware(Protocol):
    def before_dispatch(self, command: Command) -> Optional[RejectionReason]:
        """None lets the command through; a RejectionReason halts it."""
        ...  # pragma: no cover

    def after_dispatch(self, command: Command, result: Any) -> None:
        ...  # pragma: no cover

    def after_failure(self, command: Command, error: BaseException) -> None:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# COMMAND DISPATCHER
# ══════════════════════════════════════════════════════════════

class CommandDispatcher:
    """
    Evaluate a command through the middleware pipeline.

    Usage:
        dispatcher = CommandDispatcher()
        dispatcher.register_middleware(uniqueness_middleware)

        outcome = dispatcher.dispatch(command)
        # outcome.is_accepted or outcome.errors
    """

    def __init__(self) -> None:
        self._middleware: List[CommandMiddleware] = []

    @property
    def middleware(self) -> List[CommandMiddleware]:
        return list(self._middleware)

    def register_middleware(self, middleware: CommandMiddleware) -> None:
        if not isinstance(middleware, CommandMiddleware):
            raise TypeError(
                f"Middleware must implement before_dispatch, after_dispatch "
                f"and after_failure, got {type(middleware).__name__}."
            )
        self._middleware.append(middleware)
        logger.debug(f"Middleware registered: {type(middleware).__name__}")

    # ══════════════════════════════════════════════════════════
    # DISPATCH
    # ══════════════════════════════════════════════════════════

    def dispatch(self, command: Command) -> CommandOutcome:
        """
        Run before_dispatch of every middleware until one rejects.

        Returns:
            CommandOutcome, never None.
        """
        now = datetime.now(timezone.utc)

        for middleware in self._middleware:
            rejection = middleware.before_dispatch(command)
            if rejection is None:
                continue

            if not isinstance(rejection, RejectionReason):
                raise TypeError(
                    f"Middleware must return RejectionReason or None, "
                    f"got {type(rejection).__name__}."
                )

            logger.info(
                f"Command {command.command_id} rejected by "
                f"'{rejection.policy_name}': "
                f"[{rejection.code}] {rejection.message}"
            )
            return CommandOutcome.rejected(command.command_id, rejection, now)

        logger.info(f"Command {command.command_id} ACCEPTED")
        return CommandOutcome.accepted(command.command_id, now)

    # ══════════════════════════════════════════════════════════
    # AFTER HOOKS
    # ══════════════════════════════════════════════════════════

    def notify_dispatched(self, command: Command, result: Any) -> None:
        for middleware in self._middleware:
            middleware.after_dispatch(command, result)

    def notify_failed(self, command: Command, error: BaseException) -> None:
        for middleware in self._middleware:
            middleware.after_failure(command, error)
