"""
Command Layer - Command Bus
==============================
High-level orchestration of the command lifecycle.

Flow:
    1. Dispatch command → get Outcome (middleware decides)
    2. If ACCEPTED → call the registered handler → after_dispatch hooks
    3. If the handler raises → after_failure hooks → re-raise
    4. If REJECTED → return the outcome, the handler never runs

The CommandBus orchestrates, it does not decide.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Protocol, Union

from core.commands.base import Command
from core.commands.dispatcher import CommandDispatcher
from core.commands.outcomes import CommandOutcome

logger = logging.getLogger("uniqueness.commands")


class CommandHandlerProtocol(Protocol):
    def execute(self, command: Command) -> Any:
        """Execute an accepted command."""
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# COMMAND BUS ERRORS
# ══════════════════════════════════════════════════════════════

class CommandBusError(Exception):
    """Base error for command bus operations."""
    pass


class NoHandlerRegistered(CommandBusError):
    """No handler registered for command type."""

    def __init__(self, command_type: str):
        self.command_type = command_type
        super().__init__(
            f"No handler registered for command type '{command_type}'."
        )


# ══════════════════════════════════════════════════════════════
# COMMAND BUS RESULT
# ══════════════════════════════════════════════════════════════

class CommandResult:
    """Result of CommandBus.handle(): outcome + execution result."""

    def __init__(self, outcome: CommandOutcome, execution_result: Any = None):
        self.outcome = outcome
        self.execution_result = execution_result

    @property
    def is_accepted(self) -> bool:
        return self.outcome.is_accepted

    @property
    def is_rejected(self) -> bool:
        return self.outcome.is_rejected

    @property
    def errors(self):
        return self.outcome.errors


# ══════════════════════════════════════════════════════════════
# COMMAND BUS
# ══════════════════════════════════════════════════════════════

class CommandBus:
    """
    Usage:
        bus = CommandBus(dispatcher=dispatcher)
        bus.register_handler("identity.user.register.request", user_service)

        result = bus.handle(command)
    """

    def __init__(self, dispatcher: CommandDispatcher):
        self._dispatcher = dispatcher
        self._handlers: Dict[str, CommandHandlerProtocol] = {}

    def register_handler(
        self,
        command_type: str,
        handler: Union[CommandHandlerProtocol, Callable[[Command], Any]],
    ) -> None:
        """
        Register a handler for a command type.

        Handlers have a callable .execute(), or are plain callables.
        """
        if not command_type.endswith(".request"):
            raise ValueError(
                f"command_type '{command_type}' must end with '.request'."
            )

        execute = getattr(handler, "execute", handler)
        if not callable(execute):
            raise TypeError("Handler must have callable .execute() method.")

        self._handlers[command_type] = handler
        logger.info(f"Handler registered: {command_type}")

    def handle(self, command: Command) -> CommandResult:
        outcome = self._dispatcher.dispatch(command)
        if outcome.is_rejected:
            return CommandResult(outcome=outcome)

        handler = self._handlers.get(command.command_type)
        if handler is None:
            raise NoHandlerRegistered(command.command_type)

        logger.info(
            f"Executing accepted command {command.command_id} "
            f"({command.command_type})"
        )

        execute = getattr(handler, "execute", handler)
        try:
            execution_result = execute(command)
        except Exception as exc:
            logger.info(
                f"Command {command.command_id} failed in handler: "
                f"{type(exc).__name__}: {exc}"
            )
            self._dispatcher.notify_failed(command, exc)
            raise

        self._dispatcher.notify_dispatched(command, execution_result)
        return CommandResult(outcome=outcome, execution_result=execution_result)
