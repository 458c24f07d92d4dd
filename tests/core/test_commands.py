"""
Command Layer - Tests
========================
Command structure, outcomes, rejection model, dispatcher middleware
chain and the command bus.

Scenarios:
1. Valid command → ACCEPTED
2. Invalid structure → ValueError / TypeError at construction
3. Middleware rejection → REJECTED outcome, handler skipped
4. First rejecting middleware wins
5. After hooks run on success and on handler failure
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

import pytest

from core.commands.base import Command
from core.commands.bus import CommandBus, CommandResult, NoHandlerRegistered
from core.commands.dispatcher import CommandDispatcher
from core.commands.outcomes import CommandOutcome, CommandStatus
from core.commands.rejection import ReasonCode, RejectionReason


# ══════════════════════════════════════════════════════════════
# TEST INFRASTRUCTURE - STUBS
# ══════════════════════════════════════════════════════════════

class StubMiddleware:
    """Middleware that rejects when told to and records hook calls."""

    def __init__(self, name: str, reject: bool = False):
        self.name = name
        self.reject = reject
        self.seen = []
        self.dispatched = []
        self.failed = []

    def before_dispatch(self, command) -> Optional[RejectionReason]:
        self.seen.append(command.command_id)
        if not self.reject:
            return None
        return RejectionReason(
            code=ReasonCode.VALIDATION_FAILURE,
            message=f"{self.name} said no",
            policy_name=self.name,
            details=(("field", f"{self.name} said no"),),
        )

    def after_dispatch(self, command, result) -> None:
        self.dispatched.append(result)

    def after_failure(self, command, error) -> None:
        self.failed.append(error)


class StubEngineService:
    def __init__(self, return_value: Any = "executed", error: Exception = None):
        self.executed_commands = []
        self.return_value = return_value
        self.error = error

    def execute(self, command: Command) -> Any:
        self.executed_commands.append(command)
        if self.error is not None:
            raise self.error
        return self.return_value


# ══════════════════════════════════════════════════════════════
# FIXTURES
# ══════════════════════════════════════════════════════════════

def _command(**overrides):
    fields = dict(
        command_id=uuid.uuid4(),
        command_type="identity.user.register.request",
        actor_id="user-123",
        payload={"email": "ada@example.com"},
        issued_at=datetime.now(timezone.utc),
        correlation_id=uuid.uuid4(),
    )
    fields.update(overrides)
    return Command(**fields)


@pytest.fixture
def valid_command():
    return _command()


@pytest.fixture
def dispatcher():
    return CommandDispatcher()


@pytest.fixture
def engine_service():
    return StubEngineService()


@pytest.fixture
def command_bus(dispatcher):
    return CommandBus(dispatcher=dispatcher)


# ══════════════════════════════════════════════════════════════
# COMMAND STRUCTURE
# ══════════════════════════════════════════════════════════════

class TestCommandStructure:
    def test_valid_command(self, valid_command):
        assert valid_command.source_engine == "identity"

    def test_frozen(self, valid_command):
        with pytest.raises(AttributeError):
            valid_command.command_type = "x.y.z.request"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"command_id": "not-a-uuid"},
            {"command_type": ""},
            {"command_type": "identity.user.register"},
            {"command_type": "identity.register.request"},
            {"actor_id": ""},
            {"issued_at": "yesterday"},
            {"correlation_id": None},
        ],
    )
    def test_invalid_structure(self, overrides):
        with pytest.raises(ValueError):
            _command(**overrides)

    def test_payload_must_be_dict(self):
        with pytest.raises(TypeError):
            _command(payload=["email"])


# ══════════════════════════════════════════════════════════════
# REJECTION + OUTCOME
# ══════════════════════════════════════════════════════════════

class TestRejectionReason:
    def test_to_dict(self):
        reason = RejectionReason(
            code=ReasonCode.VALIDATION_FAILURE,
            message="Uniqueness violated: email.",
            policy_name="uniqueness",
            details=[("email", "has already been taken")],
        )
        assert reason.details == (("email", "has already been taken"),)
        assert reason.to_dict() == {
            "code": "VALIDATION_FAILURE",
            "message": "Uniqueness violated: email.",
            "policy_name": "uniqueness",
            "details": [{"label": "email", "message": "has already been taken"}],
        }

    @pytest.mark.parametrize("field", ["code", "message", "policy_name"])
    def test_fields_required(self, field):
        values = {"code": "X", "message": "m", "policy_name": "p", field: ""}
        with pytest.raises(ValueError):
            RejectionReason(**values)

    def test_details_must_be_pairs(self):
        with pytest.raises(ValueError):
            RejectionReason("X", "m", "p", details=(("only-label",),))


class TestCommandOutcome:
    def test_rejected_requires_reason(self):
        with pytest.raises(ValueError):
            CommandOutcome(uuid.uuid4(), CommandStatus.REJECTED, None,
                           datetime.now(timezone.utc))

    def test_accepted_forbids_reason(self):
        reason = RejectionReason("X", "m", "p")
        with pytest.raises(ValueError):
            CommandOutcome(uuid.uuid4(), CommandStatus.ACCEPTED, reason,
                           datetime.now(timezone.utc))

    def test_errors_from_details(self):
        reason = RejectionReason("X", "m", "p", details=(("email", "taken"),))
        outcome = CommandOutcome.rejected(uuid.uuid4(), reason, datetime.now(timezone.utc))
        assert outcome.is_rejected
        assert outcome.errors == [("email", "taken")]

    def test_accepted_has_no_errors(self):
        outcome = CommandOutcome.accepted(uuid.uuid4(), datetime.now(timezone.utc))
        assert outcome.is_accepted
        assert outcome.errors == []


# ══════════════════════════════════════════════════════════════
# DISPATCHER
# ══════════════════════════════════════════════════════════════

class TestDispatcher:
    def test_no_middleware_accepts(self, dispatcher, valid_command):
        outcome = dispatcher.dispatch(valid_command)
        assert outcome.is_accepted
        assert outcome.command_id == valid_command.command_id

    def test_rejection(self, dispatcher, valid_command):
        dispatcher.register_middleware(StubMiddleware("uniqueness", reject=True))

        outcome = dispatcher.dispatch(valid_command)

        assert outcome.is_rejected
        assert outcome.reason.policy_name == "uniqueness"

    def test_first_rejection_wins(self, dispatcher, valid_command):
        first = StubMiddleware("first", reject=True)
        second = StubMiddleware("second", reject=True)
        dispatcher.register_middleware(first)
        dispatcher.register_middleware(second)

        outcome = dispatcher.dispatch(valid_command)

        assert outcome.reason.policy_name == "first"
        assert second.seen == []

    def test_middleware_runs_in_order(self, dispatcher, valid_command):
        first = StubMiddleware("first")
        second = StubMiddleware("second", reject=True)
        dispatcher.register_middleware(first)
        dispatcher.register_middleware(second)

        outcome = dispatcher.dispatch(valid_command)

        assert first.seen == [valid_command.command_id]
        assert outcome.reason.policy_name == "second"

    def test_register_rejects_non_middleware(self, dispatcher):
        with pytest.raises(TypeError):
            dispatcher.register_middleware(lambda command: None)

    def test_bad_middleware_return(self, dispatcher, valid_command):
        class Broken(StubMiddleware):
            def before_dispatch(self, command):
                return "no"

        dispatcher.register_middleware(Broken("broken"))
        with pytest.raises(TypeError):
            dispatcher.dispatch(valid_command)


# ══════════════════════════════════════════════════════════════
# BUS
# ══════════════════════════════════════════════════════════════

class TestCommandBus:
    def test_accepted_executes_handler(self, command_bus, engine_service, valid_command):
        command_bus.register_handler(valid_command.command_type, engine_service)

        result = command_bus.handle(valid_command)

        assert isinstance(result, CommandResult)
        assert result.is_accepted
        assert result.execution_result == "executed"
        assert engine_service.executed_commands == [valid_command]

    def test_plain_callable_handler(self, command_bus, valid_command):
        command_bus.register_handler(valid_command.command_type, lambda c: c.actor_id)
        assert command_bus.handle(valid_command).execution_result == "user-123"

    def test_rejected_skips_handler(self, dispatcher, command_bus, engine_service,
                                    valid_command):
        dispatcher.register_middleware(StubMiddleware("uniqueness", reject=True))
        command_bus.register_handler(valid_command.command_type, engine_service)

        result = command_bus.handle(valid_command)

        assert result.is_rejected
        assert result.errors == [("field", "uniqueness said no")]
        assert engine_service.executed_commands == []

    def test_no_handler(self, command_bus, valid_command):
        with pytest.raises(NoHandlerRegistered):
            command_bus.handle(valid_command)

    def test_register_requires_request_suffix(self, command_bus, engine_service):
        with pytest.raises(ValueError):
            command_bus.register_handler("identity.user.register", engine_service)

    def test_register_requires_callable(self, command_bus):
        with pytest.raises(TypeError):
            command_bus.register_handler("identity.user.register.request", object())

    def test_after_dispatch_called(self, dispatcher, command_bus, engine_service,
                                   valid_command):
        middleware = StubMiddleware("audit")
        dispatcher.register_middleware(middleware)
        command_bus.register_handler(valid_command.command_type, engine_service)

        command_bus.handle(valid_command)

        assert middleware.dispatched == ["executed"]
        assert middleware.failed == []

    def test_after_failure_called_and_error_raised(self, dispatcher, command_bus,
                                                   valid_command):
        middleware = StubMiddleware("audit")
        dispatcher.register_middleware(middleware)
        error = RuntimeError("boom")
        command_bus.register_handler(
            valid_command.command_type, StubEngineService(error=error)
        )

        with pytest.raises(RuntimeError):
            command_bus.handle(valid_command)

        assert middleware.failed == [error]
        assert middleware.dispatched == []
