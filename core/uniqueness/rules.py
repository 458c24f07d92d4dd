"""
Uniqueness Layer - Rules Registry
====================================
Maps command types to the uniqueness rules they declare.

A rules implementation returns raw rules for one command:

    class RegisterUserRules:
        def unique(self, command):
            return [
                ("email", "has already been taken", command.payload["user_id"],
                 {"ignore_case": True}),
            ]

    registry.register("identity.user.register.request", RegisterUserRules())

Registration is explicit, keyed by the command's command_type string or
by its exact class. Unregistered commands fall back to
NoUniquenessRules, which declares nothing.

Rules:
- One implementation per command type
- Plain callables (command → rules) are accepted too
- Thread-safe
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Callable, Dict, List, Protocol, Union, runtime_checkable

from core.uniqueness.errors import DuplicateRulesError

logger = logging.getLogger("uniqueness.rules")


@runtime_checkable
class UniquenessRules(Protocol):
    def unique(self, command: Any) -> List[Any]:
        """Raw uniqueness rules for command."""
        ...  # pragma: no cover


class NoUniquenessRules:
    """Default for command types without uniqueness rules."""

    def unique(self, command: Any) -> List[Any]:
        return []


class _CallableRules:
    def __init__(self, fn: Callable[[Any], List[Any]]):
        self._fn = fn

    def unique(self, command: Any) -> List[Any]:
        return list(self._fn(command))

    def __repr__(self) -> str:
        return f"_CallableRules({getattr(self._fn, '__qualname__', self._fn)!r})"


RulesKey = Union[str, type]


class UniqueFieldsRegistry:
    def __init__(self, default: UniquenessRules = None):
        self._rules: Dict[RulesKey, UniquenessRules] = {}
        self._default = default if default is not None else NoUniquenessRules()
        self._lock = Lock()

    def register(
        self,
        command_type: RulesKey,
        rules: Union[UniquenessRules, Callable[[Any], List[Any]]],
    ) -> None:
        if not isinstance(command_type, (str, type)) or command_type == "":
            raise TypeError(
                "command_type must be a non-empty string or a class."
            )

        if not isinstance(rules, UniquenessRules):
            if not callable(rules):
                raise TypeError(
                    "rules must have a callable .unique() method "
                    "or be a callable."
                )
            rules = _CallableRules(rules)

        with self._lock:
            if command_type in self._rules:
                raise DuplicateRulesError(command_type)
            self._rules[command_type] = rules

        logger.debug(f"Uniqueness rules registered: {command_type}")

    def unregister(self, command_type: RulesKey) -> None:
        with self._lock:
            self._rules.pop(command_type, None)

    def is_registered(self, command_type: RulesKey) -> bool:
        with self._lock:
            return command_type in self._rules

    def rules_for(self, command: Any) -> UniquenessRules:
        command_type = getattr(command, "command_type", None)
        with self._lock:
            if isinstance(command_type, str) and command_type in self._rules:
                return self._rules[command_type]
            return self._rules.get(type(command), self._default)

    def unique(self, command: Any) -> List[Any]:
        """Raw rules declared for command (empty if none)."""
        return list(self.rules_for(command).unique(command))
