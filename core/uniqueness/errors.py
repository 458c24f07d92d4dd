"""
Uniqueness Layer - Errors
============================
Programming and configuration errors for the uniqueness layer.

These are raised, never aggregated. Claim conflicts are NOT errors:
they flow through UniquenessResult as violations.
"""

from __future__ import annotations


class UniquenessError(Exception):
    """Base error for uniqueness layer operations."""
    pass


class InvalidDescriptor(UniquenessError):
    """A uniqueness rule has the wrong shape or an invalid option."""

    def __init__(self, descriptor: object, reason: str):
        self.descriptor = descriptor
        self.reason = reason
        super().__init__(
            f"Invalid uniqueness descriptor {descriptor!r}: {reason}"
        )


class ExternalCheckMisconfigured(UniquenessError):
    """The is_unique option is not a callable taking 4 arguments."""

    def __init__(self, checker: object):
        self.checker = checker
        super().__init__(
            f"The 'is_unique' option has incorrect value {checker!r}. "
            f"It should be only a callable with 4 arguments "
            f"(key, value, owner, options)."
        )


class DuplicateRulesError(UniquenessError):
    """Uniqueness rules already registered for this command type."""

    def __init__(self, command_type: object):
        self.command_type = command_type
        super().__init__(
            f"Uniqueness rules already registered for '{command_type}'."
        )


class UniquenessConfigError(UniquenessError):
    """Uniqueness settings cannot be turned into a configuration."""

    def __init__(self, setting: str, reason: str):
        self.setting = setting
        self.reason = reason
        super().__init__(f"Setting '{setting}' is invalid: {reason}")
