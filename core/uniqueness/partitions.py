"""
Uniqueness Layer - Partition Resolver
========================================
Picks the namespace a claim lives in.

Order of precedence, evaluated per rule:
    1. explicit partition option
    2. the command type, when use_command_as_partition is enabled
    3. the default partition
"""

from __future__ import annotations

from typing import Any, Hashable

DEFAULT_PARTITION = "core.uniqueness"


def command_type_of(command: Any) -> str:
    """
    Runtime type identifier of a command.

    Pipeline commands declare their own command_type. Other objects
    are identified by their class.
    """
    command_type = getattr(command, "command_type", None)
    if isinstance(command_type, str) and command_type:
        return command_type

    cls = type(command)
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_partition(
    options: Any,
    command: Any,
    use_command_as_partition: bool = False,
    default_partition: Hashable = DEFAULT_PARTITION,
) -> Hashable:
    if options.partition is not None:
        return options.partition
    if use_command_as_partition:
        return command_type_of(command)
    return default_partition
