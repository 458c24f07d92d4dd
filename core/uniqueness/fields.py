"""
Uniqueness Layer - Field Value Resolver
==========================================
Reads the value a uniqueness rule applies to from a command.

Single field:
    ("email", "a@x.com")

Composite field list, always in declaration order:
    ("first_name.last_name", ("ada", "lovelace"))

The composite key is derived from the ordered field ids only, so the
same list of fields yields the same key everywhere it is used.

Case folding touches str values only. Other values pass through.
Container values are frozen into hashable equivalents.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Sequence, Tuple

COMPOSITE_KEY_SEPARATOR = "."


def composite_key(field_ids: Sequence[str]) -> str:
    """Deterministic key for an ordered group of fields."""
    return COMPOSITE_KEY_SEPARATOR.join(field_ids)


def read_field(command: Any, field_id: str) -> Any:
    """
    Read a field from a command. Missing fields resolve to None.

    Mappings are read directly. Pipeline commands carry their data in
    a payload mapping. Anything else is read as an attribute.
    """
    if isinstance(command, Mapping):
        return command.get(field_id)

    payload = getattr(command, "payload", None)
    if isinstance(payload, Mapping):
        return payload.get(field_id)

    return getattr(command, field_id, None)


def should_fold(field_id: str, ignore_case: Any) -> bool:
    if ignore_case is True:
        return True
    if isinstance(ignore_case, (set, frozenset)):
        return field_id in ignore_case
    return False


def fold_case(value: Any) -> Any:
    if isinstance(value, str):
        return value.casefold()
    return value


def freeze_value(value: Any) -> Any:
    """
    Hashable form of a field value, so any value can be claimed.

    Lists and tuples become tuples, recursively. Sets and mappings
    become tuples sorted by repr, so the frozen form (and its repr) is
    the same in every process.
    """
    if isinstance(value, (list, tuple)):
        return tuple(freeze_value(item) for item in value)
    if isinstance(value, (set, frozenset)):
        return tuple(sorted((freeze_value(item) for item in value), key=repr))
    if isinstance(value, Mapping):
        return tuple(
            sorted(
                ((key, freeze_value(item)) for key, item in value.items()),
                key=repr,
            )
        )
    return value


def resolve_single(command: Any, field_id: str, ignore_case: Any) -> Any:
    value = read_field(command, field_id)
    if should_fold(field_id, ignore_case):
        value = fold_case(value)
    return freeze_value(value)


def resolve_field_value(
    command: Any,
    field_spec: Any,
    ignore_case: Any = False,
) -> Tuple[str, Any]:
    """
    Resolve (key, value) for a field spec.

    For a composite spec each member is folded by its own membership in
    ignore_case, and the values are collected in declaration order.
    """
    if isinstance(field_spec, str):
        return field_spec, resolve_single(command, field_spec, ignore_case)

    values = tuple(
        resolve_single(command, field_id, ignore_case)
        for field_id in field_spec
    )
    return composite_key(field_spec), values
