"""
Uniqueness Layer - Descriptor Normalizer
===========================================
Canonicalizes raw uniqueness rules into UniquenessDescriptor records.

A raw rule is what a command's rules implementation returns:
    (field_spec, error_message, owner)
    (field_spec, error_message, owner, options)

field_spec is a field id ("email") or an ordered list of field ids
(["first_name", "last_name"]) for a composite key.

options is a UniqueOptions, a keyword mapping, or None.

Normalization is pure. A malformed rule is a programming error and
raises InvalidDescriptor (or ExternalCheckMisconfigured for a bad
is_unique callback). It never becomes a validation failure.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any, Callable, FrozenSet, Hashable, List, Optional, Tuple, Union

from core.uniqueness.errors import ExternalCheckMisconfigured, InvalidDescriptor
from core.uniqueness.fields import composite_key


FieldSpec = Union[str, Tuple[str, ...]]
IgnoreCase = Union[bool, FrozenSet[str]]

# (key, value, owner, options) -> bool
ExternalVerifier = Callable[[Any, Any, Any, "UniqueOptions"], bool]


def _accepts_four_arguments(checker: Any) -> bool:
    if not callable(checker):
        return False
    try:
        signature = inspect.signature(checker)
    except (TypeError, ValueError):
        # Some builtins expose no signature; trust them.
        return True
    try:
        signature.bind(None, None, None, None)
    except TypeError:
        return False
    return True


# ══════════════════════════════════════════════════════════════
# OPTIONS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UniqueOptions:
    """
    Typed option set for one uniqueness rule.

    Fields:
        ignore_case: True folds every value; a set of field ids folds
                     only those fields (useful for composite keys).
        label:       Error label. Defaults to the field id / composite key.
        is_unique:   External verifier (key, value, owner, options) -> bool,
                     run after a successful claim.
        partition:   Explicit partition for this rule.
        no_owner:    Claim (key, value) in the partition without an owner.
                     Such claims are released by value only.
    """

    ignore_case: IgnoreCase = False
    label: Optional[str] = None
    is_unique: Optional[ExternalVerifier] = None
    partition: Optional[Hashable] = None
    no_owner: bool = False

    def __post_init__(self):
        if not isinstance(self.no_owner, bool):
            raise InvalidDescriptor(
                self, "no_owner option can only be either True or False."
            )

        if not isinstance(self.ignore_case, (bool, frozenset)):
            if isinstance(self.ignore_case, str) or not isinstance(
                self.ignore_case, Iterable
            ):
                raise InvalidDescriptor(
                    self,
                    "ignore_case must be a bool or a collection of field ids.",
                )
            object.__setattr__(self, "ignore_case", frozenset(self.ignore_case))

        if self.label is not None and not isinstance(self.label, str):
            raise InvalidDescriptor(self, "label must be a string.")

        if self.is_unique is not None and not _accepts_four_arguments(
            self.is_unique
        ):
            raise ExternalCheckMisconfigured(self.is_unique)

    @classmethod
    def from_mapping(cls, options: Mapping) -> "UniqueOptions":
        """Build options from a keyword mapping. Unknown keys are rejected."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(str(k) for k in options if k not in known)
        if unknown:
            raise InvalidDescriptor(
                dict(options), f"unknown option(s): {', '.join(unknown)}."
            )
        return cls(**dict(options))


# ══════════════════════════════════════════════════════════════
# DESCRIPTOR
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class UniquenessDescriptor:
    """
    Canonical 4-part uniqueness rule.

    Invariant: a composite field_spec is a tuple of at least two ids.
    """

    field_spec: FieldSpec
    error_message: str
    owner: Any = None
    options: UniqueOptions = field(default_factory=UniqueOptions)

    @property
    def is_composite(self) -> bool:
        return isinstance(self.field_spec, tuple)

    @property
    def key(self) -> str:
        """Claim key: the field id, or the composite key of the fields."""
        if self.is_composite:
            return composite_key(self.field_spec)
        return self.field_spec

    @property
    def label(self) -> str:
        if self.options.label is not None:
            return self.options.label
        return self.key


# ══════════════════════════════════════════════════════════════
# NORMALIZATION
# ══════════════════════════════════════════════════════════════

def _normalize_field_spec(raw: Any, field_spec: Any) -> FieldSpec:
    if isinstance(field_spec, str):
        if not field_spec:
            raise InvalidDescriptor(raw, "field id must be a non-empty string.")
        return field_spec

    if isinstance(field_spec, (list, tuple)):
        if not field_spec:
            raise InvalidDescriptor(raw, "field list must not be empty.")
        for field_id in field_spec:
            if not isinstance(field_id, str) or not field_id:
                raise InvalidDescriptor(
                    raw, "field ids must be non-empty strings."
                )
        if len(field_spec) == 1:
            return field_spec[0]
        return tuple(field_spec)

    raise InvalidDescriptor(
        raw, "field spec must be a field id or a list of field ids."
    )


def _normalize_options(raw: Any, options: Any) -> UniqueOptions:
    if options is None:
        return UniqueOptions()
    if isinstance(options, UniqueOptions):
        return options
    if isinstance(options, Mapping):
        return UniqueOptions.from_mapping(options)
    raise InvalidDescriptor(
        raw, "options must be UniqueOptions, a mapping or None."
    )


def normalize_descriptor(raw: Any) -> UniquenessDescriptor:
    """
    Expand a raw rule into a UniquenessDescriptor.

    3-tuples get empty options. Descriptors pass through untouched.
    """
    if isinstance(raw, UniquenessDescriptor):
        return raw

    if not isinstance(raw, tuple) or len(raw) not in (3, 4):
        raise InvalidDescriptor(
            raw,
            "expected (field_spec, error_message, owner) "
            "or (field_spec, error_message, owner, options).",
        )

    field_spec, error_message, owner = raw[:3]
    options = raw[3] if len(raw) == 4 else None

    if not isinstance(error_message, str):
        raise InvalidDescriptor(raw, "error message must be a string.")

    return UniquenessDescriptor(
        field_spec=_normalize_field_spec(raw, field_spec),
        error_message=error_message,
        owner=owner,
        options=_normalize_options(raw, options),
    )


def normalize_descriptors(raws: Iterable[Any]) -> List[UniquenessDescriptor]:
    """Normalize every rule up front, before anything is claimed."""
    return [normalize_descriptor(raw) for raw in raws]
