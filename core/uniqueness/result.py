"""
Uniqueness Layer - Result Models
===================================
UniquenessViolation: one failed rule (label + message).
UniquenessResult: outcome of one evaluation, OK or REJECTED.

Pure data. A rejected result always carries at least one violation,
in rule order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class UniquenessViolation:
    label: str
    message: str

    def to_tuple(self) -> Tuple[str, str]:
        return (self.label, self.message)

    def to_dict(self) -> dict:
        return {"label": self.label, "message": self.message}


@dataclass(frozen=True)
class UniquenessResult:
    """
    Outcome of ensure_uniqueness.

    violations is empty for OK and non-empty for REJECTED.
    """

    violations: Tuple[UniquenessViolation, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "violations", tuple(self.violations))
        for violation in self.violations:
            if not isinstance(violation, UniquenessViolation):
                raise TypeError(
                    f"violations must be UniquenessViolation, "
                    f"got {type(violation).__name__}."
                )

    @classmethod
    def ok(cls) -> "UniquenessResult":
        return cls()

    @classmethod
    def rejected(
        cls, violations: Iterable[UniquenessViolation]
    ) -> "UniquenessResult":
        violations = tuple(violations)
        if not violations:
            raise ValueError("REJECTED result must include violations.")
        return cls(violations=violations)

    @property
    def is_ok(self) -> bool:
        return not self.violations

    @property
    def is_rejected(self) -> bool:
        return bool(self.violations)

    @property
    def errors(self) -> List[Tuple[str, str]]:
        """Violations as (label, message) pairs."""
        return [v.to_tuple() for v in self.violations]
