"""Exception types for the perp accumulation engine.

Raised at the package seams: fixed-point helpers in ``fixed.py``, dataclass
validation in ``types.py`` / ``position.py`` / ``order.py``, and the
post-step conservation check in ``engine.py``.
"""

from __future__ import annotations


class FixedPointOverflowError(ArithmeticError):
    """Raised when a fixed-point result falls outside its representable range."""


class ContractViolationError(ValueError):
    """Raised when a caller passes input outside the engine's contract."""


class AccumulationInvariantError(Exception):
    """Raised when an accumulation result violates one or more invariants."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = violations
        super().__init__(f"invariant violations: {', '.join(violations)}")
