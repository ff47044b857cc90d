"""Proportional funding-rate controller.

The controller carries `{value, skew}` between periods. Each period it moves
the rate by the skew recorded at the previous period, integrated over elapsed
time and divided by ``k``, then clamps to ``[min, max]``:

    new_value = clamp(value + skew * elapsed / k, min, max)

`accumulate` turns that rate path into the funding owed on a notional: the
trapezoid between the old and new value up to the instant the clamp was hit,
plus the clamped value held flat for the remainder of the period.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping

from .errors import ContractViolationError
from .fixed import clamp, div, from_int, mul, muldiv
from .math import accrue
from .types import PController, check_int


@dataclass(frozen=True)
class Controller:
    value: int = 0
    skew: int = 0

    def __post_init__(self) -> None:
        check_int("value", self.value)
        check_int("skew", self.skew)

    def compute(self, params: PController, elapsed: int) -> tuple[int, int]:
        """Return ``(new_value, intercept)`` for a period of *elapsed* seconds.

        *intercept* is the Fixed6 offset into the period at which the unclamped
        path reached ``min``/``max``; the whole period when it never did.
        """
        if elapsed < 0:
            raise ContractViolationError(f"elapsed must be non-negative: {elapsed}")
        duration = from_int(elapsed)
        if elapsed == 0:
            return self.value, duration

        uncapped = self.value + div(mul(duration, self.skew), params.k)
        new_value = clamp(uncapped, params.min, params.max)

        range_ = uncapped - self.value
        if range_ == 0:
            return new_value, duration

        if self.value > params.max or self.value < params.min:
            buffer = 0
        elif range_ > 0:
            buffer = params.max - self.value
        else:
            buffer = self.value - params.min
        return new_value, min(muldiv(duration, buffer, abs(range_)), duration)

    def update(self, params: PController, elapsed: int, skew: int) -> Controller:
        """Advance the rate over *elapsed* seconds and record *skew* for next time.

        Zero elapsed time is a no-op.
        """
        if elapsed == 0:
            return self
        new_value, _ = self.compute(params, elapsed)
        return Controller(value=new_value, skew=skew)

    def accumulate(
        self,
        params: PController,
        skew: int,
        from_timestamp: int,
        to_timestamp: int,
        notional: int,
    ) -> tuple[int, Controller]:
        """Funding owed on *notional* between the two timestamps, and the next state."""
        elapsed = to_timestamp - from_timestamp
        if elapsed < 0:
            raise ContractViolationError(
                f"to_timestamp {to_timestamp} precedes from_timestamp {from_timestamp}"
            )
        if elapsed == 0:
            return 0, replace(self, skew=skew)

        new_value, intercept = self.compute(params, elapsed)

        # (value + new_value) is halved after accrual to keep the extra digit
        within = div(accrue(self.value + new_value, intercept, notional), from_int(2))
        beyond = accrue(new_value, from_int(elapsed) - intercept, notional)
        return within + beyond, Controller(value=new_value, skew=skew)


def controller_to_dict(controller: Controller) -> dict[str, int]:
    return {"value": controller.value, "skew": controller.skew}


def controller_from_dict(d: Mapping[str, Any]) -> Controller:
    return Controller(value=d["value"], skew=d["skew"])
