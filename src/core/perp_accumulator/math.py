"""Pure arithmetic for the perp accumulation engine.

Every function is stateless and operates on Fixed6 ints (see ``fixed.py``).

Rounding follows ``fixed.py``: fee and curve math truncates toward zero;
per-unit accumulator increments floor toward -inf so that a negative per-unit
charge never rounds in the payer's favour.
"""

from __future__ import annotations

from .errors import ContractViolationError
from .fixed import (
    ONE,
    SECONDS_PER_YEAR,
    checked,
    div,
    div_floor,
    from_int,
    mul,
    muldiv,
)


# -- Per-unit accumulators ---------------------------------------------------

def increment(value: int, amount: int, total: int) -> int:
    """Add ``amount / total`` (floored) to a per-unit accumulator.

    A zero *total* means nobody holds the position, so nothing is recorded.
    """
    if total == 0 or amount == 0:
        return value
    return checked(value + div_floor(amount, total))


def decrement(value: int, amount: int, total: int) -> int:
    """Subtract ``amount / total`` from a per-unit accumulator."""
    return increment(value, -amount, total)


# -- Curves ------------------------------------------------------------------

def linear_interpolation(
    start_x: int, start_y: int, end_x: int, end_y: int, target_x: int,
) -> int:
    """Y at *target_x* on the segment ``(start_x, start_y) -> (end_x, end_y)``."""
    if target_x < start_x or target_x > end_x:
        raise ContractViolationError(f"interpolation target {target_x} outside [{start_x}, {end_x}]")
    x_ratio = div(target_x - start_x, end_x - start_x)
    return checked(mul(end_y - start_y, x_ratio) + start_y)


def jump_rate(
    min_rate: int, max_rate: int, target_rate: int, target_utilization: int, utilization: int,
) -> int:
    """Annualized rate of a two-segment utilization curve.

    ``min -> target`` below the target utilization, ``target -> max`` up to full
    utilization, flat ``max`` beyond it.
    """
    if utilization < target_utilization:
        return linear_interpolation(0, min_rate, target_utilization, target_rate, utilization)
    if utilization < ONE:
        return linear_interpolation(target_utilization, target_rate, ONE, max_rate, utilization)
    return max_rate


def accrue(rate: int, duration: int, notional: int) -> int:
    """Amount owed at annual *rate* on *notional* over *duration* (Fixed6 seconds)."""
    return div(mul(mul(rate, duration), notional), from_int(SECONDS_PER_YEAR))


# -- Trade fees --------------------------------------------------------------

def linear_fee(size: int, price: int, rate: int) -> int:
    """``|size| * |price| * rate``."""
    return mul(mul(abs(size), abs(price)), rate)


def proportional_fee(size: int, price: int, rate: int, scale: int) -> int:
    """``|size| * |price| * (|size| / scale) * rate``; zero when *scale* is zero."""
    if scale == 0:
        return 0
    return mul(muldiv(mul(abs(size), abs(price)), abs(size), scale), rate)


def adiabatic_fee(scale: int, rate: int, latest: int, change: int, price: int) -> int:
    """Integral of a linear impact curve from *latest* to ``latest + change``.

    ``change * |price| * rate * (latest/scale + (latest+change)/scale) / 2``.
    Negative when *change* moves the coordinate back toward zero.
    """
    if scale == 0 or change == 0:
        return 0
    latest_scaled = div(latest, scale)
    change_scaled = div(change, scale)
    mean = div(mul(latest_scaled + latest_scaled + change_scaled, rate), from_int(2))
    return mul(mul(change, abs(price)), mean)


def taker_exposure(scale: int, rate: int, skew: int) -> int:
    """Adiabatic fee outstanding at *skew*, valued at a price of one."""
    return adiabatic_fee(scale, rate, 0, skew, ONE)


def maker_coordinate(scale: int, maker: int) -> int:
    """Distance of *maker* from a full scale of maker liquidity (never negative)."""
    return max(scale - maker, 0)


def maker_exposure(scale: int, rate: int, maker: int) -> int:
    """Adiabatic fee outstanding for *maker* liquidity, valued at a price of one."""
    latest = maker_coordinate(scale, 0)
    return adiabatic_fee(scale, rate, latest, maker_coordinate(scale, maker) - latest, ONE)
