"""Fixed-point decimal arithmetic with 6 fractional digits.

Values are plain Python ints scaled by ``BASE`` (1e6): ``1_500_000`` is 1.5.
Two domains are used:

- ``Fixed6``: signed, within ``[MIN_FIXED6, MAX_FIXED6]``.
- ``UFixed6``: unsigned, within ``[0, MAX_UFIXED6]``.

Rounding is explicit. ``mul`` / ``div`` / ``muldiv`` truncate toward zero, the
way fixed-point libraries on 256-bit integers do. ``div_floor`` rounds toward
-inf and is what per-unit accumulators use. Every result passes through
``checked`` so that an out-of-range value raises instead of wrapping.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from .errors import FixedPointOverflowError

BASE: int = 1_000_000
DECIMALS: int = 6

ZERO: int = 0
ONE: int = BASE
NEG_ONE: int = -BASE

MAX_FIXED6: int = 2**255 - 1
MIN_FIXED6: int = -(2**255)
MAX_UFIXED6: int = 2**256 - 1

SECONDS_PER_YEAR: int = 365 * 24 * 60 * 60


# -- Range checks ------------------------------------------------------------

def checked(x: int) -> int:
    """Return *x* if it fits in a signed Fixed6, else raise."""
    if x < MIN_FIXED6 or x > MAX_FIXED6:
        raise FixedPointOverflowError(f"Fixed6 out of range: {x}")
    return x


def checked_unsigned(x: int) -> int:
    """Return *x* if it fits in a UFixed6, else raise (negative included)."""
    if x < 0 or x > MAX_UFIXED6:
        raise FixedPointOverflowError(f"UFixed6 out of range: {x}")
    return x


# -- Construction ------------------------------------------------------------

def from_int(n: int) -> int:
    """Whole number *n* as Fixed6 (``from_int(3) == 3_000_000``)."""
    return checked(n * BASE)


def parse(text: str | int) -> int:
    """Parse a decimal string such as ``"0.02"`` or ``"-40000"`` exactly.

    More than 6 fractional digits is rejected rather than rounded.
    """
    if isinstance(text, bool):
        raise TypeError("fixed-point literal must be str or int, not bool")
    if isinstance(text, int):
        return from_int(text)
    if not isinstance(text, str):
        raise TypeError(f"fixed-point literal must be str or int, got {type(text).__name__}")
    try:
        d = Decimal(text.strip())
    except InvalidOperation:
        raise ValueError(f"not a decimal literal: {text!r}") from None
    if not d.is_finite():
        raise ValueError(f"not a finite decimal: {text!r}")
    scaled = d.scaleb(DECIMALS)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"more than {DECIMALS} fractional digits: {text!r}")
    return checked(int(scaled))


def to_str(x: int) -> str:
    """Canonical decimal text of a Fixed6 (inverse of ``parse``)."""
    sign = "-" if x < 0 else ""
    whole, frac = divmod(abs(x), BASE)
    if frac == 0:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac:06d}".rstrip("0")


# -- Arithmetic --------------------------------------------------------------

def _div_trunc(a: int, b: int) -> int:
    q = abs(a) // abs(b)
    return -q if (a < 0) != (b < 0) else q


def mul(a: int, b: int) -> int:
    """``a * b`` truncated toward zero."""
    return checked(_div_trunc(a * b, BASE))


def div(a: int, b: int) -> int:
    """``a / b`` truncated toward zero. Division by zero raises."""
    if b == 0:
        raise ZeroDivisionError("Fixed6 division by zero")
    return checked(_div_trunc(a * BASE, b))


def div_floor(a: int, b: int) -> int:
    """``a / b`` rounded toward -inf."""
    if b == 0:
        raise ZeroDivisionError("Fixed6 division by zero")
    return checked((a * BASE) // b)


def muldiv(a: int, b: int, c: int) -> int:
    """``a * b / c`` with a single truncation (no intermediate rounding)."""
    if c == 0:
        raise ZeroDivisionError("Fixed6 muldiv by zero")
    return checked(_div_trunc(a * b, c))


def unsafe_div(a: int, b: int) -> int:
    """Unsigned division that never raises: ``0/0 = 1`` and ``x/0 = max``."""
    if b == 0:
        return ONE if a == 0 else MAX_UFIXED6
    return checked_unsigned(_div_trunc(a * BASE, b))


def sub_unsigned(a: int, b: int) -> int:
    """``a - b`` in the unsigned domain; underflow raises."""
    return checked_unsigned(a - b)


def sign(x: int) -> int:
    return (x > 0) - (x < 0)


def clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(x, hi))
