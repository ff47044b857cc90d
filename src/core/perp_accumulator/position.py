"""Aggregate (market-wide) position and its derived metrics.

`AggregatePosition` holds maker/long/short open interest at a timestamp. All
metrics are pure functions of those three magnitudes; nothing here can fail for
valid input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Mapping

from .fixed import NEG_ONE, ONE, checked_unsigned, clamp, div, mul, unsafe_div
from .types import check_unsigned

if TYPE_CHECKING:
    from .order import OrderDelta


@dataclass(frozen=True)
class AggregatePosition:
    timestamp: int = 0
    maker: int = 0
    long: int = 0
    short: int = 0

    def __post_init__(self) -> None:
        check_unsigned("timestamp", self.timestamp)
        check_unsigned("maker", self.maker)
        check_unsigned("long", self.long)
        check_unsigned("short", self.short)

    # -- Sides ---------------------------------------------------------------

    @property
    def major(self) -> int:
        return max(self.long, self.short)

    @property
    def minor(self) -> int:
        return min(self.long, self.short)

    @property
    def skew(self) -> int:
        """Net taker exposure ``long - short`` (unscaled)."""
        return self.long - self.short

    @property
    def magnitude(self) -> int:
        """Size of a single-side (local) position: whichever side is non-zero."""
        return self.maker + self.long + self.short

    def relative_skew(self, scale: int) -> int:
        """``skew / scale`` clamped to [-1, 1]; zero when *scale* is zero."""
        if scale == 0:
            return 0
        return clamp(div(self.skew, scale), NEG_ONE, ONE)

    # -- Utilization ---------------------------------------------------------

    def utilization(self, efficiency_limit: int = 0) -> int:
        """Share of maker liquidity consumed by the taker imbalance, capped at one.

        The larger of net utilization ``major / (maker + minor)`` and the
        efficiency-limited ``major * efficiency_limit / maker``. With no makers
        the market is fully utilized.
        """
        net = unsafe_div(self.major, self.maker + self.minor)
        efficiency = unsafe_div(mul(self.major, efficiency_limit), self.maker)
        return min(max(net, efficiency), ONE)

    @property
    def efficiency(self) -> int:
        """``min(1, maker / major)``; one when there is no taker interest."""
        if self.major == 0:
            return ONE
        return min(unsafe_div(self.maker, self.major), ONE)

    # -- Socialization -------------------------------------------------------

    @property
    def socialized(self) -> bool:
        """True when the major side exceeds what makers and the minor side can cover."""
        return self.maker + self.minor < self.major

    @property
    def long_socialized(self) -> int:
        return min(self.long, self.maker + self.short)

    @property
    def short_socialized(self) -> int:
        return min(self.short, self.maker + self.long)

    @property
    def taker_socialized(self) -> int:
        return min(self.major, self.minor + self.maker)

    @property
    def socialized_maker_portion(self) -> int:
        """Share of the minor side's funding that is forwarded to makers."""
        if self.taker_socialized == 0:
            return 0
        return div(self.taker_socialized - self.minor, self.taker_socialized)

    # -- Transition ----------------------------------------------------------

    def apply(self, order: OrderDelta, timestamp: int | None = None) -> AggregatePosition:
        """Return the position after *order*, stamped with *timestamp* (or the order's)."""
        return AggregatePosition(
            timestamp=order.timestamp if timestamp is None else timestamp,
            maker=checked_unsigned(self.maker + order.maker_pos - order.maker_neg),
            long=checked_unsigned(self.long + order.long_pos - order.long_neg),
            short=checked_unsigned(self.short + order.short_pos - order.short_neg),
        )


def position_to_dict(position: AggregatePosition) -> dict[str, int]:
    return {
        "timestamp": position.timestamp,
        "maker": position.maker,
        "long": position.long,
        "short": position.short,
    }


def position_from_dict(d: Mapping[str, Any]) -> AggregatePosition:
    """Raises KeyError on missing fields."""
    return AggregatePosition(
        timestamp=d["timestamp"], maker=d["maker"], long=d["long"], short=d["short"],
    )
