"""Per-period order deltas.

An `OrderDelta` is the net change requested against the aggregate position in
one settlement period. Each side is carried as a Pos/Neg pair of magnitudes so
that both the net effect and the gross traded volume survive aggregation.

Taker legs are named by the direction they move skew (``long - short``):
- taker Pos leg = ``long_pos + short_neg`` (skew up),
- taker Neg leg = ``long_neg + short_pos`` (skew down).
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import TYPE_CHECKING

from .fixed import mul
from .types import check_bool, check_int, check_unsigned

if TYPE_CHECKING:
    from .position import AggregatePosition
    from .types import MarketParameter

_MAGNITUDE_FIELDS: tuple[str, ...] = (
    "maker_pos",
    "maker_neg",
    "long_pos",
    "long_neg",
    "short_pos",
    "short_neg",
)


@dataclass(frozen=True)
class OrderDelta:
    timestamp: int = 0
    orders: int = 0
    maker_pos: int = 0
    maker_neg: int = 0
    long_pos: int = 0
    long_neg: int = 0
    short_pos: int = 0
    short_neg: int = 0
    collateral: int = 0
    maker_referral: int = 0
    taker_referral: int = 0
    protected: bool = False
    invalidation: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            name = f.name
            if name == "protected":
                check_bool(name, self.protected)
            elif name == "collateral":
                check_int(name, self.collateral)
            else:
                check_unsigned(name, getattr(self, name))

    @classmethod
    def from_intent(
        cls,
        timestamp: int,
        position: AggregatePosition,
        maker_amount: int,
        taker_amount: int,
        collateral: int = 0,
        protect: bool = False,
        invalidatable: bool = True,
        referral_fee: int = 0,
    ) -> OrderDelta:
        """Build the delta for one account's signed maker/taker change.

        *position* is the account's current (local) position. A taker amount
        that crosses zero is split into a closing leg on the held side and an
        opening leg on the other, so every leg moves in one direction.
        """
        maker_pos = max(maker_amount, 0)
        maker_neg = max(-maker_amount, 0)

        long_pos = long_neg = short_pos = short_neg = 0
        if taker_amount > 0:
            short_neg = min(taker_amount, position.short)
            long_pos = taker_amount - short_neg
        elif taker_amount < 0:
            long_neg = min(-taker_amount, position.long)
            short_pos = -taker_amount - long_neg

        changed = maker_amount != 0 or taker_amount != 0
        return cls(
            timestamp=timestamp,
            orders=1 if changed else 0,
            maker_pos=maker_pos,
            maker_neg=maker_neg,
            long_pos=long_pos,
            long_neg=long_neg,
            short_pos=short_pos,
            short_neg=short_neg,
            collateral=collateral,
            maker_referral=mul(abs(maker_amount), referral_fee),
            taker_referral=mul(abs(taker_amount), referral_fee),
            protected=protect,
            invalidation=1 if (invalidatable and changed) else 0,
        )

    def add(self, other: OrderDelta) -> OrderDelta:
        """Aggregate two deltas of the same batch (timestamp of *self* kept)."""
        return OrderDelta(
            timestamp=self.timestamp,
            orders=self.orders + other.orders,
            maker_pos=self.maker_pos + other.maker_pos,
            maker_neg=self.maker_neg + other.maker_neg,
            long_pos=self.long_pos + other.long_pos,
            long_neg=self.long_neg + other.long_neg,
            short_pos=self.short_pos + other.short_pos,
            short_neg=self.short_neg + other.short_neg,
            collateral=self.collateral + other.collateral,
            maker_referral=self.maker_referral + other.maker_referral,
            taker_referral=self.taker_referral + other.taker_referral,
            protected=self.protected or other.protected,
            invalidation=self.invalidation + other.invalidation,
        )

    # -- Net and gross sizes -------------------------------------------------

    @property
    def maker(self) -> int:
        return self.maker_pos - self.maker_neg

    @property
    def long(self) -> int:
        return self.long_pos - self.long_neg

    @property
    def short(self) -> int:
        return self.short_pos - self.short_neg

    @property
    def maker_total(self) -> int:
        return self.maker_pos + self.maker_neg

    @property
    def taker_pos_total(self) -> int:
        return self.long_pos + self.short_neg

    @property
    def taker_neg_total(self) -> int:
        return self.long_neg + self.short_pos

    @property
    def taker_total(self) -> int:
        return self.taker_pos_total + self.taker_neg_total

    # -- Predicates ----------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return (
            all(getattr(self, name) == 0 for name in _MAGNITUDE_FIELDS)
            and self.collateral == 0
            and not self.protected
        )

    @property
    def increases_maker(self) -> bool:
        return self.maker_pos > 0

    @property
    def increases_taker(self) -> bool:
        return self.long_pos > 0 or self.short_pos > 0

    @property
    def increases_position(self) -> bool:
        return self.increases_maker or self.increases_taker

    @property
    def decreases_maker(self) -> bool:
        return self.maker_neg > 0

    def decreases_liquidity(self, position: AggregatePosition) -> bool:
        """True when the order shrinks maker capacity or widens net skew.

        *position* already includes this order; the pre-order skew is
        recovered by backing the order's net long/short out of it.
        """
        skew_after = position.skew
        skew_before = skew_after - self.long + self.short
        return self.maker < 0 or abs(skew_after) > abs(skew_before)

    @property
    def crosses_zero(self) -> bool:
        """True when one side is closed and the other opened in the same order.

        Exact for a single account delta built by `from_intent`. On an
        aggregated batch it only says some closing and opposite opening
        volume settled together, not that any one account flipped.
        """
        return (self.long_neg > 0 and self.short_pos > 0) or (self.short_neg > 0 and self.long_pos > 0)

    def liquidity_check_applicable(self, market: MarketParameter) -> bool:
        if market.closed:
            return False
        return self.increases_taker or self.decreases_maker


@dataclass(frozen=True)
class GuaranteeDelta:
    """The pre-matched part of a batch.

    `orders` are excluded from the settlement-fee divisor; `taker_fee` is the
    taker volume exempt from the flat taker fee.
    """

    orders: int = 0
    taker_fee: int = 0

    def __post_init__(self) -> None:
        check_unsigned("orders", self.orders)
        check_unsigned("taker_fee", self.taker_fee)
