"""Tests for src/core/perp_accumulator/order.py — order deltas and predicates."""

import pytest

from src.core.perp_accumulator import (
    AggregatePosition,
    GuaranteeDelta,
    MarketParameter,
    OrderDelta,
)
from src.core.perp_accumulator.errors import ContractViolationError
from src.core.perp_accumulator.fixed import parse


def _local(maker: str = "0", long: str = "0", short: str = "0") -> AggregatePosition:
    return AggregatePosition(timestamp=1, maker=parse(maker), long=parse(long), short=parse(short))


# ---------------------------------------------------------------------------
# from_intent
# ---------------------------------------------------------------------------

class TestFromIntent:
    def test_open_long(self):
        o = OrderDelta.from_intent(10, _local(), 0, parse("5"))
        assert o.long_pos == parse("5")
        assert o.short_neg == 0
        assert o.orders == 1
        assert o.invalidation == 1
        assert o.timestamp == 10

    def test_long_crossing_short_splits_legs(self):
        o = OrderDelta.from_intent(10, _local(short="10"), 0, parse("11"))
        assert o.short_neg == parse("10")
        assert o.long_pos == parse("1")
        assert o.long_neg == 0 and o.short_pos == 0
        assert o.crosses_zero

    def test_short_crossing_long_splits_legs(self):
        o = OrderDelta.from_intent(10, _local(long="4"), 0, -parse("6"))
        assert o.long_neg == parse("4")
        assert o.short_pos == parse("2")
        assert o.crosses_zero

    def test_close_without_crossing(self):
        o = OrderDelta.from_intent(10, _local(long="4"), 0, -parse("3"))
        assert o.long_neg == parse("3")
        assert o.short_pos == 0
        assert not o.crosses_zero

    def test_maker(self):
        o = OrderDelta.from_intent(10, _local(maker="5"), -parse("2"), 0)
        assert o.maker_neg == parse("2")
        assert o.maker_pos == 0

    def test_collateral_only_is_not_an_order(self):
        o = OrderDelta.from_intent(10, _local(), 0, 0, collateral=parse("100"))
        assert o.orders == 0
        assert o.invalidation == 0
        assert o.collateral == parse("100")
        assert not o.is_empty

    def test_not_invalidatable(self):
        o = OrderDelta.from_intent(10, _local(), parse("1"), 0, invalidatable=False)
        assert o.orders == 1
        assert o.invalidation == 0

    def test_referral(self):
        o = OrderDelta.from_intent(
            10, _local(), parse("10"), -parse("20"), referral_fee=parse("0.1"),
        )
        assert o.maker_referral == parse("1")
        assert o.taker_referral == parse("2")

    def test_protect(self):
        o = OrderDelta.from_intent(10, _local(long="1"), 0, -parse("1"), protect=True)
        assert o.protected


# ---------------------------------------------------------------------------
# Sizes
# ---------------------------------------------------------------------------

class TestSizes:
    def test_legs(self):
        o = OrderDelta(
            maker_pos=parse("20"), maker_neg=parse("10"),
            long_pos=parse("30"), long_neg=parse("10"),
            short_pos=parse("50"), short_neg=parse("20"),
        )
        assert o.maker_total == parse("30")
        assert o.taker_pos_total == parse("50")
        assert o.taker_neg_total == parse("60")
        assert o.taker_total == parse("110")
        assert o.maker == parse("10")
        assert o.long == parse("20")
        assert o.short == parse("30")

    def test_add(self):
        a = OrderDelta(timestamp=3, orders=1, long_pos=parse("1"), invalidation=1)
        b = OrderDelta(timestamp=3, orders=2, short_pos=parse("2"), protected=True, collateral=-5)
        c = a.add(b)
        assert c.orders == 3
        assert c.long_pos == parse("1")
        assert c.short_pos == parse("2")
        assert c.protected
        assert c.collateral == -5
        assert c.invalidation == 1

    def test_negative_magnitude_rejected(self):
        with pytest.raises(ContractViolationError):
            OrderDelta(long_pos=-1)

    def test_protected_must_be_bool(self):
        with pytest.raises(TypeError):
            OrderDelta(protected=1)


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

class TestPredicates:
    def test_is_empty(self):
        assert OrderDelta().is_empty
        assert not OrderDelta(protected=True).is_empty
        assert not OrderDelta(maker_neg=1).is_empty

    def test_increases(self):
        assert OrderDelta(maker_pos=1).increases_position
        assert not OrderDelta(maker_pos=1).increases_taker
        assert OrderDelta(short_pos=1).increases_taker
        assert not OrderDelta(long_neg=1).increases_position

    def test_decreases_liquidity_on_maker_close(self):
        o = OrderDelta(maker_neg=parse("1"))
        assert o.decreases_liquidity(_local(maker="4"))

    def test_decreases_liquidity_when_skew_widens(self):
        o = OrderDelta(long_pos=parse("2"))
        after = AggregatePosition(maker=parse("10"), long=parse("5"), short=parse("1"))
        assert o.decreases_liquidity(after)

    def test_skew_narrowing_keeps_liquidity(self):
        o = OrderDelta(short_pos=parse("2"))
        after = AggregatePosition(maker=parse("10"), long=parse("5"), short=parse("3"))
        assert not o.decreases_liquidity(after)

    def test_liquidity_check_applicable(self):
        market = MarketParameter()
        assert OrderDelta(long_pos=1).liquidity_check_applicable(market)
        assert OrderDelta(maker_neg=1).liquidity_check_applicable(market)
        assert not OrderDelta(maker_pos=1).liquidity_check_applicable(market)
        assert not OrderDelta(long_neg=1).liquidity_check_applicable(market)

    def test_closed_market_skips_liquidity_check(self):
        assert not OrderDelta(long_pos=1).liquidity_check_applicable(MarketParameter(closed=True))

    def test_opening_both_sides_is_not_a_crossing(self):
        batch = OrderDelta(orders=2, long_pos=parse("3"), short_pos=parse("2"))
        assert not batch.crosses_zero
        assert not OrderDelta(long_neg=parse("1"), short_neg=parse("1")).crosses_zero

    def test_crossing_survives_aggregation(self):
        a = OrderDelta.from_intent(10, _local(long="4"), 0, -parse("6"))
        b = OrderDelta.from_intent(10, _local(maker="1"), parse("1"), 0)
        assert a.add(b).crosses_zero


class TestGuarantee:
    def test_defaults(self):
        g = GuaranteeDelta()
        assert g.orders == 0
        assert g.taker_fee == 0

    def test_negative_rejected(self):
        with pytest.raises(ContractViolationError):
            GuaranteeDelta(orders=-1)
