"""Tests for src/core/perp_accumulator/math.py — pure arithmetic helpers."""

import pytest

from src.core.perp_accumulator.errors import ContractViolationError
from src.core.perp_accumulator.fixed import ONE, from_int, parse
from src.core.perp_accumulator.math import (
    accrue,
    adiabatic_fee,
    decrement,
    increment,
    jump_rate,
    linear_fee,
    linear_interpolation,
    maker_coordinate,
    maker_exposure,
    proportional_fee,
    taker_exposure,
)

PRICE = parse("123")
SCALE = parse("100")


# ---------------------------------------------------------------------------
# Accumulators
# ---------------------------------------------------------------------------

class TestAccumulator:
    def test_increment_floors(self):
        assert increment(0, 584, parse("10")) == 58
        assert increment(0, -595, parse("10")) == -60
        assert increment(0, -1193, parse("8")) == -150

    def test_increment_adds_to_running_total(self):
        assert increment(100, 584, parse("10")) == 158

    def test_zero_total_is_noop(self):
        assert increment(7, 1_000, 0) == 7

    def test_zero_amount_is_noop(self):
        assert increment(7, 0, parse("3")) == 7

    def test_decrement_is_negated_increment(self):
        assert decrement(0, parse("0.05"), parse("1")) == -parse("0.05")
        assert decrement(0, 1, parse("3")) == increment(0, -1, parse("3"))


# ---------------------------------------------------------------------------
# Curves
# ---------------------------------------------------------------------------

class TestCurves:
    def test_interpolation_midpoint(self):
        assert linear_interpolation(0, 0, ONE, parse("0.2"), parse("0.5")) == parse("0.1")

    def test_interpolation_out_of_bounds(self):
        with pytest.raises(ContractViolationError):
            linear_interpolation(0, 0, parse("0.5"), ONE, parse("0.6"))

    def test_jump_rate_segments(self):
        curve = dict(
            min_rate=parse("0.1"),
            max_rate=parse("1.1"),
            target_rate=parse("0.3"),
            target_utilization=parse("0.5"),
        )
        assert jump_rate(**curve, utilization=0) == parse("0.1")
        assert jump_rate(**curve, utilization=parse("0.25")) == parse("0.2")
        assert jump_rate(**curve, utilization=parse("0.5")) == parse("0.3")
        assert jump_rate(**curve, utilization=parse("0.75")) == parse("0.7")
        assert jump_rate(**curve, utilization=ONE) == parse("1.1")

    def test_accrue_one_hour(self):
        notional = parse("1230")
        assert accrue(parse("0.1"), from_int(3600), notional) == 14041


# ---------------------------------------------------------------------------
# Trade fees
# ---------------------------------------------------------------------------

class TestTradeFees:
    def test_linear_and_proportional(self):
        size = parse("10")
        total = linear_fee(size, PRICE, parse("0.1")) + proportional_fee(size, PRICE, parse("0.2"), SCALE)
        assert total == parse("147.6")

    def test_uses_absolute_size_and_price(self):
        assert linear_fee(-parse("10"), -PRICE, parse("0.1")) == parse("123")

    def test_proportional_zero_scale(self):
        assert proportional_fee(parse("10"), PRICE, parse("0.2"), 0) == 0


class TestAdiabatic:
    def test_taker_legs(self):
        rate = parse("0.1")
        assert adiabatic_fee(SCALE, rate, parse("-10"), parse("50"), PRICE) == parse("0.75") * 123
        assert adiabatic_fee(SCALE, rate, parse("40"), parse("-60"), PRICE) == parse("-0.6") * 123

    def test_maker_legs(self):
        rate = parse("0.2")
        assert adiabatic_fee(SCALE, rate, parse("50"), parse("10"), PRICE) == parse("1.1") * 123
        assert adiabatic_fee(SCALE, rate, parse("60"), parse("-20"), PRICE) == parse("-2.0") * 123

    def test_refund_toward_zero_is_negative(self):
        assert adiabatic_fee(SCALE, parse("0.1"), parse("20"), parse("-10"), ONE) < 0

    def test_zero_scale(self):
        assert adiabatic_fee(0, parse("0.1"), 0, parse("10"), PRICE) == 0

    def test_taker_exposure(self):
        assert taker_exposure(SCALE, parse("0.1"), parse("-10")) == parse("0.05")

    def test_maker_exposure(self):
        assert maker_exposure(SCALE, parse("0.2"), parse("50")) == parse("-7.5")
        assert maker_exposure(SCALE, parse("0.2"), 0) == 0

    def test_maker_coordinate_clamps(self):
        assert maker_coordinate(SCALE, parse("40")) == parse("60")
        assert maker_coordinate(SCALE, parse("150")) == 0
