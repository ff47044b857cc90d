"""Settlement-step engine for the perp accumulator.

``accumulate(...)`` is the single entry point. For one settlement period it:

1. Charges settlement and liquidation fees.
2. Charges flat maker/taker fees and the linear/proportional/adiabatic impact
   fees per order leg, and trues up the adiabatic exposure.
3. Unless the market is closed, accrues funding, interest and price PnL.
4. Checks all conservation invariants on the result.
5. Returns the next global state, position and version plus the totals.

Each component is a pure function ``(ctx, version) -> (version, totals)``;
the engine threads the version through them and merges the totals into one
``AccumulationResult``. Nothing is mutated, so a failed step leaves no trace.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Callable

from .controller import Controller
from .errors import AccumulationInvariantError, ContractViolationError
from .fixed import ONE, checked, div, from_int, mul, muldiv, sign, sub_unsigned
from .invariants import check_all
from .math import (
    accrue,
    adiabatic_fee,
    decrement,
    increment,
    jump_rate,
    linear_fee,
    maker_coordinate,
    maker_exposure,
    proportional_fee,
    taker_exposure,
)
from .order import GuaranteeDelta, OrderDelta
from .position import AggregatePosition
from .state import GlobalState, update_global
from .types import (
    AccumulationResult,
    FeeParameter,
    MarketParameter,
    OracleReceipt,
    OracleVersion,
    RiskParameter,
)
from .version import VersionAccumulator

logger = logging.getLogger(__name__)

Totals = dict[str, int]


@dataclass(frozen=True)
class AccumulationContext:
    """Inputs of one settlement period."""

    global_state: GlobalState
    position: AggregatePosition
    order: OrderDelta
    guarantee: GuaranteeDelta
    from_version: OracleVersion
    to_version: OracleVersion
    receipt: OracleReceipt
    market: MarketParameter
    risk: RiskParameter

    @property
    def elapsed(self) -> int:
        return self.to_version.timestamp - self.from_version.timestamp

    @property
    def price(self) -> int:
        """Price at which this period's orders trade."""
        return self.to_version.price


@dataclass(frozen=True)
class Accumulation:
    """Everything one settlement period produces; persisted as one unit."""

    global_state: GlobalState
    position: AggregatePosition
    version: VersionAccumulator
    result: AccumulationResult


# -- Settlement / liquidation ------------------------------------------------

def accumulate_settlement_fee(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Split the receipt's settlement fee evenly over non-guaranteed orders."""
    orders = ctx.order.orders - ctx.guarantee.orders
    if orders < 0:
        raise ContractViolationError(
            f"guarantee orders {ctx.guarantee.orders} exceed batch orders {ctx.order.orders}"
        )
    if orders == 0:
        return v, {"settlement_fee": 0}
    fee = ctx.receipt.settlement_fee
    v = replace(v, settlement_fee_value=decrement(v.settlement_fee_value, fee, from_int(orders)))
    return v, {"settlement_fee": fee}


def accumulate_liquidation_fee(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Charge the liquidation fee to the protected account of a valid period."""
    if not (ctx.order.protected and ctx.to_version.valid):
        return v, {"liquidation_fee": 0}
    fee = mul(ctx.receipt.settlement_fee, ctx.risk.liquidation_fee)
    v = replace(v, liquidation_fee_value=decrement(v.liquidation_fee_value, fee, ONE))
    return v, {"liquidation_fee": fee}


# -- Flat fees ---------------------------------------------------------------

def accumulate_order_fee(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Flat notional maker/taker fees; referrers get a subtractive share."""
    price = abs(ctx.price)

    maker_total = ctx.order.maker_total
    maker_fee = mul(mul(maker_total, price), ctx.market.maker_fee)
    maker_sub = muldiv(maker_fee, ctx.order.maker_referral, maker_total) if maker_total else 0

    if ctx.guarantee.taker_fee > ctx.order.taker_total:
        raise ContractViolationError(
            f"guaranteed taker volume {ctx.guarantee.taker_fee} exceeds {ctx.order.taker_total}"
        )
    taker_total = ctx.order.taker_total - ctx.guarantee.taker_fee
    taker_fee = mul(mul(taker_total, price), ctx.market.taker_fee)
    # referral tallies cover the gross order, guaranteed volume included
    taker_sub = (
        muldiv(taker_fee, ctx.order.taker_referral, ctx.order.taker_total) if ctx.order.taker_total else 0
    )

    v = replace(
        v,
        maker_fee_value=decrement(v.maker_fee_value, maker_fee, maker_total),
        taker_fee_value=decrement(v.taker_fee_value, taker_fee, taker_total),
    )
    return v, {"order_fee": maker_fee + taker_fee, "subtractive_fee": maker_sub + taker_sub}


# -- Impact fees -------------------------------------------------------------

def _leg_trade_fee(size: int, price: int, fee: FeeParameter) -> int:
    return linear_fee(size, price, fee.linear_fee) + proportional_fee(
        size, price, fee.proportional_fee, fee.scale,
    )


def accumulate_impact_fee(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Linear, proportional and adiabatic fees per leg, plus exposure true-up.

    Legs: maker (Neg then Pos), taker Pos (skew up from the starting skew),
    taker Neg (skew down from where the Pos leg left it).
    """
    order, pos, price = ctx.order, ctx.position, ctx.price
    maker_fee, taker_fee = ctx.risk.maker_fee, ctx.risk.taker_fee

    maker_trade = _leg_trade_fee(order.maker_total, price, maker_fee)
    taker_pos_trade = _leg_trade_fee(order.taker_pos_total, price, taker_fee)
    taker_neg_trade = _leg_trade_fee(order.taker_neg_total, price, taker_fee)
    trade_fee = maker_trade + taker_pos_trade + taker_neg_trade

    maker_adiabatic = taker_pos_adiabatic = taker_neg_adiabatic = 0
    adiabatic_exposure = 0
    if not ctx.market.closed:
        scale, rate = maker_fee.scale, maker_fee.adiabatic_fee
        start = maker_coordinate(scale, pos.maker)
        mid = maker_coordinate(scale, pos.maker - order.maker_neg)
        end = maker_coordinate(scale, pos.maker - order.maker_neg + order.maker_pos)
        maker_adiabatic = (
            adiabatic_fee(scale, rate, start, mid - start, price)
            + adiabatic_fee(scale, rate, mid, end - mid, price)
        )

        scale, rate = taker_fee.scale, taker_fee.adiabatic_fee
        taker_pos_adiabatic = adiabatic_fee(scale, rate, pos.skew, order.taker_pos_total, price)
        taker_neg_adiabatic = adiabatic_fee(
            scale, rate, pos.skew + order.taker_pos_total, -order.taker_neg_total, price,
        )

        exposure = taker_exposure(taker_fee.scale, taker_fee.adiabatic_fee, pos.skew) + maker_exposure(
            maker_fee.scale, maker_fee.adiabatic_fee, pos.maker,
        )
        adiabatic_exposure = mul(exposure, ctx.to_version.price - ctx.from_version.price)
    adiabatic_total = maker_adiabatic + taker_pos_adiabatic + taker_neg_adiabatic

    v = replace(
        v,
        maker_offset_value=decrement(
            v.maker_offset_value, maker_trade + maker_adiabatic, order.maker_total,
        ),
        taker_pos_offset_value=decrement(
            v.taker_pos_offset_value, taker_pos_trade + taker_pos_adiabatic, order.taker_pos_total,
        ),
        taker_neg_offset_value=decrement(
            v.taker_neg_offset_value, taker_neg_trade + taker_neg_adiabatic, order.taker_neg_total,
        ),
    )

    totals: Totals = {
        "trade_fee": trade_fee,
        "adiabatic_fee": adiabatic_total,
        "adiabatic_exposure": adiabatic_exposure,
    }
    if pos.maker == 0:
        totals["trade_offset_market"] = trade_fee
        totals["adiabatic_fee_market"] = adiabatic_total
        totals["adiabatic_exposure_market"] = -adiabatic_exposure
        return v, totals

    trade_offset_market = mul(trade_fee, ctx.market.position_fee)
    trade_offset_maker = sub_unsigned(trade_fee, trade_offset_market)
    maker_value = increment(v.maker_value, trade_offset_maker, pos.maker)
    maker_value = increment(maker_value, adiabatic_total, pos.maker)
    maker_value = decrement(maker_value, adiabatic_exposure, pos.maker)
    totals.update(
        trade_offset_maker=trade_offset_maker,
        trade_offset_market=trade_offset_market,
        adiabatic_fee_maker=adiabatic_total,
        adiabatic_exposure_maker=-adiabatic_exposure,
    )
    return replace(v, maker_value=maker_value), totals


# -- Funding / interest / PnL ------------------------------------------------

def next_controller_skew(ctx: AccumulationContext) -> int:
    """Relative skew recorded for the next period's controller step."""
    position = ctx.position.apply(ctx.order) if ctx.to_version.valid else ctx.position
    return position.relative_skew(ctx.risk.skew_scale)


def accumulate_funding(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals, Controller]:
    """Funding from the controller rate; the majority side pays.

    The minority side forwards its socialized maker portion to makers. A
    `funding_fee` share is skimmed, half from each side.
    """
    pos = ctx.position
    controller = ctx.global_state.controller
    skew = next_controller_skew(ctx)

    if (pos.long == 0 and pos.short == 0) or ctx.elapsed == 0:
        return v, {}, replace(controller, skew=skew)

    funding, controller = controller.accumulate(
        ctx.risk.p_controller,
        skew,
        ctx.from_version.timestamp,
        ctx.to_version.timestamp,
        mul(pos.taker_socialized, abs(ctx.from_version.price)),
    )
    if ctx.risk.maker_receive_only and sign(funding) != sign(pos.skew):
        funding = -funding

    funding_fee = mul(abs(funding), ctx.market.funding_fee)
    spread = div(funding_fee, from_int(2))
    funding_long = -funding - funding_fee + spread
    funding_short = funding - spread
    funding_maker = 0

    portion = pos.socialized_maker_portion
    if pos.long > pos.short:
        funding_maker = mul(funding_short, portion)
        funding_short -= funding_maker
    if pos.short > pos.long:
        funding_maker = mul(funding_long, portion)
        funding_long -= funding_maker

    v = replace(
        v,
        maker_value=increment(v.maker_value, funding_maker, pos.maker),
        long_value=increment(v.long_value, funding_long, pos.long),
        short_value=increment(v.short_value, funding_short, pos.short),
    )
    totals = {
        "funding_maker": funding_maker,
        "funding_long": funding_long,
        "funding_short": funding_short,
        "funding_fee": funding_fee,
    }
    return v, totals, controller


def accumulate_interest(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Takers pay interest to makers on the utilized maker notional."""
    pos = ctx.position
    if ctx.elapsed == 0:
        return v, {}

    curve = ctx.risk.utilization_curve
    rate = jump_rate(
        curve.min_rate,
        curve.max_rate,
        curve.target_rate,
        curve.target_utilization,
        pos.utilization(ctx.risk.efficiency_limit),
    )
    taker = pos.long + pos.short
    notional = mul(min(taker, pos.maker), abs(ctx.from_version.price))
    interest = accrue(rate, from_int(ctx.elapsed), notional)

    interest_fee = mul(interest, ctx.market.interest_fee)
    interest_maker = interest - interest_fee
    interest_long = -muldiv(interest, pos.long, taker) if taker else 0
    interest_short = -(interest + interest_long)

    v = replace(
        v,
        maker_value=increment(v.maker_value, interest_maker, pos.maker),
        long_value=increment(v.long_value, interest_long, pos.long),
        short_value=increment(v.short_value, interest_short, pos.short),
    )
    totals = {
        "interest_maker": interest_maker,
        "interest_long": interest_long,
        "interest_short": interest_short,
        "interest_fee": interest_fee,
    }
    return v, totals


def accumulate_pnl(
    ctx: AccumulationContext, v: VersionAccumulator,
) -> tuple[VersionAccumulator, Totals]:
    """Price PnL; makers take the other side of the net taker imbalance."""
    pos = ctx.position
    delta = ctx.to_version.price - ctx.from_version.price

    pnl_long = mul(delta, pos.long_socialized)
    pnl_short = -mul(delta, pos.short_socialized)
    pnl_maker = -(pnl_long + pnl_short)

    v = replace(
        v,
        maker_value=increment(v.maker_value, pnl_maker, pos.maker),
        long_value=increment(v.long_value, pnl_long, pos.long),
        short_value=increment(v.short_value, pnl_short, pos.short),
    )
    return v, {"pnl_maker": pnl_maker, "pnl_long": pnl_long, "pnl_short": pnl_short}


# -- Entry point -------------------------------------------------------------

StepFn = Callable[[AccumulationContext, VersionAccumulator], tuple[VersionAccumulator, Totals]]

_FEE_STEPS: tuple[StepFn, ...] = (
    accumulate_settlement_fee,
    accumulate_liquidation_fee,
    accumulate_order_fee,
    accumulate_impact_fee,
)

_OPEN_MARKET_STEPS: tuple[StepFn, ...] = (
    accumulate_interest,
    accumulate_pnl,
)


def accumulate(
    global_state: GlobalState,
    position: AggregatePosition,
    version: VersionAccumulator,
    order_id: int,
    order: OrderDelta,
    guarantee: GuaranteeDelta,
    from_version: OracleVersion,
    to_version: OracleVersion,
    receipt: OracleReceipt,
    market: MarketParameter,
    risk: RiskParameter,
) -> Accumulation:
    """Settle one period and return the next state, position and version.

    *version* is the accumulator persisted for ``from_version``; pass
    ``VersionAccumulator()`` only for the first period of a market. Raises
    ``FixedPointOverflowError`` on arithmetic overflow,
    ``ContractViolationError`` on malformed input, and
    ``AccumulationInvariantError`` if a conservation law is broken.
    """
    if not isinstance(version, VersionAccumulator):
        raise TypeError("version must be the VersionAccumulator persisted for from_version")
    if to_version.timestamp < from_version.timestamp:
        raise ContractViolationError(
            f"to_version {to_version.timestamp} precedes from_version {from_version.timestamp}"
        )
    ctx = AccumulationContext(
        global_state=global_state,
        position=position,
        order=order,
        guarantee=guarantee,
        from_version=from_version,
        to_version=to_version,
        receipt=receipt,
        market=market,
        risk=risk,
    )
    logger.debug(
        "accumulate id=%d %d->%d elapsed=%ds closed=%s valid=%s",
        order_id, from_version.timestamp, to_version.timestamp,
        ctx.elapsed, market.closed, to_version.valid,
    )

    v = replace(
        version,
        valid=to_version.valid,
        price=to_version.price,
    )
    totals: dict[str, Any] = {"valid": to_version.valid}

    for step_fn in _FEE_STEPS:
        v, step_totals = step_fn(ctx, v)
        totals.update(step_totals)

    controller = replace(global_state.controller, skew=next_controller_skew(ctx))
    if not market.closed:
        v, step_totals, controller = accumulate_funding(ctx, v)
        totals.update(step_totals)
        for step_fn in _OPEN_MARKET_STEPS:
            v, step_totals = step_fn(ctx, v)
            totals.update(step_totals)

    result = AccumulationResult(**totals)
    logger.debug(
        "accumulate id=%d trade_fee=%d adiabatic=%d exposure=%d funding_fee=%d interest_fee=%d",
        order_id, result.trade_fee, result.adiabatic_fee, result.adiabatic_exposure,
        result.funding_fee, result.interest_fee,
    )

    violations = check_all(result, market, position)
    if violations:
        logger.error("accumulate id=%d invariant violations: %s", order_id, violations)
        raise AccumulationInvariantError(violations)

    next_global = update_global(global_state, order_id, result, market, receipt)
    next_global = replace(
        next_global,
        controller=controller,
        latest_price=checked(to_version.price) if to_version.valid else global_state.latest_price,
    )
    next_position = position.apply(order, to_version.timestamp)
    return Accumulation(
        global_state=next_global,
        position=next_position,
        version=v,
        result=result,
    )
