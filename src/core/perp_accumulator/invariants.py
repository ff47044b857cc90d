"""Invariant checkers for one accumulation step.

Each function returns True when the invariant holds, and `check_all()` returns
the list of violated invariant IDs (empty = all pass).

These are conservation laws over the step's `AccumulationResult`: every unit a
side pays is received by another side or by a fee pool. They are evaluated
against the period's starting position and market parameters.
"""

from __future__ import annotations

from typing import Callable

from .position import AggregatePosition
from .types import AccumulationResult, MarketParameter

# Rounding slack for splits that truncate once.
SPLIT_TOLERANCE: int = 1


def inv_funding_conserved(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return r.funding_maker + r.funding_long + r.funding_short + r.funding_fee == 0


def inv_interest_conserved(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return r.interest_maker + r.interest_long + r.interest_short + r.interest_fee == 0


def inv_pnl_conserved(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return r.pnl_maker + r.pnl_long + r.pnl_short == 0


def inv_trade_fee_split(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return abs(r.trade_fee - r.trade_offset_maker - r.trade_offset_market) <= SPLIT_TOLERANCE


def inv_adiabatic_fee_routed(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return r.adiabatic_fee == r.adiabatic_fee_maker + r.adiabatic_fee_market


def inv_exposure_routed(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return r.adiabatic_exposure_maker + r.adiabatic_exposure_market == -r.adiabatic_exposure


def inv_zero_maker_routing(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    if p.maker != 0:
        return True
    return (
        r.trade_offset_maker == 0
        and r.adiabatic_fee_maker == 0
        and r.adiabatic_exposure_maker == 0
        and r.funding_maker == 0
        and r.interest_maker == 0
    )


def inv_closed_market_inert(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    if not m.closed:
        return True
    return all(
        v == 0
        for v in (
            r.funding_maker, r.funding_long, r.funding_short, r.funding_fee,
            r.interest_maker, r.interest_long, r.interest_short, r.interest_fee,
            r.pnl_maker, r.pnl_long, r.pnl_short,
            r.adiabatic_fee, r.adiabatic_exposure,
        )
    )


def inv_fees_nonneg(r: AccumulationResult, m: MarketParameter, p: AggregatePosition) -> bool:
    return (
        r.trade_fee >= 0
        and r.trade_offset_market >= 0
        and r.order_fee >= 0
        and 0 <= r.subtractive_fee <= r.order_fee
        and r.funding_fee >= 0
        and r.interest_fee >= 0
        and r.settlement_fee >= 0
        and r.liquidation_fee >= 0
    )


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

InvariantFn = Callable[[AccumulationResult, MarketParameter, AggregatePosition], bool]

INVARIANT_REGISTRY: dict[str, InvariantFn] = {
    "inv_funding_conserved": inv_funding_conserved,
    "inv_interest_conserved": inv_interest_conserved,
    "inv_pnl_conserved": inv_pnl_conserved,
    "inv_trade_fee_split": inv_trade_fee_split,
    "inv_adiabatic_fee_routed": inv_adiabatic_fee_routed,
    "inv_exposure_routed": inv_exposure_routed,
    "inv_zero_maker_routing": inv_zero_maker_routing,
    "inv_closed_market_inert": inv_closed_market_inert,
    "inv_fees_nonneg": inv_fees_nonneg,
}


def check_all(
    result: AccumulationResult,
    market: MarketParameter,
    position: AggregatePosition,
) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(result, market, position)
    ]
