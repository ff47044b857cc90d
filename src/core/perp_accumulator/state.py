"""Global market state and its fee-pool update.

`initial_state()` returns the genesis state: no fees collected, controller at
rest, no exposure.

Round-trip property (tested): `state_from_dict(state_to_dict(s)) == s` for all valid states.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .controller import Controller, controller_from_dict, controller_to_dict
from .fixed import checked, checked_unsigned, mul, sub_unsigned
from .types import (
    AccumulationResult,
    MarketParameter,
    OracleReceipt,
    check_int,
    check_unsigned,
)


@dataclass(frozen=True)
class GlobalState:
    """Market-wide state carried from one settlement period to the next."""

    latest_id: int = 0
    latest_price: int = 0
    controller: Controller = field(default_factory=Controller)

    # Fee pools (unsigned)
    protocol_fee: int = 0
    oracle_fee: int = 0
    risk_fee: int = 0

    # Adiabatic balance held by the market (signed)
    exposure: int = 0

    def __post_init__(self) -> None:
        check_unsigned("latest_id", self.latest_id)
        check_int("latest_price", self.latest_price)
        if not isinstance(self.controller, Controller):
            raise TypeError("controller must be a Controller")
        check_unsigned("protocol_fee", self.protocol_fee)
        check_unsigned("oracle_fee", self.oracle_fee)
        check_unsigned("risk_fee", self.risk_fee)
        check_int("exposure", self.exposure)


# Auto-derived from GlobalState field definitions (single source of truth).
STATE_VAR_NAMES: tuple[str, ...] = tuple(GlobalState.__dataclass_fields__)


def initial_state() -> GlobalState:
    """Return the genesis GlobalState (all dataclass defaults)."""
    return GlobalState()


def update_global(
    state: GlobalState,
    latest_id: int,
    result: AccumulationResult,
    market: MarketParameter,
    receipt: OracleReceipt,
) -> GlobalState:
    """Route one period's fee income into the global pools.

    The market fee is split in order: the oracle takes ``receipt.oracle_fee`` of
    it, the risk pool takes ``market.risk_fee`` of the remainder, the protocol
    keeps the rest. Shares above one underflow and raise
    ``FixedPointOverflowError``. Settlement fees go to the oracle pool whole.
    """
    market_fee = checked_unsigned(result.market_fee)

    oracle_share = mul(market_fee, receipt.oracle_fee)
    remainder = sub_unsigned(market_fee, oracle_share)
    risk_share = mul(remainder, market.risk_fee)
    protocol_share = sub_unsigned(remainder, risk_share)

    return replace(
        state,
        latest_id=latest_id,
        protocol_fee=checked_unsigned(state.protocol_fee + protocol_share),
        oracle_fee=checked_unsigned(state.oracle_fee + oracle_share + result.settlement_fee),
        risk_fee=checked_unsigned(state.risk_fee + risk_share),
        exposure=checked(state.exposure + result.market_exposure),
    )


def state_to_dict(state: GlobalState) -> dict[str, Any]:
    """Serialize a GlobalState to a plain dict (controller nested)."""
    d: dict[str, Any] = {name: getattr(state, name) for name in STATE_VAR_NAMES}
    d["controller"] = controller_to_dict(state.controller)
    return d


def state_from_dict(d: Mapping[str, Any]) -> GlobalState:
    """Deserialize a dict to a GlobalState. Raises KeyError on missing fields."""
    kwargs: dict[str, Any] = {}
    for name in STATE_VAR_NAMES:
        val = d[name]
        if name == "controller":
            kwargs[name] = controller_from_dict(val)
        elif isinstance(val, int) and not isinstance(val, bool):
            kwargs[name] = int(val)  # normalize int subclasses
        else:
            raise TypeError(f"state var {name!r} must be int, got {type(val).__name__}")
    return GlobalState(**kwargs)
