"""Data types for the perp accumulation engine.

All types are frozen dataclasses (immutable). Every numeric field is a Fixed6
int (see ``fixed.py``) unless it is a timestamp or a count.

Units/conventions:
- prices are signed Fixed6 (quote per base),
- rates and shares are unsigned Fixed6 (``ONE`` is 100%),
- `scale` fields are unsigned Fixed6 position sizes,
- timestamps are whole seconds.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from .errors import ContractViolationError
from .fixed import ONE


def check_int(name: str, value: object) -> None:
    """Raise TypeError unless *value* is a plain int (bools rejected)."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def check_unsigned(name: str, value: object) -> None:
    """Raise unless *value* is a non-negative int."""
    check_int(name, value)
    if value < 0:  # type: ignore[operator]
        raise ContractViolationError(f"{name} must be non-negative: {value}")


def check_bool(name: str, value: object) -> None:
    if not isinstance(value, bool):
        raise TypeError(f"{name} must be a bool")


# ---------------------------------------------------------------------------
# Oracle inputs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OracleVersion:
    """A resolved oracle observation."""

    timestamp: int
    price: int
    valid: bool = True

    def __post_init__(self) -> None:
        check_unsigned("timestamp", self.timestamp)
        check_int("price", self.price)
        check_bool("valid", self.valid)


@dataclass(frozen=True)
class OracleReceipt:
    """Fees attached to the oracle version that closes a period.

    `settlement_fee` is the flat keeper fee for the period; `oracle_fee` is the
    oracle's share of the market's fee income.
    """

    settlement_fee: int = 0
    oracle_fee: int = 0

    def __post_init__(self) -> None:
        check_unsigned("settlement_fee", self.settlement_fee)
        check_unsigned("oracle_fee", self.oracle_fee)


# ---------------------------------------------------------------------------
# Parameter snapshots
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FeeParameter:
    """Impact fee schedule for one side (maker or taker)."""

    linear_fee: int = 0
    proportional_fee: int = 0
    adiabatic_fee: int = 0
    scale: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            check_unsigned(f.name, getattr(self, f.name))


@dataclass(frozen=True)
class UtilizationCurve:
    """Jump-rate interest curve keyed on utilization."""

    min_rate: int = 0
    max_rate: int = 0
    target_rate: int = 0
    target_utilization: int = 0

    def __post_init__(self) -> None:
        for f in fields(self):
            check_unsigned(f.name, getattr(self, f.name))
        if self.target_utilization > ONE:
            raise ContractViolationError(f"target_utilization above one: {self.target_utilization}")


@dataclass(frozen=True)
class PController:
    """Funding-rate controller gains: ``value += skew * elapsed / k`` within [min, max]."""

    k: int = ONE
    min: int = 0
    max: int = 0

    def __post_init__(self) -> None:
        check_int("k", self.k)
        check_int("min", self.min)
        check_int("max", self.max)
        if self.k <= 0:
            raise ContractViolationError(f"k must be positive: {self.k}")
        if self.min > self.max:
            raise ContractViolationError(f"min {self.min} above max {self.max}")


@dataclass(frozen=True)
class MarketParameter:
    """Market-level settings. `position_fee` is the protocol share of trade fees."""

    closed: bool = False
    funding_fee: int = 0
    interest_fee: int = 0
    maker_fee: int = 0
    taker_fee: int = 0
    position_fee: int = ONE // 2
    risk_fee: int = 0

    def __post_init__(self) -> None:
        check_bool("closed", self.closed)
        for f in fields(self):
            if f.name != "closed":
                check_unsigned(f.name, getattr(self, f.name))


@dataclass(frozen=True)
class RiskParameter:
    """Risk-level settings supplied already validated by the governance layer."""

    maker_fee: FeeParameter = field(default_factory=FeeParameter)
    taker_fee: FeeParameter = field(default_factory=FeeParameter)
    utilization_curve: UtilizationCurve = field(default_factory=UtilizationCurve)
    p_controller: PController = field(default_factory=PController)
    liquidation_fee: int = 0
    maker_receive_only: bool = False
    skew_scale: int = 0
    efficiency_limit: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.maker_fee, FeeParameter):
            raise TypeError("maker_fee must be a FeeParameter")
        if not isinstance(self.taker_fee, FeeParameter):
            raise TypeError("taker_fee must be a FeeParameter")
        if not isinstance(self.utilization_curve, UtilizationCurve):
            raise TypeError("utilization_curve must be a UtilizationCurve")
        if not isinstance(self.p_controller, PController):
            raise TypeError("p_controller must be a PController")
        check_unsigned("liquidation_fee", self.liquidation_fee)
        check_bool("maker_receive_only", self.maker_receive_only)
        check_unsigned("skew_scale", self.skew_scale)
        check_unsigned("efficiency_limit", self.efficiency_limit)


# ---------------------------------------------------------------------------
# Step output
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class AccumulationResult:
    """Totals produced by one settlement period (observability and fee routing).

    Fee totals are positive amounts collected; funding / interest / PnL are
    signed flows (positive = received by that side).
    """

    valid: bool = True

    # Linear + proportional impact fees and their maker/market split
    trade_fee: int = 0
    trade_offset_maker: int = 0
    trade_offset_market: int = 0

    # Flat notional fees from the market parameter
    order_fee: int = 0
    subtractive_fee: int = 0

    # Adiabatic fee collected and the exposure true-up
    adiabatic_fee: int = 0
    adiabatic_fee_maker: int = 0
    adiabatic_fee_market: int = 0
    adiabatic_exposure: int = 0
    adiabatic_exposure_maker: int = 0
    adiabatic_exposure_market: int = 0

    funding_maker: int = 0
    funding_long: int = 0
    funding_short: int = 0
    funding_fee: int = 0

    interest_maker: int = 0
    interest_long: int = 0
    interest_short: int = 0
    interest_fee: int = 0

    pnl_maker: int = 0
    pnl_long: int = 0
    pnl_short: int = 0

    settlement_fee: int = 0
    liquidation_fee: int = 0

    @property
    def market_fee(self) -> int:
        """Fee income owed to the market's fee pools."""
        return (
            self.trade_offset_market
            + self.order_fee
            - self.subtractive_fee
            + self.funding_fee
            + self.interest_fee
        )

    @property
    def market_exposure(self) -> int:
        """Adiabatic balance carried by the market when no makers bear it."""
        return self.adiabatic_fee_market + self.adiabatic_exposure_market
