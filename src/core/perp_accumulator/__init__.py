"""`perp_accumulator`: per-unit value accumulation for a perpetual-futures market.

The engine settles one period at a time against the aggregate position and
records per-unit running totals, so each account later settles in O(1) by
diffing two checkpoints:
- deterministic, integer-only (Fixed6) transitions,
- immutable state (frozen dataclasses),
- conservation invariants checked on every step.

Public API:
- `accumulate(global_state, position, version, order_id, order, guarantee,
  from_version, to_version, receipt, market, risk) -> Accumulation`
- `initial_state() -> GlobalState`
- `update_global(state, latest_id, result, market, receipt) -> GlobalState`
- `VersionHistory`, `settle`, `settle_side`
- `load_parameters(path) -> (MarketParameter, RiskParameter)`
"""

from .config import load_market_parameter, load_parameters, load_risk_parameter
from .controller import Controller
from .engine import Accumulation, AccumulationContext, accumulate
from .errors import AccumulationInvariantError, ContractViolationError, FixedPointOverflowError
from .history import VersionHistory, settle, settle_side
from .order import GuaranteeDelta, OrderDelta
from .position import AggregatePosition
from .state import GlobalState, initial_state, state_from_dict, state_to_dict, update_global
from .types import (
    AccumulationResult,
    FeeParameter,
    MarketParameter,
    OracleReceipt,
    OracleVersion,
    PController,
    RiskParameter,
    UtilizationCurve,
)
from .version import VersionAccumulator, version_from_dict, version_to_dict

__all__ = [
    "accumulate",
    "Accumulation",
    "AccumulationContext",
    "initial_state",
    "update_global",
    "state_from_dict",
    "state_to_dict",
    "version_from_dict",
    "version_to_dict",
    "load_parameters",
    "load_market_parameter",
    "load_risk_parameter",
    "settle",
    "settle_side",
    "VersionHistory",
    "AccumulationResult",
    "AggregatePosition",
    "Controller",
    "FeeParameter",
    "GlobalState",
    "GuaranteeDelta",
    "MarketParameter",
    "OracleReceipt",
    "OracleVersion",
    "OrderDelta",
    "PController",
    "RiskParameter",
    "UtilizationCurve",
    "VersionAccumulator",
    "AccumulationInvariantError",
    "ContractViolationError",
    "FixedPointOverflowError",
]
