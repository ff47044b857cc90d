"""
Core perpetual-market accounting
"""

from .perp_accumulator import (
    accumulate,
    initial_state,
    update_global,
    Accumulation,
    AccumulationResult,
    AggregatePosition,
    GlobalState,
    GuaranteeDelta,
    OrderDelta,
    VersionAccumulator,
    VersionHistory,
)

__all__ = [
    "accumulate",
    "initial_state",
    "update_global",
    "Accumulation",
    "AccumulationResult",
    "AggregatePosition",
    "GlobalState",
    "GuaranteeDelta",
    "OrderDelta",
    "VersionAccumulator",
    "VersionHistory",
]
