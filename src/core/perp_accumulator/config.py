"""Load market / risk parameter snapshots from YAML.

Numeric values are written as decimal strings (``"0.02"``) or ints and parsed
exactly into Fixed6; YAML floats are rejected so no binary rounding can leak
into the engine. Example document::

    market:
      funding_fee: "0.02"
      position_fee: "0.5"
    risk:
      taker_fee: {linear_fee: "0.001", adiabatic_fee: "0.0005", scale: "1000"}
      p_controller: {k: "40000", min: "-1.2", max: "1.2"}
      skew_scale: "1000"
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ContractViolationError
from .fixed import parse
from .types import (
    FeeParameter,
    MarketParameter,
    PController,
    RiskParameter,
    UtilizationCurve,
)

logger = logging.getLogger(__name__)

_RISK_SECTIONS: dict[str, type] = {
    "maker_fee": FeeParameter,
    "taker_fee": FeeParameter,
    "utilization_curve": UtilizationCurve,
    "p_controller": PController,
}
_FLAGS: frozenset[str] = frozenset({"closed", "maker_receive_only"})


def _mapping(section: str, obj: Any) -> Mapping[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise TypeError(f"{section} must be a mapping")
    return obj


def _value(section: str, name: str, value: Any) -> bool | int:
    if name in _FLAGS:
        if not isinstance(value, bool):
            raise ContractViolationError(f"{section}.{name} must be a bool")
        return value
    if isinstance(value, float):
        raise ContractViolationError(f"{section}.{name}: write decimals as strings, got float {value!r}")
    try:
        return parse(value)
    except (TypeError, ValueError) as e:
        raise ContractViolationError(f"{section}.{name}: {e}") from e


def _scalars(section: str, raw: Mapping[str, Any], allowed: set[str]) -> dict[str, Any]:
    unknown = set(raw) - allowed
    if unknown:
        raise ContractViolationError(f"{section}: unknown keys {sorted(unknown)}")
    return {name: _value(section, name, value) for name, value in raw.items()}


def market_parameter_from_dict(obj: Any) -> MarketParameter:
    raw = _mapping("market", obj)
    return MarketParameter(**_scalars("market", raw, set(MarketParameter.__dataclass_fields__)))


def risk_parameter_from_dict(obj: Any) -> RiskParameter:
    raw = dict(_mapping("risk", obj))
    kwargs: dict[str, Any] = {}
    for name, cls in _RISK_SECTIONS.items():
        section = f"risk.{name}"
        sub = _mapping(section, raw.pop(name, None))
        kwargs[name] = cls(**_scalars(section, sub, set(cls.__dataclass_fields__)))
    scalar_names = set(RiskParameter.__dataclass_fields__) - set(_RISK_SECTIONS)
    kwargs.update(_scalars("risk", raw, scalar_names))
    return RiskParameter(**kwargs)


def load_parameters(path: Path) -> tuple[MarketParameter, RiskParameter]:
    """Read the ``market:`` and ``risk:`` sections of a YAML file."""
    obj = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(obj, dict):
        raise TypeError("parameter YAML must be a mapping")
    unknown = set(obj) - {"market", "risk"}
    if unknown:
        raise ContractViolationError(f"unknown top-level keys {sorted(unknown)}")
    market = market_parameter_from_dict(obj.get("market"))
    risk = risk_parameter_from_dict(obj.get("risk"))
    logger.info("loaded parameters from %s (closed=%s)", path, market.closed)
    return market, risk


def load_market_parameter(path: Path) -> MarketParameter:
    return load_parameters(path)[0]


def load_risk_parameter(path: Path) -> RiskParameter:
    return load_parameters(path)[1]
