"""Per-unit value checkpoints for one settled timestamp.

Every value field is a running total since genesis. An account that held a
constant size through a period owes or earns
``(later.<field> - earlier.<field>) * size``; see ``history.settle``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from .types import check_bool, check_int

VALUE_FIELDS: tuple[str, ...] = (
    "maker_value",
    "long_value",
    "short_value",
    "maker_fee_value",
    "taker_fee_value",
    "maker_offset_value",
    "taker_pos_offset_value",
    "taker_neg_offset_value",
    "settlement_fee_value",
    "liquidation_fee_value",
)


@dataclass(frozen=True)
class VersionAccumulator:
    valid: bool = True
    price: int = 0

    # PnL + funding + interest + maker share of fees, per unit of each side
    maker_value: int = 0
    long_value: int = 0
    short_value: int = 0

    # Flat notional fees, per unit traded
    maker_fee_value: int = 0
    taker_fee_value: int = 0

    # Linear + proportional + adiabatic impact fees, per unit traded on each leg
    maker_offset_value: int = 0
    taker_pos_offset_value: int = 0
    taker_neg_offset_value: int = 0

    # Per order / per liquidation
    settlement_fee_value: int = 0
    liquidation_fee_value: int = 0

    def __post_init__(self) -> None:
        check_bool("valid", self.valid)
        check_int("price", self.price)
        for name in VALUE_FIELDS:
            check_int(name, getattr(self, name))


def version_to_dict(version: VersionAccumulator) -> dict[str, bool | int]:
    d: dict[str, bool | int] = {"valid": version.valid, "price": version.price}
    for name in VALUE_FIELDS:
        d[name] = getattr(version, name)
    return d


def version_from_dict(d: Mapping[str, Any]) -> VersionAccumulator:
    """Raises KeyError on missing fields and TypeError on mistyped ones."""
    kwargs: dict[str, Any] = {"valid": d["valid"], "price": d["price"]}
    for name in VALUE_FIELDS:
        kwargs[name] = d[name]
    return VersionAccumulator(**kwargs)
