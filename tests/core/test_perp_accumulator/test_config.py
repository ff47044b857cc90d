"""Tests for src/core/perp_accumulator/config.py — YAML parameter loading."""

import pytest

from src.core.perp_accumulator import (
    FeeParameter,
    MarketParameter,
    PController,
    load_market_parameter,
    load_parameters,
    load_risk_parameter,
)
from src.core.perp_accumulator.config import market_parameter_from_dict, risk_parameter_from_dict
from src.core.perp_accumulator.errors import ContractViolationError
from src.core.perp_accumulator.fixed import parse

DOC = """\
market:
  funding_fee: "0.02"
  position_fee: "0.1"
  closed: false
risk:
  taker_fee: {linear_fee: "0.001", adiabatic_fee: "0.0005", scale: "1000"}
  p_controller: {k: "40000", min: "-1.2", max: "1.2"}
  skew_scale: "1000"
  maker_receive_only: true
"""


def _write(tmp_path, text: str):
    path = tmp_path / "params.yaml"
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# load_parameters
# ---------------------------------------------------------------------------

class TestLoad:
    def test_full_document(self, tmp_path):
        market, risk = load_parameters(_write(tmp_path, DOC))
        assert market == MarketParameter(funding_fee=parse("0.02"), position_fee=parse("0.1"))
        assert risk.taker_fee == FeeParameter(
            linear_fee=parse("0.001"), adiabatic_fee=parse("0.0005"), scale=parse("1000"),
        )
        assert risk.maker_fee == FeeParameter()
        assert risk.p_controller == PController(k=parse("40000"), min=parse("-1.2"), max=parse("1.2"))
        assert risk.skew_scale == parse("1000")
        assert risk.maker_receive_only

    def test_single_section_helpers(self, tmp_path):
        path = _write(tmp_path, DOC)
        assert load_market_parameter(path).funding_fee == parse("0.02")
        assert load_risk_parameter(path).skew_scale == parse("1000")

    def test_empty_sections_default(self, tmp_path):
        market, risk = load_parameters(_write(tmp_path, "market:\nrisk:\n"))
        assert market == MarketParameter()
        assert risk.p_controller == PController()

    def test_integers_accepted(self, tmp_path):
        market, _ = load_parameters(_write(tmp_path, "market:\n  risk_fee: 1\n"))
        assert market.risk_fee == parse("1")

    def test_not_a_mapping(self, tmp_path):
        with pytest.raises(TypeError):
            load_parameters(_write(tmp_path, "- 1\n- 2\n"))

    def test_unknown_top_level(self, tmp_path):
        with pytest.raises(ContractViolationError):
            load_parameters(_write(tmp_path, "market: {}\noracle: {}\n"))


# ---------------------------------------------------------------------------
# Value parsing
# ---------------------------------------------------------------------------

class TestValues:
    def test_float_rejected(self):
        with pytest.raises(ContractViolationError):
            market_parameter_from_dict({"funding_fee": 0.02})

    def test_too_precise_rejected(self):
        with pytest.raises(ContractViolationError):
            market_parameter_from_dict({"funding_fee": "0.0000001"})

    def test_unknown_key(self):
        with pytest.raises(ContractViolationError):
            market_parameter_from_dict({"funding": "0.1"})
        with pytest.raises(ContractViolationError):
            risk_parameter_from_dict({"taker_fee": {"slope": "1"}})

    def test_flag_must_be_bool(self):
        with pytest.raises(ContractViolationError):
            market_parameter_from_dict({"closed": "yes"})

    def test_section_must_be_mapping(self):
        with pytest.raises(TypeError):
            risk_parameter_from_dict({"p_controller": "fast"})

    def test_negative_fee_rejected(self):
        with pytest.raises(ContractViolationError):
            market_parameter_from_dict({"taker_fee": "-0.1"})
