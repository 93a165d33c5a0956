import logging

import pytest

from engines.calculator import run_calculator, run_guided
from engines.guided import apply_industry_preset
from engines.parameters import _default_inputs, normalize_inputs


def make_inputs(**kwargs):
    defaults = _default_inputs()
    defaults.update(kwargs)
    return defaults


def test_run_calculator_default_inputs():
    result = run_calculator(make_inputs())
    assert result["cost"]["totalCost"] == pytest.approx(10926.07)
    assert result["roi"]["annualPlatformCost"] == 9600
    assert result["roi"]["setupCost"] == 2000
    assert result["roi"]["scenario"] == "base"
    assert result["sensitivity"]["dimension"] == "churn"
    assert result["sensitivity"]["baseTotal"] == pytest.approx(result["cost"]["totalCost"])
    assert result["consistency"]["warn"] is False
    assert result["attributionWeightApplied"] is False


def test_attribution_weight_is_reported_but_not_applied():
    low = run_calculator(make_inputs(attributionWeightPct=5))
    high = run_calculator(make_inputs(attributionWeightPct=90))
    assert low["attributionWeightPct"] == 5
    assert high["attributionWeightPct"] == 90
    assert low["cost"] == high["cost"]
    assert low["roi"] == high["roi"]


def test_missing_inputs_fall_back_to_defaults():
    assert run_calculator({}, defaults=_default_inputs())["cost"] == run_calculator(make_inputs())["cost"]


def test_ui_choices_are_threaded_through():
    result = run_calculator(make_inputs(), scenario="aggressive", distribution="concentrated", dimension="deflection")
    assert result["roi"]["scenarioLabel"] == "Aggressive"
    assert result["distribution"] == "concentrated"
    assert result["sensitivity"]["dimension"] == "deflection"
    uniform = run_calculator(make_inputs())
    assert result["cost"]["impactedCustomers"] == pytest.approx(uniform["cost"]["impactedCustomers"] * 0.6)


def test_volume_mismatch_is_advisory_only():
    result = run_calculator(make_inputs(dailyQueries=1000, customers=100))
    assert result["consistency"]["warn"] is True
    assert result["cost"]["totalCost"] > 0


def test_run_guided_smb_preset():
    result = run_guided(apply_industry_preset("smb"))
    assert result["derived"]["conflictRate"] == 29
    assert result["projectedInputs"] == normalize_inputs(_default_inputs())
    assert result["consistency"]["ratio"] == pytest.approx(36500 / 30000)
    assert result["consistency"]["warn"] is False


def test_run_guided_then_calculate_matches_expert_defaults():
    projected = run_guided(apply_industry_preset("smb"))["projectedInputs"]
    assert run_calculator(projected)["cost"] == run_calculator(make_inputs())["cost"]


def test_unknown_distribution_is_reported_as_applied_and_warned_once(caplog):
    with caplog.at_level(logging.WARNING):
        result = run_calculator({}, distribution="lumpy", defaults=_default_inputs())
    assert result["distribution"] == "uniform"
    warnings = [r for r in caplog.records if "Unknown usage distribution" in r.getMessage()]
    assert len(warnings) == 1
    assert result["cost"] == run_calculator(make_inputs())["cost"]


def test_unknown_dimension_is_warned_once(caplog):
    with caplog.at_level(logging.WARNING):
        result = run_calculator(make_inputs(), dimension="latency")
    assert result["sensitivity"]["dimension"] == "churn"
    assert caplog.text.count("Unknown sensitivity dimension") == 1
