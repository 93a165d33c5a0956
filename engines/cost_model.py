"""
KB ROI Calculator - Cost Model Engine
Annual exposure from bad AI answers, in three categories:

  Escalation: bad answers/year × deflection-failure rate × cost per escalation
  Churn:      impacted customers × churn rate × ACV × revenue at risk
  Rework:     KB rework hours/month × 12 × hourly rate × share caused by conflicts

Plus ROI derivation against the platform cost under a recovery scenario.
Inputs are InputSet dicts (percent rates); nothing here mutates them.
"""
import math
from engines.parameters import (
    normalize_inputs, clamp, to_number, distribution_multiplier, resolve_scenario,
    SENSITIVITY_DIMENSIONS,
)


def _rate(inputs, field, override_dimension, override_value):
    """Rate as a fraction; a sensitivity override replaces exactly one dimension."""
    dim = SENSITIVITY_DIMENSIONS.get(override_dimension)
    if dim and dim['field'] == field and override_value is not None:
        return clamp(to_number(override_value), 0.0, 100.0) / 100
    return inputs[field] / 100


def compute_cost(conflict_rate_pct, inputs, override_dimension=None, override_value=None,
                 distribution='uniform'):
    """
    Compute one CostBreakdown.

    Args:
        conflict_rate_pct: conflict rate in percent (row value in sensitivity runs)
        inputs: InputSet dict; missing/junk fields read as 0
        override_dimension: 'hallucination' | 'deflection' | 'churn' or None
        override_value: percent replacing that one rate for this call only
        distribution: usage distribution key scaling impacted customers

    Returns:
        dict with badResponsesPerDay, badResponsesPerYear, escalationsPerYear,
        impactedCustomers, churnedCustomers, escalationCost, churnCost,
        reworkCost, totalCost
    """
    i = normalize_inputs(inputs)
    cr = clamp(to_number(conflict_rate_pct), 0.0, 100.0) / 100
    hall_r = _rate(i, 'hallucinationRate', override_dimension, override_value)
    esc_r = _rate(i, 'deflectionFailureRate', override_dimension, override_value)
    churn_r = _rate(i, 'churnRate', override_dimension, override_value)
    dist_mult = distribution_multiplier(distribution)

    custs = i['customers']
    qpc = max(i['queriesPerCustomer'], 1)

    bad_day = i['dailyQueries'] * cr * hall_r
    bad_year = bad_day * 365
    impacted = min(custs, min(custs, bad_year / qpc) * dist_mult)
    churned = impacted * churn_r
    escalations = bad_year * esc_r
    c_esc = escalations * i['costPerEscalation']
    # attribution weight is already folded into churnRate upstream
    c_ch = churned * i['accountValue'] * (i['revenueAtRiskPct'] / 100)
    c_rw = i['reworkHoursPerMonth'] * 12 * i['reworkHourlyRate'] * (i['reworkCausedRate'] / 100)

    return {
        'badResponsesPerDay': bad_day,
        'badResponsesPerYear': bad_year,
        'escalationsPerYear': escalations,
        'impactedCustomers': impacted,
        'churnedCustomers': churned,
        'escalationCost': c_esc,
        'churnCost': c_ch,
        'reworkCost': c_rw,
        'totalCost': c_esc + c_ch + c_rw,
    }


def compute_roi(breakdown, scenario, annual_platform_cost, setup_cost):
    """Recovered savings, net benefit, recurring / year-1 ROI and payback.

    paybackMonths is math.inf when nothing is recoverable.
    """
    sc = resolve_scenario(scenario)
    annual_pl = max(0.0, to_number(annual_platform_cost))
    setup = max(0.0, to_number(setup_cost))
    total_inv = annual_pl + setup

    s_esc = breakdown['escalationCost'] * sc['escalationRecovery']
    s_ch = breakdown['churnCost'] * sc['churnRecovery']
    s_rw = breakdown['reworkCost'] * sc['reworkRecovery']
    s_tot = s_esc + s_ch + s_rw

    net_benefit = s_tot - annual_pl
    return {
        'scenario': sc['key'],
        'scenarioLabel': sc['label'],
        'savings': {'escalation': s_esc, 'churn': s_ch, 'rework': s_rw},
        'recoveredSavings': s_tot,
        'annualPlatformCost': annual_pl,
        'setupCost': setup,
        'totalInvestment': total_inv,
        'netBenefit': net_benefit,
        'recurringROIPct': net_benefit / annual_pl * 100 if annual_pl > 0 else 0.0,
        'year1ROIPct': (s_tot - total_inv) / total_inv * 100 if total_inv > 0 else 0.0,
        'paybackMonths': total_inv / s_tot * 12 if s_tot > 0 else math.inf,
    }
