"""
KB ROI Calculator - Orchestrator
Chains the engines for one evaluation:
  guided counts → derived rates → InputSet → cost model → ROI → sensitivity
All UI state (scenario, distribution, sensitivity dimension) is passed in;
nothing is cached between calls.
"""
from engines.consistency import check_consistency
from engines.cost_model import compute_cost, compute_roi
from engines.guided import derive_guided_rates, project_guided_inputs
from engines.parameters import (
    normalize_inputs, normalize_guided, resolve_distribution, DEFAULT_SCENARIO,
    DEFAULT_DISTRIBUTION, DEFAULT_DIMENSION, GUIDED_QUERIES_PER_CUSTOMER,
)
from engines.sensitivity import build_sensitivity_table


def run_calculator(inputs, scenario=DEFAULT_SCENARIO, distribution=DEFAULT_DISTRIBUTION,
                   dimension=DEFAULT_DIMENSION, defaults=None):
    """Full expert-mode evaluation. Missing input fields fall back to `defaults`."""
    i = normalize_inputs(inputs, base=defaults)
    distribution = resolve_distribution(distribution)
    cost = compute_cost(i['conflictRate'], i, distribution=distribution)
    roi = compute_roi(cost, scenario, i['monthlyPlatformCost'] * 12, i['setupCost'])
    return {
        'inputs': i,
        'cost': cost,
        'roi': roi,
        'sensitivity': build_sensitivity_table(i, dimension, distribution),
        'consistency': check_consistency(i['dailyQueries'], i['customers'], i['queriesPerCustomer']),
        'distribution': distribution,
        'attributionWeightPct': i['attributionWeightPct'],
        'attributionWeightApplied': False,
    }


def run_guided(guided, base=None):
    """Guided-mode evaluation: derived panel, expert projection, volume check."""
    g = normalize_guided(guided)
    derived = derive_guided_rates(g)
    return {
        'guided': g,
        'derived': derived,
        'projectedInputs': project_guided_inputs(g, base),
        'consistency': check_consistency(derived['dailyQueries'], g['customers'],
                                         GUIDED_QUERIES_PER_CUSTOMER),
    }
