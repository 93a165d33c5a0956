"""
KB ROI Calculator - Sensitivity Projector
3×3 tornado-style grid: conflict rate (columns) × one secondary rate (rows),
each cell a full cost-model re-run with that rate overridden for the call.
"""
from engines.cost_model import compute_cost
from engines.parameters import (
    normalize_inputs, resolve_dimension, resolve_distribution, round_half_up, SENSITIVITY_DIMENSIONS,
)

LOW_FACTOR = 0.5
HIGH_FACTOR = 1.7
CONFLICT_RATE_MAX = 90


def _axis(base, cap):
    return {
        'low': max(1, base * LOW_FACTOR),
        'base': base,
        'high': min(cap, base * HIGH_FACTOR),
    }


def _tag(total, base_total):
    if total > base_total: return 'higher'
    if total < base_total: return 'lower'
    return 'equal'


def build_sensitivity_table(inputs, dimension='churn', distribution='uniform'):
    """Total cost across low/base/high conflict rate × low/base/high `dimension`.

    Cell values are never adjusted; tags compare against the base/base total.
    """
    i = normalize_inputs(inputs)
    dim_key = resolve_dimension(dimension)
    distribution = resolve_distribution(distribution)
    cfg = SENSITIVITY_DIMENSIONS[dim_key]

    cr_axis = _axis(i['conflictRate'], CONFLICT_RATE_MAX)
    dim_axis = _axis(i[cfg['field']], cfg['max'])
    base_total = compute_cost(cr_axis['base'], i, dim_key, dim_axis['base'], distribution)['totalCost']

    rows = []
    for level in ('low', 'base', 'high'):
        value = dim_axis[level]
        cells = []
        for col in ('low', 'base', 'high'):
            total = compute_cost(cr_axis[col], i, dim_key, value, distribution)['totalCost']
            is_base = level == 'base' and col == 'base'
            cells.append({
                'conflictRate': cr_axis[col],
                'totalCost': total,
                'tag': 'base' if is_base else _tag(total, base_total),
            })
        rows.append({
            'label': f"{level.capitalize()} ({round_half_up(value)}%)",
            'level': level,
            'value': value,
            'isBase': level == 'base',
            'totals': [c['totalCost'] for c in cells],
            'cells': cells,
        })

    return {
        'dimension': dim_key,
        'dimensionLabel': cfg['label'],
        'columns': [f"{col.capitalize()} ({round_half_up(cr_axis[col])}%)" for col in ('low', 'base', 'high')],
        'conflictRates': cr_axis,
        'baseTotal': base_total,
        'rows': rows,
    }
