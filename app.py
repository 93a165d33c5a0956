"""
KB ROI Calculator - Flask API Server
Thin view layer over the calculation engines. Every request carries its own
inputs and UI choices (scenario, distribution, sensitivity dimension);
the server only holds the loaded parameter configuration.
"""
import logging
import math
import os
from flask import Flask, jsonify, request
from engines.calculator import run_calculator, run_guided
from engines.formatting import (
    fmt_currency, fmt_count, fmt_thousands, fmt_payback, fmt_signed_pct, fmt_signed_currency,
)
from engines.guided import apply_industry_preset
from engines.parameters import (
    load_parameters, default_parameters, normalize_inputs, resolve_scenario,
    USAGE_DISTRIBUTIONS, SENSITIVITY_DIMENSIONS, INDUSTRY_PRESETS, DEFAULT_SCENARIO,
    DEFAULT_DISTRIBUTION, DEFAULT_DIMENSION,
)
from engines.sensitivity import build_sensitivity_table

app = Flask(__name__)

CONFIG = {'params': None, 'loaded': False, '_load_error': None}


def _sanitize_for_json(obj):
    """Map non-finite floats (infinite payback) to None so the JSON stays valid."""
    if isinstance(obj, float) and not math.isfinite(obj):
        return None
    elif isinstance(obj, dict):
        return {k: _sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [_sanitize_for_json(v) for v in obj]
    return obj


@app.before_request
def _ensure_loaded():
    if CONFIG['loaded']:
        return
    try:
        CONFIG['params'] = load_parameters()
        CONFIG['_load_error'] = None
    except Exception as e:
        CONFIG['params'] = default_parameters()
        CONFIG['_load_error'] = f"{type(e).__name__}: {e}"
        logging.exception("Parameter workbook failed to load, using defaults")
    CONFIG['loaded'] = True


def _body():
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else None


def _inputs_valid(body):
    """`inputs` may be omitted, but when sent it must be a JSON object."""
    inputs = body.get('inputs')
    return inputs is None or isinstance(inputs, dict)


def _scenario_for(key):
    """Scenario key resolved against the loaded (possibly overridden) table."""
    if isinstance(key, dict):
        return key
    return resolve_scenario(key or DEFAULT_SCENARIO, CONFIG['params']['recoveryScenarios'])


def _build_display(result):
    """Formatted strings the front end shows verbatim."""
    cost = result['cost']; roi = result['roi']; sens = result['sensitivity']
    return {
        'badPerDay': fmt_count(cost['badResponsesPerDay']) + '/day',
        'impacted': fmt_count(cost['impactedCustomers']) + ' users',
        'escalationsPerYear': fmt_count(cost['escalationsPerYear']),
        'churned': fmt_count(cost['churnedCustomers']) + ' at risk',
        'totalCost': fmt_currency(cost['totalCost']),
        'breakdown': {
            'escalation': '-' + fmt_currency(cost['escalationCost']),
            'churn': '-' + fmt_currency(cost['churnCost']),
            'rework': '-' + fmt_currency(cost['reworkCost']),
            'total': '-' + fmt_currency(cost['totalCost']),
        },
        'savings': {
            'escalation': '+' + fmt_currency(roi['savings']['escalation']),
            'churn': '+' + fmt_currency(roi['savings']['churn']),
            'rework': '+' + fmt_currency(roi['savings']['rework']),
            'total': '+' + fmt_currency(roi['recoveredSavings']),
        },
        'investment': {
            'annual': fmt_currency(roi['annualPlatformCost']),
            'setup': fmt_currency(roi['setupCost']),
            'total': fmt_currency(roi['totalInvestment']),
        },
        'netBenefit': fmt_signed_currency(roi['netBenefit']),
        'recurringROI': fmt_signed_pct(roi['recurringROIPct']),
        'year1ROI': fmt_signed_pct(roi['year1ROIPct']),
        'payback': fmt_payback(roi['paybackMonths']),
        'scenario': roi['scenarioLabel'],
        'attribution': f"({result['attributionWeightPct']:g}% attr.)",
        'sensitivity': [
            {'label': row['label'], 'cells': [fmt_thousands(t) for t in row['totals']]}
            for row in sens['rows']
        ],
    }


# ══════════════════════════════════════════════════════════════
#  ROUTES
# ══════════════════════════════════════════════════════════════

@app.route('/api/defaults')
def api_defaults():
    params = CONFIG['params']
    return jsonify({
        'inputs': params['inputs'],
        'recoveryScenarios': params['recoveryScenarios'],
        'distributions': USAGE_DISTRIBUTIONS,
        'sensitivityDimensions': SENSITIVITY_DIMENSIONS,
        'industryPresets': sorted(INDUSTRY_PRESETS),
        'source': params['source'],
        'loadError': CONFIG['_load_error'],
    })


@app.route('/api/presets/<key>')
def api_preset(key):
    try:
        return jsonify({'key': key, 'guided': apply_industry_preset(key)})
    except KeyError:
        return jsonify({'error': f"Unknown industry preset '{key}'"}), 404


@app.route('/api/derive', methods=['POST'])
def api_derive():
    """Guided mode: derived rates + auto-filled expert inputs."""
    body = _body()
    if body is None or not isinstance(body.get('guided'), dict):
        return jsonify({'error': 'guided object required'}), 400
    try:
        result = run_guided(body['guided'], base=CONFIG['params']['inputs'])
        return jsonify(_sanitize_for_json(dict(result, status='ok')))
    except Exception as e:
        logging.exception("Guided derivation failed")
        return jsonify({'status': 'error', 'message': str(e)}), 500


@app.route('/api/calculate', methods=['POST'])
def api_calculate():
    """Expert mode: full recompute on every input change."""
    body = _body()
    if body is None:
        return jsonify({'error': 'JSON object body required'}), 400
    if not _inputs_valid(body):
        return jsonify({'error': 'inputs object required'}), 400
    try:
        result = run_calculator(
            body.get('inputs') or {},
            scenario=_scenario_for(body.get('scenario')),
            distribution=body.get('distribution') or DEFAULT_DISTRIBUTION,
            dimension=body.get('dimension') or DEFAULT_DIMENSION,
            defaults=CONFIG['params']['inputs'],
        )
        result['display'] = _build_display(result)
        return jsonify(_sanitize_for_json(dict(result, status='ok')))
    except Exception as e:
        logging.exception("Calculation failed")
        return jsonify({'status': 'error', 'message': str(e)}), 500


@app.route('/api/sensitivity', methods=['POST'])
def api_sensitivity():
    """Sensitivity table only (dimension toggle)."""
    body = _body()
    if body is None:
        return jsonify({'error': 'JSON object body required'}), 400
    if not _inputs_valid(body):
        return jsonify({'error': 'inputs object required'}), 400
    try:
        inputs = normalize_inputs(body.get('inputs'), base=CONFIG['params']['inputs'])
        table = build_sensitivity_table(
            inputs,
            body.get('dimension') or DEFAULT_DIMENSION,
            body.get('distribution') or DEFAULT_DISTRIBUTION,
        )
        return jsonify(_sanitize_for_json(dict(table, status='ok')))
    except Exception as e:
        logging.exception("Sensitivity table failed")
        return jsonify({'status': 'error', 'message': str(e)}), 500


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=False, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
