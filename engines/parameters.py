"""
KB ROI Calculator - Assumptions & Parameter Loader
Holds every assumption table the engines read (recovery scenarios, usage
distributions, sensitivity dimensions, industry presets, expert defaults)
and the fail-soft number parsing shared by all of them.
Consultant overrides come from config/parameters.xlsx when present.
"""
import os, re, math, logging
import openpyxl

DATA_DIR = os.environ.get(
    'KB_ROI_DATA_DIR',
    os.path.join(os.path.dirname(os.path.dirname(__file__)), 'data'),
)

# ── Recovery scenarios: share of each cost category recovered by fixing the KB ──
RECOVERY_SCENARIOS = {
    'conservative': {'escalationRecovery': 0.50, 'churnRecovery': 0.35, 'reworkRecovery': 0.50, 'label': 'Conservative'},
    'base':         {'escalationRecovery': 0.70, 'churnRecovery': 0.55, 'reworkRecovery': 0.65, 'label': 'Base Case'},
    'aggressive':   {'escalationRecovery': 0.90, 'churnRecovery': 0.75, 'reworkRecovery': 0.85, 'label': 'Aggressive'},
}
DEFAULT_SCENARIO = 'base'

# ── Usage distribution -> multiplier on impacted customers ──
USAGE_DISTRIBUTIONS = {
    'uniform':      {'multiplier': 1.0, 'hint': 'Assumes bad responses spread evenly across users (rough estimate)'},
    'concentrated': {'multiplier': 0.6, 'hint': 'Power-user skew: fewer unique customers exposed (x0.6)'},
    'distributed':  {'multiplier': 1.3, 'hint': 'Thin-usage base: more unique customers exposed (x1.3)'},
}
DEFAULT_DISTRIBUTION = 'uniform'

# ── Sensitivity dimensions: which InputSet rate each one overrides, and its cap ──
SENSITIVITY_DIMENSIONS = {
    'churn':         {'field': 'churnRate',             'label': 'Churn Rate',              'max': 80},
    'hallucination': {'field': 'hallucinationRate',     'label': 'Hallucination Rate',      'max': 95},
    'deflection':    {'field': 'deflectionFailureRate', 'label': 'Deflection Failure Rate', 'max': 80},
}
DEFAULT_DIMENSION = 'churn'

# ── KB review process -> conflict-rate modifier ──
REVIEW_PROCESS_FACTORS = {'none': 1.3, 'informal': 1.0, 'formal': 0.65}
REVIEW_PROCESS_LABELS = {'none': 'no process', 'informal': 'informal review', 'formal': 'formal review'}
REVIEW_PROCESS_SYNONYMS = {'no': 'none', 'inf': 'informal', 'yes': 'formal'}

GUIDED_QUERIES_PER_CUSTOMER = 200   # fixed assumption in guided mode
DEFAULT_ATTRIBUTION_WEIGHT = 15     # default CFO attribution filter on guided -> expert transfer
DAYS_PER_MONTH = 30

RATE_FIELDS = (
    'conflictRate', 'hallucinationRate', 'deflectionFailureRate', 'churnRate',
    'reworkCausedRate', 'revenueAtRiskPct', 'attributionWeightPct',
)
SCALE_FIELDS = ('dailyQueries', 'customers', 'queriesPerCustomer')
COST_FIELDS = (
    'costPerEscalation', 'accountValue', 'reworkHoursPerMonth', 'reworkHourlyRate',
    'monthlyPlatformCost', 'setupCost',
)
INPUT_FIELDS = SCALE_FIELDS + RATE_FIELDS + COST_FIELDS

GUIDED_FIELDS = (
    'totalArticles', 'staleArticles', 'contributors', 'aiConversations', 'aiTickets',
    'wrongTickets', 'silentMultiplier', 'ticketCost', 'customers', 'accountValue',
    'churnMentions', 'totalChurned', 'reworkHours', 'reworkRate', 'platformCost', 'setupCost',
)

# ── Industry presets for guided mode ──
INDUSTRY_PRESETS = {
    'smb': {
        'totalArticles': 200, 'staleArticles': 80, 'contributors': 3, 'aiConversations': 3000,
        'aiTickets': 180, 'wrongTickets': 60, 'silentMultiplier': 7, 'ticketCost': 35,
        'customers': 150, 'accountValue': 800, 'churnMentions': 3, 'totalChurned': 15,
        'reworkHours': 20, 'reworkRate': 40, 'platformCost': 800, 'setupCost': 2000,
    },
    'mid': {
        'totalArticles': 600, 'staleArticles': 250, 'contributors': 10, 'aiConversations': 18000,
        'aiTickets': 1200, 'wrongTickets': 420, 'silentMultiplier': 7, 'ticketCost': 50,
        'customers': 1200, 'accountValue': 8000, 'churnMentions': 18, 'totalChurned': 80,
        'reworkHours': 60, 'reworkRate': 65, 'platformCost': 5000, 'setupCost': 10000,
    },
    'ent': {
        'totalArticles': 2000, 'staleArticles': 900, 'contributors': 30, 'aiConversations': 80000,
        'aiTickets': 5600, 'wrongTickets': 2000, 'silentMultiplier': 7, 'ticketCost': 75,
        'customers': 400, 'accountValue': 60000, 'churnMentions': 12, 'totalChurned': 30,
        'reworkHours': 200, 'reworkRate': 90, 'platformCost': 15000, 'setupCost': 25000,
    },
}

# Leading numeric prefix, the way a browser's parseFloat reads a field
_NUMBER_PREFIX = re.compile(r'^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?')


def clamp(v, lo, hi):
    return max(lo, min(hi, v))


def round_half_up(v):
    """Round .5 away from zero for positives (28.5 -> 29), unlike Python's banker's round."""
    return math.floor(v + 0.5)


def to_number(value):
    """Parse any raw field value; anything unusable becomes 0.0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        text = str(value).strip().replace(',', '').rstrip('%').strip()
        match = _NUMBER_PREFIX.match(text)
        if not match:
            return 0.0
        num = float(match.group(0))
    if not math.isfinite(num):
        return 0.0
    return num


def normalize_inputs(raw, base=None):
    """Return a complete, clamped InputSet dict. `raw` is never mutated.

    Missing fields come from `base` when given, else 0. Rates are clamped
    to [0, 100]; scale and cost fields to >= 0.
    """
    raw = raw if isinstance(raw, dict) else {}
    base = base if isinstance(base, dict) else {}
    out = {}
    for key in INPUT_FIELDS:
        val = to_number(raw[key] if key in raw else base.get(key))
        if key in RATE_FIELDS:
            out[key] = clamp(val, 0.0, 100.0)
        else:
            out[key] = max(0.0, val)
    return out


def normalize_review_process(value):
    key = str(value or '').strip().lower()
    if not key:
        return 'none'
    key = REVIEW_PROCESS_SYNONYMS.get(key, key)
    if key not in REVIEW_PROCESS_FACTORS:
        logging.warning(f"Unknown review process '{value}', using 'none'")
        return 'none'
    return key


def normalize_guided(raw):
    """Return a complete GuidedInputSet dict with non-negative counts."""
    raw = raw if isinstance(raw, dict) else {}
    out = {key: max(0.0, to_number(raw.get(key))) for key in GUIDED_FIELDS}
    out['reviewProcess'] = normalize_review_process(raw.get('reviewProcess'))
    return out


def resolve_scenario(scenario, scenarios=None):
    """Accept a scenario key or an explicit {escalation,churn,rework}Recovery mapping."""
    scenarios = scenarios or RECOVERY_SCENARIOS
    if isinstance(scenario, dict):
        resolved = {k: clamp(to_number(scenario.get(k)), 0.0, 1.0)
                    for k in ('escalationRecovery', 'churnRecovery', 'reworkRecovery')}
        resolved['key'] = str(scenario.get('key') or 'custom')
        resolved['label'] = str(scenario.get('label') or 'Custom')
        return resolved
    key = str(scenario or DEFAULT_SCENARIO).strip().lower()
    if key not in scenarios:
        logging.warning(f"Unknown recovery scenario '{scenario}', using '{DEFAULT_SCENARIO}'")
        key = DEFAULT_SCENARIO
    return dict(scenarios[key], key=key)


def resolve_distribution(distribution):
    key = str(distribution or DEFAULT_DISTRIBUTION).strip().lower()
    if key not in USAGE_DISTRIBUTIONS:
        logging.warning(f"Unknown usage distribution '{distribution}', using '{DEFAULT_DISTRIBUTION}'")
        key = DEFAULT_DISTRIBUTION
    return key


def distribution_multiplier(distribution):
    return USAGE_DISTRIBUTIONS[resolve_distribution(distribution)]['multiplier']


def resolve_dimension(dimension):
    key = str(dimension or DEFAULT_DIMENSION).strip().lower()
    if key not in SENSITIVITY_DIMENSIONS:
        logging.warning(f"Unknown sensitivity dimension '{dimension}', using '{DEFAULT_DIMENSION}'")
        key = DEFAULT_DIMENSION
    return key


def read_xlsx_sheet(filepath, sheet_name=None):
    wb = openpyxl.load_workbook(filepath, read_only=True, data_only=True)
    try:
        if sheet_name and sheet_name not in wb.sheetnames:
            return []
        ws = wb[sheet_name] if sheet_name else wb.active
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if len(rows) < 2:
        return []
    headers = [str(h).strip() if h else f'col_{i}' for i, h in enumerate(rows[0])]
    return [dict(zip(headers, row)) for row in rows[1:]]


def _default_inputs():
    """Expert-mode defaults: the SMB preset after guided derivation."""
    return {
        'dailyQueries': 100, 'customers': 150, 'queriesPerCustomer': 200,
        'conflictRate': 29, 'hallucinationRate': 14, 'deflectionFailureRate': 6,
        'churnRate': 80, 'reworkCausedRate': 32, 'revenueAtRiskPct': 100,
        'attributionWeightPct': DEFAULT_ATTRIBUTION_WEIGHT,
        'costPerEscalation': 35, 'accountValue': 800,
        'reworkHoursPerMonth': 20, 'reworkHourlyRate': 40,
        'monthlyPlatformCost': 800, 'setupCost': 2000,
    }


def default_parameters():
    return {
        'inputs': _default_inputs(),
        'recoveryScenarios': {k: dict(v) for k, v in RECOVERY_SCENARIOS.items()},
        'source': 'System Default',
    }


def load_parameters(path=None):
    """Load consultant overrides from config/parameters.xlsx on top of the defaults."""
    path = path or os.path.join(DATA_DIR, 'config', 'parameters.xlsx')
    p = default_parameters()
    if not os.path.exists(path):
        return p
    param_map = {
        'Daily AI Queries': 'dailyQueries', 'Total Customers': 'customers',
        'Queries per Customer': 'queriesPerCustomer', 'Conflict Rate %': 'conflictRate',
        'Hallucination Rate %': 'hallucinationRate',
        'Deflection Failure Rate %': 'deflectionFailureRate',
        'AI-Attributable Churn Rate %': 'churnRate', 'Rework Caused by Conflicts %': 'reworkCausedRate',
        'Revenue at Risk %': 'revenueAtRiskPct', 'Attribution Weight %': 'attributionWeightPct',
        'Cost per Escalation': 'costPerEscalation', 'ACV per Customer': 'accountValue',
        'KB Rework Hours/Month': 'reworkHoursPerMonth', 'Hourly Rate': 'reworkHourlyRate',
        'Monthly Platform Cost': 'monthlyPlatformCost', 'One-Time Setup Cost': 'setupCost',
    }
    for row in read_xlsx_sheet(path, 'Assumptions'):
        key = str(row.get('Parameter', '') or '').strip()
        val = row.get('Value')
        if key in param_map and val is not None:
            p['inputs'][param_map[key]] = to_number(val)
    p['inputs'] = normalize_inputs(p['inputs'])

    column_map = {
        'Escalation Recovery': 'escalationRecovery',
        'Churn Recovery': 'churnRecovery',
        'Rework Recovery': 'reworkRecovery',
    }
    for row in read_xlsx_sheet(path, 'Recovery Scenarios'):
        name = str(row.get('Scenario', '') or '').strip().lower()
        if name not in p['recoveryScenarios']:
            continue
        for col, field in column_map.items():
            val = row.get(col)
            if val is None or val == '':
                continue
            frac = to_number(val)
            if frac > 1:  # entered as a percentage
                frac = frac / 100
            p['recoveryScenarios'][name][field] = clamp(frac, 0.0, 1.0)
    p['source'] = path
    logging.info(f"Loaded parameter overrides from {path}")
    return p
