"""
KB ROI Calculator - Guided Derivation Engine
Turns raw operational counts (articles, conversations, tickets, churn mentions)
into the four abstract rates the cost model needs, plus a rework proxy.

Heuristics are deliberately simple and interpretable:
  Conflict:      stale% × contributor step × review-process factor × 0.55   [3, 90]
  Deflection:    AI tickets / AI conversations                                [0, 80]
  Hallucination: wrong tickets × silent multiplier / AI conversations         [10, 95]
  Churn:         annualised churn mentions / customers exposed to bad answers [1, 80]
  Rework:        stale% × 0.8                                                  [20, 90]

Every function takes a GuidedInputSet dict and is total: missing or junk
fields read as 0, and every denominator is floored at 1.
"""
from engines.parameters import (
    clamp, round_half_up, normalize_guided, normalize_inputs, _default_inputs,
    REVIEW_PROCESS_FACTORS, REVIEW_PROCESS_LABELS, INDUSTRY_PRESETS,
    GUIDED_QUERIES_PER_CUSTOMER, DEFAULT_ATTRIBUTION_WEIGHT, DAYS_PER_MONTH,
)


def _stale_ratio(g):
    total = max(g['totalArticles'], 1)
    stale = min(g['staleArticles'], total)
    return stale / total


def _contributor_factor(contributors):
    """More writers = more divergent articles."""
    if contributors <= 2: return 0.8
    if contributors <= 5: return 1.0
    if contributors <= 10: return 1.15
    return 1.3


def derive_conflict_rate(guided):
    g = normalize_guided(guided)
    process_factor = REVIEW_PROCESS_FACTORS[g['reviewProcess']]
    cr = round_half_up(_stale_ratio(g) * 100 * _contributor_factor(g['contributors']) * process_factor * 0.55)
    return clamp(cr, 3, 90)


def derive_deflection_failure_rate(guided):
    g = normalize_guided(guided)
    convos = max(g['aiConversations'], 1)
    return min(80, round_half_up(g['aiTickets'] / convos * 100))


def derive_hallucination_rate(guided):
    """Wrong-answer tickets scaled by the silent-failure multiplier (users who never file)."""
    g = normalize_guided(guided)
    convos = max(g['aiConversations'], 1)
    silent_mult = max(g['silentMultiplier'], 1)
    estimated_hallucinated = g['wrongTickets'] * silent_mult
    return clamp(round_half_up(estimated_hallucinated / convos * 100), 10, 95)


def derive_churn_rate(guided, conflict_rate=None, hallucination_rate=None):
    """AI-attributable churn among customers exposed to bad answers.

    conflict_rate / hallucination_rate may be passed in when already derived;
    otherwise they are derived from the same guided set.
    """
    g = normalize_guided(guided)
    if conflict_rate is None:
        conflict_rate = derive_conflict_rate(g)
    if hallucination_rate is None:
        hallucination_rate = derive_hallucination_rate(g)
    daily_q = g['aiConversations'] / DAYS_PER_MONTH
    bad_per_year = daily_q * conflict_rate / 100 * hallucination_rate / 100 * 365
    customers = max(g['customers'], 1)
    impacted = min(customers, bad_per_year / GUIDED_QUERIES_PER_CUSTOMER)
    annualized_mentions = g['churnMentions'] * 2  # six-month window
    if impacted > 0:
        rate = min(80, round_half_up(annualized_mentions / impacted * 100))
    else:
        rate = 5
    return max(1, rate)


def derive_rework_caused_rate(guided):
    g = normalize_guided(guided)
    return clamp(round_half_up(_stale_ratio(g) * 100 * 0.8), 20, 90)


def derive_guided_rates(guided):
    """All derived parameters for the guided panel in one pass."""
    g = normalize_guided(guided)
    cr = derive_conflict_rate(g)
    hr = derive_hallucination_rate(g)
    stale_pct = round_half_up(_stale_ratio(g) * 100)
    contributors = round_half_up(g['contributors'])
    return {
        'conflictRate': cr,
        'deflectionFailureRate': derive_deflection_failure_rate(g),
        'hallucinationRate': hr,
        'churnRate': derive_churn_rate(g, cr, hr),
        'reworkCausedRate': derive_rework_caused_rate(g),
        'dailyQueries': round_half_up(g['aiConversations'] / DAYS_PER_MONTH),
        'stalePct': stale_pct,
        'conflictSource': f"{stale_pct}% stale x {REVIEW_PROCESS_LABELS[g['reviewProcess']]} x {contributors} contributors",
    }


def project_guided_inputs(guided, base=None):
    """Guided -> expert transfer: build an InputSet from derived rates and guided costs.

    Fields the guided set has no counterpart for (queriesPerCustomer,
    revenueAtRiskPct) are taken from `base`, else the expert defaults.
    """
    g = normalize_guided(guided)
    derived = derive_guided_rates(g)
    projected = dict(base) if base else _default_inputs()
    projected.update({
        'conflictRate': derived['conflictRate'],
        'hallucinationRate': derived['hallucinationRate'],
        'deflectionFailureRate': derived['deflectionFailureRate'],
        'churnRate': derived['churnRate'],
        'reworkCausedRate': derived['reworkCausedRate'],
        'dailyQueries': derived['dailyQueries'],
        'customers': g['customers'],
        'costPerEscalation': g['ticketCost'],
        'accountValue': g['accountValue'],
        'reworkHoursPerMonth': g['reworkHours'],
        'reworkHourlyRate': g['reworkRate'],
        'monthlyPlatformCost': g['platformCost'],
        'setupCost': g['setupCost'],
        'attributionWeightPct': DEFAULT_ATTRIBUTION_WEIGHT,
    })
    return normalize_inputs(projected)


def apply_industry_preset(key):
    """Fresh GuidedInputSet for an industry preset ('smb' | 'mid' | 'ent')."""
    preset = INDUSTRY_PRESETS[str(key).strip().lower()]
    return dict(preset, reviewProcess='none')
