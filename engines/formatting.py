"""
KB ROI Calculator - Display Formatting
Presentation helpers for the view layer: currency abbreviation, counts,
sensitivity $K cells, payback duration, signed percentages.
Not used by the calculation engines.
"""
import math
from engines.parameters import round_half_up

PAYBACK_SENTINEL = 'n/a'


def fmt_currency(v):
    """$1.23M / $45K / $678."""
    sign = '-' if v < 0 else ''
    v = abs(v)
    if v >= 1e6: return f"{sign}${v / 1e6:.2f}M"
    if v >= 1e3: return f"{sign}${round_half_up(v / 1e3)}K"
    return f"{sign}${round_half_up(v):,}"


def fmt_count(v):
    if v >= 1e6: return f"{v / 1e6:.1f}M"
    if v >= 1e3: return f"{round_half_up(v / 100) * 100:,}"
    return f"{round_half_up(v):,}"


def fmt_thousands(v):
    return f"${round_half_up(v / 1000)}K"


def fmt_payback(months):
    if months is None or not math.isfinite(months):
        return PAYBACK_SENTINEL
    if months < 1: return '< 1 mo'
    if months < 12: return f"{round_half_up(months)} mo"
    return f"{months / 12:.1f} yr"


def fmt_signed_pct(v):
    return f"{'+' if v >= 0 else ''}{round_half_up(v)}%"


def fmt_signed_currency(v):
    return f"+{fmt_currency(v)}" if v >= 0 else fmt_currency(v)
