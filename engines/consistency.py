"""
KB ROI Calculator - Consistency Check
Advisory only: compares annual query volume implied by the daily rate with the
volume extrapolated from customer count. A >3× gap is surfaced to the user;
it never blocks or alters any computed result.
"""
import logging
from engines.parameters import to_number, GUIDED_QUERIES_PER_CUSTOMER

DIVERGENCE_THRESHOLD = 3.0


def check_consistency(daily_queries, customers, queries_per_customer=None):
    daily_q = max(0.0, to_number(daily_queries))
    custs = max(0.0, to_number(customers))
    qpc = max(0.0, to_number(queries_per_customer)) or GUIDED_QUERIES_PER_CUSTOMER

    implied_annual = daily_q * 365
    customer_annual = custs * qpc

    if implied_annual == 0 or customer_annual == 0:
        return {'impliedAnnual': implied_annual, 'customerAnnual': customer_annual,
                'ratio': 0.0, 'warn': False}

    ratio = max(implied_annual, customer_annual) / min(implied_annual, customer_annual)
    warn = ratio > DIVERGENCE_THRESHOLD
    if warn:
        logging.info(f"Query volume mismatch: {implied_annual:,.0f}/yr implied vs "
                     f"{customer_annual:,.0f}/yr from customers ({ratio:.1f}x)")
    return {
        'impliedAnnual': implied_annual,
        'customerAnnual': customer_annual,
        'ratio': ratio,
        'warn': warn,
    }
