import logging
import random

import pytest

from engines.guided import (
    apply_industry_preset,
    derive_churn_rate,
    derive_conflict_rate,
    derive_deflection_failure_rate,
    derive_guided_rates,
    derive_hallucination_rate,
    derive_rework_caused_rate,
    project_guided_inputs,
)
from engines.parameters import INDUSTRY_PRESETS, _default_inputs, normalize_inputs


def make_guided(**kwargs):
    defaults = dict(INDUSTRY_PRESETS["smb"], reviewProcess="none")
    defaults.update(kwargs)
    return defaults


def test_conflict_rate_smb_scenario():
    guided = make_guided(staleArticles=80, totalArticles=200, contributors=3, reviewProcess="none")
    # round(0.4 * 100 * 1.0 * 1.3 * 0.55) = round(28.6)
    assert derive_conflict_rate(guided) == 29


@pytest.mark.parametrize(
    "contributors, expected",
    [(0, 22), (2, 22), (3, 28), (5, 28), (10, 32), (11, 36)],
)
def test_conflict_rate_contributor_steps(contributors, expected):
    guided = make_guided(staleArticles=50, totalArticles=100, contributors=contributors, reviewProcess="informal")
    assert derive_conflict_rate(guided) == expected


@pytest.mark.parametrize("process, expected", [("none", 29), ("informal", 22), ("formal", 14), ("no", 29), ("yes", 14)])
def test_conflict_rate_review_process(process, expected):
    assert derive_conflict_rate(make_guided(reviewProcess=process)) == expected


def test_conflict_rate_unknown_process_falls_back_to_none(caplog):
    with caplog.at_level(logging.WARNING):
        assert derive_conflict_rate(make_guided(reviewProcess="sometimes")) == 29
    assert "sometimes" in caplog.text


def test_conflict_rate_clamps():
    assert derive_conflict_rate(make_guided(staleArticles=0)) == 3
    assert derive_conflict_rate(make_guided(staleArticles=200, contributors=20)) == 90
    # stale count larger than the article count is capped at the total
    assert derive_conflict_rate(make_guided(staleArticles=900, totalArticles=200, contributors=20)) == 90


def test_deflection_failure_rate():
    assert derive_deflection_failure_rate(make_guided(aiConversations=3000, aiTickets=180)) == 6
    assert derive_deflection_failure_rate(make_guided(aiConversations=100, aiTickets=500)) == 80
    assert derive_deflection_failure_rate(make_guided(aiConversations=0, aiTickets=0)) == 0


def test_hallucination_rate_uses_silent_multiplier():
    assert derive_hallucination_rate(make_guided(wrongTickets=60, silentMultiplier=7, aiConversations=3000)) == 14
    # multiplier below 1 is floored at 1
    assert derive_hallucination_rate(make_guided(wrongTickets=600, silentMultiplier=0, aiConversations=3000)) == 20


def test_hallucination_rate_clamps():
    assert derive_hallucination_rate(make_guided(wrongTickets=0)) == 10
    assert derive_hallucination_rate(make_guided(wrongTickets=3000, silentMultiplier=7)) == 95


def test_churn_rate_smb():
    # 6 annualised mentions over ~7.41 exposed customers -> 81%, capped at 80
    assert derive_churn_rate(make_guided()) == 80


def test_churn_rate_defaults_to_five_without_exposure():
    assert derive_churn_rate(make_guided(aiConversations=0)) == 5


def test_churn_rate_floor():
    assert derive_churn_rate(make_guided(churnMentions=0)) == 1


def test_churn_rate_accepts_precomputed_rates():
    guided = make_guided()
    assert derive_churn_rate(guided, 29, 14) == derive_churn_rate(guided)


def test_rework_caused_rate():
    assert derive_rework_caused_rate(make_guided()) == 32
    assert derive_rework_caused_rate(make_guided(staleArticles=0)) == 20
    assert derive_rework_caused_rate(make_guided(staleArticles=500)) == 80


def test_derive_guided_rates_mid_preset():
    derived = derive_guided_rates(apply_industry_preset("mid"))
    assert derived["conflictRate"] == 34
    assert derived["deflectionFailureRate"] == 7
    assert derived["hallucinationRate"] == 16
    assert derived["churnRate"] == 60
    assert derived["reworkCausedRate"] == 33
    assert derived["dailyQueries"] == 600


def test_derive_guided_rates_explains_conflict_source():
    derived = derive_guided_rates(make_guided())
    assert derived["stalePct"] == 40
    assert derived["conflictSource"] == "40% stale x no process x 3 contributors"


def test_junk_fields_fail_soft():
    guided = {"totalArticles": "abc", "staleArticles": None, "aiConversations": "", "wrongTickets": "lots"}
    derived = derive_guided_rates(guided)
    assert derived["conflictRate"] == 3
    assert derived["deflectionFailureRate"] == 0
    assert derived["hallucinationRate"] == 10
    assert derived["churnRate"] == 5
    assert derived["reworkCausedRate"] == 20
    assert derived["dailyQueries"] == 0


def _random_value(rng):
    choice = rng.random()
    if choice < 0.15:
        return 0
    if choice < 0.25:
        return -rng.uniform(0, 1e4)
    if choice < 0.35:
        return rng.uniform(1e6, 1e12)
    if choice < 0.40:
        return "n/a"
    return rng.uniform(0, 5000)


def test_range_invariants_under_fuzzing():
    rng = random.Random(20240601)
    fields = list(INDUSTRY_PRESETS["smb"])
    for _ in range(500):
        guided = {field: _random_value(rng) for field in fields}
        guided["reviewProcess"] = rng.choice(["none", "informal", "formal", "bogus", None])
        assert 3 <= derive_conflict_rate(guided) <= 90
        assert 0 <= derive_deflection_failure_rate(guided) <= 80
        assert 10 <= derive_hallucination_rate(guided) <= 95
        assert 1 <= derive_churn_rate(guided) <= 80
        assert 20 <= derive_rework_caused_rate(guided) <= 90


def test_project_guided_inputs_matches_expert_defaults_for_smb():
    projected = project_guided_inputs(apply_industry_preset("smb"))
    assert projected == normalize_inputs(_default_inputs())
    assert projected["attributionWeightPct"] == 15


def test_project_guided_inputs_keeps_base_only_fields():
    base = dict(_default_inputs(), queriesPerCustomer=50, revenueAtRiskPct=40)
    projected = project_guided_inputs(apply_industry_preset("mid"), base)
    assert projected["queriesPerCustomer"] == 50
    assert projected["revenueAtRiskPct"] == 40
    assert projected["costPerEscalation"] == 50
    assert projected["dailyQueries"] == 600
    assert base["dailyQueries"] == 100


def test_apply_industry_preset_returns_fresh_copy():
    preset = apply_industry_preset("SMB")
    preset["totalArticles"] = 1
    assert INDUSTRY_PRESETS["smb"]["totalArticles"] == 200
    assert preset["reviewProcess"] == "none"


def test_apply_industry_preset_unknown():
    with pytest.raises(KeyError):
        apply_industry_preset("megacorp")
