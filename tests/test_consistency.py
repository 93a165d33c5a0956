import logging

import pytest

from engines.consistency import check_consistency


def test_divergent_volumes_warn(caplog):
    with caplog.at_level(logging.INFO):
        result = check_consistency(1000, 100, 200)
    assert result["impliedAnnual"] == 365000
    assert result["customerAnnual"] == 20000
    assert result["ratio"] == pytest.approx(18.25)
    assert result["warn"] is True
    assert "18.2x" in caplog.text or "18.3x" in caplog.text


def test_close_volumes_do_not_warn():
    result = check_consistency(100, 150, 200)
    assert result["ratio"] == pytest.approx(36500 / 30000)
    assert result["warn"] is False


def test_ratio_is_symmetric():
    assert check_consistency(10, 1000, 200)["ratio"] == pytest.approx(200000 / 3650)


def test_exactly_three_times_is_not_a_warning():
    result = check_consistency(300, 182.5, 200)
    assert result["ratio"] == pytest.approx(3.0)
    assert result["warn"] is False


@pytest.mark.parametrize("daily, customers", [(0, 100), (100, 0), (0, 0), ("abc", None)])
def test_zero_volume_is_silent(daily, customers):
    result = check_consistency(daily, customers, 200)
    assert result["ratio"] == 0
    assert result["warn"] is False


def test_missing_queries_per_customer_defaults_to_200():
    assert check_consistency(1000, 100, 0)["customerAnnual"] == 20000
    assert check_consistency(1000, 100)["customerAnnual"] == 20000
