from decimal import Decimal
from fractions import Fraction

import pytest

from app.core.payout import (
    apply_odds,
    compute_commission,
    compute_payout,
    multiplier_for,
    multiplier_to_str,
    odds_key,
    parse_multiplier,
    parse_rate,
    rate_to_percent_str,
)


@pytest.mark.parametrize("mode,expected", [
    ("jodi", 9000),
    ("harf", 900),
    ("crossing", 450),
    ("odd_even", 180),
    ("unknown_mode", 100),
])
def test_default_multipliers(mode, expected):
    assert compute_payout(mode, 100) == expected


def test_crossing_truncates_toward_zero():
    # 101 × 4.5 = 454.5
    assert compute_payout("crossing", 101) == 454


def test_zero_stake_pays_nothing():
    for mode in ("jodi", "harf", "crossing", "odd_even", "nope"):
        assert compute_payout(mode, 0) == 0


def test_negative_stake_clamped():
    assert compute_payout("jodi", -100) == 0


def test_override_jodi():
    assert compute_payout("jodi", 10000, {"jodi": Decimal("85.00")}) == 850000
    # 整数按百分之一
    assert compute_payout("jodi", 10000, {"jodi": 8500}) == 850000
    assert compute_payout("jodi", 10000, {"jodi": "85"}) == 850000


def test_partial_table_falls_back_to_defaults():
    table = {"jodi": 8500}
    assert compute_payout("harf", 100, table) == 900
    assert compute_payout("jodi", 100, table) == 8500


def test_float_multiplier_has_no_binary_error():
    # 0.1 + 0.2 之类的误差不应出现
    assert compute_payout("odd_even", 1000, {"odd_even": 1.1}) == 1100
    assert multiplier_for("odd_even", {"odd_even": 1.1}) == Fraction(11, 10)


def test_mode_is_case_insensitive():
    assert compute_payout("JODI", 100) == 9000


def test_idempotent():
    a = [compute_payout("crossing", s) for s in range(0, 500, 7)]
    b = [compute_payout("crossing", s) for s in range(0, 500, 7)]
    assert a == b


def test_equals_floor_of_stake_times_multiplier():
    for stake in (1, 7, 13, 99, 101, 12345):
        for mode in ("jodi", "harf", "crossing", "odd_even"):
            m = multiplier_for(mode)
            assert compute_payout(mode, stake) == int(stake * m // 1)


def test_apply_odds_matches_compute_payout():
    assert apply_odds(101, 450) == compute_payout("crossing", 101)
    assert apply_odds(100, -5) == 0


def test_odds_key():
    assert odds_key("satamatka", "jodi") == "satamatka_jodi"
    assert odds_key("team_match") == "team_match"


def test_multiplier_strings():
    assert multiplier_to_str(250) == "2.50"
    assert multiplier_to_str(9000) == "90.00"
    assert parse_multiplier("2.5") == 250
    assert parse_multiplier(Decimal("90.00")) == 9000
    assert parse_multiplier(1.95) == 195


@pytest.mark.parametrize("bad", ["-1", "1.234", "abc", "nan"])
def test_parse_multiplier_rejects(bad):
    with pytest.raises(ValueError):
        parse_multiplier(bad)


def test_commission():
    assert compute_commission(10000, 800) == 800
    assert compute_commission(999, 800) == 79
    assert compute_commission(10000, 0) == 0
    assert rate_to_percent_str(850) == "8.50"
    assert parse_rate("8.5") == 850
    with pytest.raises(ValueError):
        parse_rate("100.01")


@pytest.mark.parametrize("bad", [float("inf"), float("nan"), "abc", "Infinity", object()])
def test_bad_table_entry_falls_back_to_default(bad, caplog):
    assert compute_payout("jodi", 100, {"jodi": bad}) == 9000
    assert "bad odds entry" in caplog.text


def test_int_entries_are_hundredths():
    # 85 是 0.85 倍，不是 85 倍
    assert compute_payout("jodi", 100, {"jodi": 85}) == 85
    assert compute_payout("jodi", 100, {"jodi": Fraction(85)}) == 8500
