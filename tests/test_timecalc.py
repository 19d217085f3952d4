import pytest

from donotimer.helpers import parse_instant
from donotimer.timecalc import (
    format_hhmmss, format_local, percentage_remaining, rate_label,
    reduction_seconds, remaining_seconds, subtract_seconds,
)

from tests.conftest import HOUR_MS, T0


class TestFormatHHMMSS:
    @pytest.mark.parametrize("seconds, expected", [
        (0, "00:00:00"),
        (3661, "01:01:01"),
        (-5, "00:00:00"),
        (59.9, "00:00:59"),
        (360000, "100:00:00"),
    ])
    def test_format(self, seconds, expected):
        assert format_hhmmss(seconds) == expected


class TestReduction:
    def test_example_rate(self):
        assert reduction_seconds(5000, 1000, 540) == 2700

    @pytest.mark.parametrize("amount", [1, 500, 999, 999.99])
    def test_below_one_unit_is_zero(self, amount):
        assert reduction_seconds(amount, 1000, 60) == 0

    def test_partial_units_are_dropped(self):
        assert reduction_seconds(2999, 1000, 60) == 120


class TestRemaining:
    def test_whole_seconds_floor(self):
        assert remaining_seconds(T0 + 1999, T0) == 1

    def test_never_negative(self):
        assert remaining_seconds(T0 - 5000, T0) == 0

    def test_subtract_clamps_to_now(self):
        assert subtract_seconds(T0 + 10_000, 60, T0) == T0
        assert subtract_seconds(T0 + 120_000, 60, T0) == T0 + 60_000


class TestPercentage:
    def test_full_when_target_equals_baseline(self):
        target = T0 + HOUR_MS
        assert percentage_remaining(target, target, T0) == 100

    def test_half(self):
        assert percentage_remaining(T0 + HOUR_MS, T0 + HOUR_MS // 2,
                                    T0) == 50

    def test_rounds_to_two_decimals(self):
        assert percentage_remaining(T0 + 3000, T0 + 1000, T0) == 33.33

    def test_decays_as_clock_nears_baseline(self):
        initial, target = T0 + HOUR_MS, T0 + HOUR_MS // 2
        early = percentage_remaining(initial, target, T0)
        later = percentage_remaining(initial, target, T0 + HOUR_MS // 3)
        assert later < early

    @pytest.mark.parametrize("initial, target", [
        (T0, T0 + HOUR_MS),          # baseline already passed
        (T0 + HOUR_MS, T0),          # target pulled to now
        (T0 - HOUR_MS, T0 - HOUR_MS),
    ])
    def test_zero_when_window_closed(self, initial, target):
        assert percentage_remaining(initial, target, T0) == 0

    def test_capped_at_100(self):
        # target pushed past the baseline
        assert percentage_remaining(T0 + HOUR_MS, T0 + 2 * HOUR_MS, T0) == 100


class TestLabels:
    def test_rate_label_minutes(self):
        assert rate_label(1000, 540) == "Rp 1,000 / 9 min"

    def test_rate_label_seconds(self):
        assert rate_label(5000, 90) == "Rp 5,000 / 90 sec"

    def test_format_local_jakarta(self):
        # 08:00 UTC is 15:00 in Jakarta (UTC+7)
        ts = T0 + 8 * HOUR_MS
        assert format_local(ts, "Asia/Jakarta") == "January 01, 2026 15:00:00"

    def test_format_local_past_year_9999_falls_back_to_utc(self):
        ts = parse_instant("9999-12-31T20:00:00Z")
        assert format_local(ts, "Asia/Jakarta") == (
            "December 31, 9999 20:00:00 UTC"
        )
