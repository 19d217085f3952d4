import pytest

from donotimer.config import Settings
from donotimer.helpers import parse_instant


def test_defaults():
    s = Settings.from_env({})
    assert s.initial_target_at == parse_instant("2026-02-28T15:00:00+07:00")
    assert s.rp_per_unit == 1000
    assert s.seconds_per_unit == 1
    assert s.backend == "file"
    assert s.admin_password == ""


def test_seconds_per_unit_wins_over_time_unit():
    s = Settings.from_env({"SECONDS_PER_UNIT": "540", "TIME_UNIT": "minutes"})
    assert s.seconds_per_unit == 540


def test_legacy_time_unit():
    assert Settings.from_env({"TIME_UNIT": "minutes"}).seconds_per_unit == 60


@pytest.mark.parametrize("env, name", [
    ({"RP_PER_UNIT": "0"}, "RP_PER_UNIT"),
    ({"RP_PER_UNIT": "lots"}, "RP_PER_UNIT"),
    ({"SECONDS_PER_UNIT": "-1"}, "SECONDS_PER_UNIT"),
    ({"INITIAL_TARGET_DATETIME": "soon"}, "INITIAL_TARGET_DATETIME"),
    ({"INITIAL_TARGET_DATETIME": "9999-12-31T23:59:59-05:00"},
     "INITIAL_TARGET_DATETIME"),
    ({"DISPLAY_TIMEZONE": "Mars/Olympus_Mons"}, "DISPLAY_TIMEZONE"),
    ({"STATE_BACKEND": "mongo"}, "STATE_BACKEND"),
])
def test_invalid_config_fails_fast(env, name):
    with pytest.raises(ValueError, match=name):
        Settings.from_env(env)
