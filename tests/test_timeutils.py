"""
Time Normalization and Settings Tests
"""
from datetime import datetime, timedelta, timezone

import pytest

from tablebook.config import Settings, parse_staff_tokens
from tablebook.errors import ValidationError
from tablebook.timeutils import ensure_utc, normalize_slot, to_storage


class TestNormalizeSlot:
    """Test suite for normalize_slot"""

    def test_naive_value_uses_restaurant_zone(self):
        result = normalize_slot(datetime(2025, 1, 15, 19, 0), "Europe/Moscow")
        assert result == datetime(2025, 1, 15, 16, 0, tzinfo=timezone.utc)

    def test_daylight_saving_is_respected(self):
        winter = normalize_slot(datetime(2025, 1, 15, 19, 0), "Europe/Berlin")
        summer = normalize_slot(datetime(2025, 7, 15, 19, 0), "Europe/Berlin")
        assert winter.hour == 18
        assert summer.hour == 17

    def test_aware_value_ignores_restaurant_zone(self):
        value = datetime(2025, 1, 15, 19, 0, tzinfo=timezone(timedelta(hours=-5)))
        result = normalize_slot(value, "Asia/Tokyo")
        assert result == datetime(2025, 1, 16, 0, 0, tzinfo=timezone.utc)

    def test_unknown_zone(self):
        with pytest.raises(ValidationError):
            normalize_slot(datetime(2025, 1, 15, 19, 0), "Mars/Olympus_Mons")


def test_ensure_utc_and_storage_round_trip():
    aware = datetime(2025, 3, 1, 12, 0, tzinfo=timezone(timedelta(hours=2)))
    stored = to_storage(aware)
    assert stored.tzinfo is None
    assert stored == datetime(2025, 3, 1, 10, 0)
    assert ensure_utc(stored) == aware


def test_parse_staff_tokens():
    tokens = parse_staff_tokens("alice:1,2; owner:* ;broken;:5;bob:3")
    assert tokens == {"alice": {"1", "2"}, "owner": {"*"}, "bob": {"3"}}
    assert parse_staff_tokens(None) == {}


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PENDING_TIMEOUT_SECONDS", "60")
    monkeypatch.setenv("AUTO_COMPLETE", "yes")
    monkeypatch.setenv("STAFF_TOKENS", "t:7")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    settings = Settings.from_env()

    assert settings.pending_timeout_seconds == 60
    assert settings.auto_complete is True
    assert settings.staff_tokens == {"t": {"7"}}
    assert settings.log_level == "DEBUG"
    assert settings.lookahead_minutes == 60
