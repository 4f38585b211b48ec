"""Tests for settings and startup validation."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from availability.config import Settings


def make(**overrides):
    return Settings(_env_file=None, **overrides)


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PIXELS_PER_HOUR", raising=False)
        s = make()
        assert s.pixels_per_hour == 100
        assert s.min_duration_minutes == 15
        assert s.max_duration_minutes == 480
        assert s.long_press_ms == 500
        assert s.feedback_log_size == 500

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PIXELS_PER_HOUR", "60")
        monkeypatch.setenv("REFRESH_ATTEMPTS", "2")
        s = make()
        assert s.pixels_per_hour == 60
        assert s.refresh_attempts == 2


class TestValidateStartup:
    def test_warns_without_calendar(self):
        warnings = make(google_service_account_json="").validate_startup()
        assert any("GOOGLE_SERVICE_ACCOUNT_JSON not set" in w for w in warnings)

    def test_warns_on_placeholder(self):
        warnings = make(
            google_service_account_json="path/to/service-account.json"
        ).validate_startup()
        assert any("placeholder" in w for w in warnings)

    def test_clean_configuration(self):
        assert make(google_service_account_json="/secrets/sa.json").validate_startup() == []

    @pytest.mark.parametrize(
        "overrides",
        [
            {"pixels_per_hour": 0},
            {"min_duration_minutes": 0},
            {"min_duration_minutes": 500, "max_duration_minutes": 480},
            {"feedback_log_size": 0},
        ],
    )
    def test_rejects_bad_geometry(self, overrides):
        with pytest.raises(ValueError):
            make(**overrides).validate_startup()

    def test_warns_when_refresh_disabled(self):
        warnings = make(
            refresh_attempts=0, google_service_account_json="/secrets/sa.json"
        ).validate_startup()
        assert len(warnings) == 1
        assert "REFRESH_ATTEMPTS" in warnings[0]
