"""
Environment Checklist Tests
===========================
"""

import logging

from karma_diary.config import DEFAULT_JWT_SECRET, Settings
from karma_diary.core.env_check import check_environment, log_environment_report, mask_value


def _settings(**values) -> Settings:
    base = {
        "JWT_SECRET": "x" * 40,
        "DATABASE_URL": "postgresql://karma:pw@localhost:5432/karma",
        "BOT_MODE": "polling",
        "_env_file": None,
    }
    base.update(values)
    return Settings(**base)


class TestMasking:

    def test_sensitive_values_are_masked(self):
        assert mask_value("OPENAI_API_KEY", "sk-1234567890abcdef") == "sk-1…cdef"

    def test_short_sensitive_values_are_hidden(self):
        assert mask_value("WEBHOOK_SECRET", "abc") == "***"

    def test_plain_values_are_shown(self):
        assert mask_value("FRONTEND_URL", "https://karmic-diary.app") == "https://karmic-diary.app"


class TestCheckEnvironment:

    def test_complete_required_set_passes(self):
        report = check_environment(_settings())
        assert report.ok
        assert report.missing_required == []
        assert "DATABASE_URL" in report.present
        assert "pw@" not in report.present["DATABASE_URL"]

    def test_missing_database_url(self):
        report = check_environment(_settings(DATABASE_URL=""))
        assert report.missing_required == ["DATABASE_URL"]
        assert not report.ok

    def test_default_jwt_secret_warns(self):
        report = check_environment(_settings(JWT_SECRET=DEFAULT_JWT_SECRET))
        assert any("default" in w for w in report.warnings)

    def test_short_jwt_secret_warns(self):
        report = check_environment(_settings(JWT_SECRET="short"))
        assert any("shorter" in w for w in report.warnings)

    def test_webhook_mode_without_secret_warns(self):
        report = check_environment(_settings(BOT_MODE="webhook", WEBHOOK_SECRET=""))
        assert any("webhook" in w for w in report.warnings)

    def test_report_only_logs(self, caplog):
        with caplog.at_level(logging.INFO, logger="karma_diary.core.env_check"):
            log_environment_report(check_environment(_settings(DATABASE_URL="")))
        assert "missing (required)" in caplog.text
