"""
Environment Checklist
=====================

Boot-time report of required and optional configuration. It only logs;
a misconfigured environment still starts so health checks stay reachable.
"""

import logging
from dataclasses import dataclass, field

from karma_diary.config import DEFAULT_JWT_SECRET, Settings

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("JWT_SECRET", "DATABASE_URL")

OPTIONAL_KEYS = (
    "GOOGLE_CLIENT_ID",
    "OPENAI_API_KEY",
    "WAYFORPAY_MERCHANT",
    "WAYFORPAY_SECRET",
    "FRONTEND_URL",
    "TELEGRAM_BOT_TOKEN",
    "WEBHOOK_SECRET",
    "VAPID_PUBLIC_KEY",
    "VAPID_PRIVATE_KEY",
)

SENSITIVE_MARKERS = ("SECRET", "TOKEN", "KEY", "DATABASE_URL")

MIN_JWT_SECRET_LENGTH = 32


@dataclass
class EnvReport:
    """Outcome of the environment checklist."""
    present: dict[str, str] = field(default_factory=dict)
    missing_required: list[str] = field(default_factory=list)
    missing_optional: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.missing_required and not self.warnings


def mask_value(key: str, value: str) -> str:
    """Mask sensitive values, keeping a short prefix/suffix for recognition."""
    if not any(marker in key for marker in SENSITIVE_MARKERS):
        return value
    if len(value) <= 8:
        return "***"
    return f"{value[:4]}…{value[-4:]}"


def check_environment(settings: Settings) -> EnvReport:
    report = EnvReport()

    for key in REQUIRED_KEYS + OPTIONAL_KEYS:
        value = getattr(settings, key, None) or ""
        if value:
            report.present[key] = mask_value(key, str(value))
        elif key in REQUIRED_KEYS:
            report.missing_required.append(key)
        else:
            report.missing_optional.append(key)

    secret = settings.JWT_SECRET or ""
    if secret == DEFAULT_JWT_SECRET:
        report.warnings.append("JWT_SECRET uses the default value")
    elif secret and len(secret) < MIN_JWT_SECRET_LENGTH:
        report.warnings.append(
            f"JWT_SECRET is shorter than {MIN_JWT_SECRET_LENGTH} characters"
        )

    if settings.WAYFORPAY_MERCHANT and not settings.WAYFORPAY_SECRET:
        report.warnings.append("WAYFORPAY_MERCHANT is set without WAYFORPAY_SECRET")

    if settings.BOT_MODE.lower() == "webhook" and not settings.WEBHOOK_SECRET:
        report.warnings.append("Telegram webhook mode without WEBHOOK_SECRET")

    return report


def log_environment_report(report: EnvReport) -> None:
    for key, masked in report.present.items():
        logger.info("env %s: %s", key, masked)
    for key in report.missing_required:
        logger.warning("env %s: missing (required)", key)
    for key in report.missing_optional:
        logger.info("env %s: not set (optional)", key)
    for message in report.warnings:
        logger.warning("env check: %s", message)

    if report.ok:
        logger.info("Environment check passed")
    else:
        logger.warning("Environment check finished with problems; continuing startup")
