"""Runtime configuration for order lifecycle, notifications and housekeeping."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from urllib.parse import urlparse


class ArchivePolicy(str, Enum):
    """Who besides the creator may archive/unarchive a completed order."""

    CREATOR_ONLY = "creator_only"
    CREATOR_OR_WORKER = "creator_or_worker"


@dataclass(slots=True)
class LifecycleSettings:
    """Order lifecycle settings."""

    cancel_reason_max_chars: int = 500
    archive_policy: ArchivePolicy = ArchivePolicy.CREATOR_ONLY


@dataclass(slots=True)
class HousekeepingSettings:
    """Periodic auto-archive and purge settings."""

    archive_after_hours: int = 12
    archive_interval_seconds: int = 600
    purge_interval_seconds: int = 86_400
    archived_retention_days: int = 30
    notification_retention_days: int = 7


@dataclass(slots=True)
class TelegramSettings:
    """Telegram Bot API push transport settings."""

    bot_token: str = ""
    api_base_url: str = "https://api.telegram.org"
    request_timeout_seconds: float = 10.0
    max_retries: int = 2


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".paint_orders.db")
    sqlite_busy_timeout_ms: int = 5_000
    log_level: str = "WARNING"
    lifecycle: LifecycleSettings = field(default_factory=LifecycleSettings)
    housekeeping: HousekeepingSettings = field(default_factory=HousekeepingSettings)
    telegram: TelegramSettings = field(default_factory=TelegramSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("PAINT_ORDERS_DB_PATH", ".paint_orders.db")),
            sqlite_busy_timeout_ms=int(os.getenv("PAINT_ORDERS_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            log_level=os.getenv("PAINT_ORDERS_LOG_LEVEL", "WARNING").strip().upper(),
            lifecycle=LifecycleSettings(
                cancel_reason_max_chars=int(
                    os.getenv("PAINT_ORDERS_CANCEL_REASON_MAX_CHARS", "500"),
                ),
                archive_policy=_env_archive_policy(
                    "PAINT_ORDERS_ARCHIVE_POLICY",
                    default=ArchivePolicy.CREATOR_ONLY,
                ),
            ),
            housekeeping=HousekeepingSettings(
                archive_after_hours=int(os.getenv("PAINT_ORDERS_ARCHIVE_AFTER_HOURS", "12")),
                archive_interval_seconds=int(
                    os.getenv("PAINT_ORDERS_ARCHIVE_INTERVAL_SECONDS", "600"),
                ),
                purge_interval_seconds=int(
                    os.getenv("PAINT_ORDERS_PURGE_INTERVAL_SECONDS", "86400"),
                ),
                archived_retention_days=int(
                    os.getenv("PAINT_ORDERS_ARCHIVED_RETENTION_DAYS", "30"),
                ),
                notification_retention_days=int(
                    os.getenv("PAINT_ORDERS_NOTIFICATION_RETENTION_DAYS", "7"),
                ),
            ),
            telegram=TelegramSettings(
                bot_token=os.getenv("PAINT_ORDERS_TELEGRAM_BOT_TOKEN", "").strip(),
                api_base_url=os.getenv(
                    "PAINT_ORDERS_TELEGRAM_API_BASE_URL",
                    "https://api.telegram.org",
                ).rstrip("/"),
                request_timeout_seconds=float(
                    os.getenv("PAINT_ORDERS_TELEGRAM_TIMEOUT_SECONDS", "10.0"),
                ),
                max_retries=int(os.getenv("PAINT_ORDERS_TELEGRAM_MAX_RETRIES", "2")),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if any threshold or interval is out of range."""

        if self.sqlite_busy_timeout_ms <= 0:
            raise ValueError("PAINT_ORDERS_SQLITE_BUSY_TIMEOUT_MS must be > 0.")
        if self.lifecycle.cancel_reason_max_chars <= 0:
            raise ValueError("PAINT_ORDERS_CANCEL_REASON_MAX_CHARS must be > 0.")

        housekeeping = self.housekeeping
        if housekeeping.archive_after_hours <= 0:
            raise ValueError("PAINT_ORDERS_ARCHIVE_AFTER_HOURS must be > 0.")
        if housekeeping.archive_interval_seconds <= 0:
            raise ValueError("PAINT_ORDERS_ARCHIVE_INTERVAL_SECONDS must be > 0.")
        if housekeeping.purge_interval_seconds <= 0:
            raise ValueError("PAINT_ORDERS_PURGE_INTERVAL_SECONDS must be > 0.")
        if housekeeping.archived_retention_days <= 0:
            raise ValueError("PAINT_ORDERS_ARCHIVED_RETENTION_DAYS must be > 0.")
        if housekeeping.notification_retention_days <= 0:
            raise ValueError("PAINT_ORDERS_NOTIFICATION_RETENTION_DAYS must be > 0.")

        if self.telegram.request_timeout_seconds <= 0:
            raise ValueError("PAINT_ORDERS_TELEGRAM_TIMEOUT_SECONDS must be > 0.")
        if self.telegram.max_retries < 0:
            raise ValueError("PAINT_ORDERS_TELEGRAM_MAX_RETRIES must be >= 0.")
        if self.telegram.bot_token:
            _validate_api_base_url(self.telegram.api_base_url)


def _env_archive_policy(name: str, default: ArchivePolicy) -> ArchivePolicy:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    normalized = value.strip().lower()
    try:
        return ArchivePolicy(normalized)
    except ValueError as error:
        allowed = ", ".join(policy.value for policy in ArchivePolicy)
        raise ValueError(
            f"Invalid value for {name}: {value!r}. Expected one of: {allowed}.",
        ) from error


def _validate_api_base_url(value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            "Invalid PAINT_ORDERS_TELEGRAM_API_BASE_URL: "
            f"{value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )
