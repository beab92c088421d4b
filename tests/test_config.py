from __future__ import annotations

import os
from pathlib import Path

import allure
import pytest

from paint_orders.config import (
    ArchivePolicy,
    HousekeepingSettings,
    Settings,
    TelegramSettings,
)

pytestmark = [
    allure.epic("Order Lifecycle"),
    allure.feature("Configuration"),
]

_ENV_PREFIX = "PAINT_ORDERS_"


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(_ENV_PREFIX):
            monkeypatch.delenv(name)


def test_defaults_without_environment() -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".paint_orders.db")
    assert settings.log_level == "WARNING"
    assert settings.lifecycle.archive_policy == ArchivePolicy.CREATOR_ONLY
    assert settings.housekeeping.archive_after_hours == 12
    assert settings.housekeeping.archive_interval_seconds == 600
    assert settings.housekeeping.purge_interval_seconds == 86_400
    assert settings.housekeeping.archived_retention_days == 30
    assert settings.telegram.bot_token == ""
    settings.validate()


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("PAINT_ORDERS_DB_PATH", str(tmp_path / "env.db"))
    monkeypatch.setenv("PAINT_ORDERS_LOG_LEVEL", "debug")
    monkeypatch.setenv("PAINT_ORDERS_ARCHIVE_POLICY", " Creator_Or_Worker ")
    monkeypatch.setenv("PAINT_ORDERS_ARCHIVE_AFTER_HOURS", "24")
    monkeypatch.setenv("PAINT_ORDERS_TELEGRAM_BOT_TOKEN", " 123:abc ")
    monkeypatch.setenv("PAINT_ORDERS_TELEGRAM_API_BASE_URL", "https://tg.example/")

    settings = Settings.from_env()

    assert settings.db_path == tmp_path / "env.db"
    assert settings.log_level == "DEBUG"
    assert settings.lifecycle.archive_policy == ArchivePolicy.CREATOR_OR_WORKER
    assert settings.housekeeping.archive_after_hours == 24
    assert settings.telegram.bot_token == "123:abc"
    assert settings.telegram.api_base_url == "https://tg.example"


def test_explicit_db_path_wins_over_environment(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("PAINT_ORDERS_DB_PATH", str(tmp_path / "env.db"))

    assert Settings.from_env(db_path=tmp_path / "cli.db").db_path == tmp_path / "cli.db"


def test_unknown_archive_policy_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PAINT_ORDERS_ARCHIVE_POLICY", "anyone")

    with pytest.raises(ValueError, match="PAINT_ORDERS_ARCHIVE_POLICY"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("housekeeping", "env_name"),
    [
        (HousekeepingSettings(archive_after_hours=0), "ARCHIVE_AFTER_HOURS"),
        (HousekeepingSettings(archive_interval_seconds=0), "ARCHIVE_INTERVAL_SECONDS"),
        (HousekeepingSettings(purge_interval_seconds=-1), "PURGE_INTERVAL_SECONDS"),
        (HousekeepingSettings(archived_retention_days=0), "ARCHIVED_RETENTION_DAYS"),
        (HousekeepingSettings(notification_retention_days=0), "NOTIFICATION_RETENTION_DAYS"),
    ],
)
def test_validate_rejects_non_positive_housekeeping_values(
    housekeeping: HousekeepingSettings,
    env_name: str,
) -> None:
    with pytest.raises(ValueError, match=env_name):
        Settings(housekeeping=housekeeping).validate()


def test_validate_checks_api_url_only_with_token() -> None:
    Settings(telegram=TelegramSettings(api_base_url="not a url")).validate()

    with pytest.raises(ValueError, match="TELEGRAM_API_BASE_URL"):
        Settings(
            telegram=TelegramSettings(bot_token="123:abc", api_base_url="ftp://tg.example"),
        ).validate()
