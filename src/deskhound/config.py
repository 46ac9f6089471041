from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from deskhound.ingestion.types import CategoryRule, MessageCategory
from deskhound.util import PROJECT_ROOT, load_yaml_config

_logger = structlog.get_logger()

_HELPDESK_CONFIG_PATH = PROJECT_ROOT / "config" / "helpdesk.yaml"
_CATEGORIES_CONFIG_PATH = PROJECT_ROOT / "config" / "categories.yaml"
_OBSERVABILITY_CONFIG_PATH = PROJECT_ROOT / "config" / "observability.yaml"


class Credentials(BaseSettings):
    slack_bot_token: str = Field(min_length=1)
    rippling_api_key: str = ""
    rippling_base_url: str = "https://api.rippling.com"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )


@dataclass
class SlackSettings:
    monitored_channels: list[str] = field(default_factory=list)
    ignored_channels: list[str] = field(default_factory=list)
    enable_mentions: bool = True
    enable_threads: bool = True


@dataclass
class PollerConfig:
    interval_seconds: float = 10.0
    page_size: int = 100
    thread_page_size: int = 50
    lookback_hours: float = 24.0


@dataclass
class StorageConfig:
    database_url: str = "sqlite:///deskhound.db"


@dataclass
class DirectoryConfig:
    enabled: bool = False
    page_size: int = 50
    page_delay_seconds: float = 0.1


@dataclass
class LoggingConfig:
    json_output: bool = True
    log_level: str = "INFO"
    log_file: Path | None = None


@dataclass
class HelpdeskConfig:
    slack: SlackSettings = field(default_factory=SlackSettings)
    poller: PollerConfig = field(default_factory=PollerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    directory: DirectoryConfig = field(default_factory=DirectoryConfig)


DEFAULT_CATEGORY_RULES: tuple[CategoryRule, ...] = (
    CategoryRule(
        category=MessageCategory.PASSWORD_RESET,
        display_name="Password Reset",
        keywords=("password", "reset password", "locked out", "forgot password", "2fa", "mfa"),
    ),
    CategoryRule(
        category=MessageCategory.VPN_SUPPORT,
        display_name="VPN Support",
        keywords=("vpn", "remote access", "globalprotect", "tunnel", "wifi", "network"),
    ),
    CategoryRule(
        category=MessageCategory.SOFTWARE_INSTALL,
        display_name="Software Installation",
        keywords=("install", "installation", "software", "license", "update", "upgrade"),
    ),
    CategoryRule(
        category=MessageCategory.HARDWARE_ISSUE,
        display_name="Hardware Issue",
        keywords=(
            "laptop",
            "monitor",
            "keyboard",
            "mouse",
            "screen",
            "battery",
            "printer",
            "broken",
            "cracked",
        ),
    ),
    CategoryRule(
        category=MessageCategory.ACCESS_REQUEST,
        display_name="Access Request",
        keywords=("access", "permission", "permissions", "grant", "invite", "account"),
    ),
)


def load_helpdesk_config(config_path: Path = _HELPDESK_CONFIG_PATH) -> HelpdeskConfig:
    raw = load_yaml_config(config_path)
    return _parse_config(raw)


def _parse_config(raw: dict[str, Any]) -> HelpdeskConfig:
    slack_raw = raw.get("slack", {}) or {}
    poller_raw = raw.get("poller", {}) or {}
    storage_raw = raw.get("storage", {}) or {}
    directory_raw = raw.get("directory", {}) or {}

    poller = PollerConfig(
        interval_seconds=float(poller_raw.get("interval_seconds", 10.0)),
        page_size=int(poller_raw.get("page_size", 100)),
        thread_page_size=int(poller_raw.get("thread_page_size", 50)),
        lookback_hours=float(poller_raw.get("lookback_hours", 24.0)),
    )
    if poller.interval_seconds <= 0:
        raise ValueError("'poller.interval_seconds' must be positive")
    if poller.page_size <= 0 or poller.thread_page_size <= 0:
        raise ValueError("Poller page sizes must be positive")

    return HelpdeskConfig(
        slack=parse_slack_settings(slack_raw),
        poller=poller,
        storage=StorageConfig(
            database_url=storage_raw.get("database_url") or StorageConfig.database_url,
        ),
        directory=DirectoryConfig(
            enabled=bool(directory_raw.get("enabled", False)),
            page_size=int(directory_raw.get("page_size", 50)),
            page_delay_seconds=float(directory_raw.get("page_delay_seconds", 0.1)),
        ),
    )


def parse_slack_settings(raw: dict[str, Any]) -> SlackSettings:
    return SlackSettings(
        monitored_channels=_channel_list(raw.get("monitored_channels")),
        ignored_channels=_channel_list(raw.get("ignored_channels")),
        enable_mentions=bool(raw.get("enable_mentions", True)),
        enable_threads=bool(raw.get("enable_threads", True)),
    )


def _channel_list(value: Any) -> list[str]:
    """Accept ``general`` or ``#general``; names are compared without the hash."""
    if not value:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(name).strip().lstrip("#") for name in value if str(name).strip()]


def load_category_rules(config_path: Path = _CATEGORIES_CONFIG_PATH) -> list[CategoryRule]:
    raw = load_yaml_config(config_path)
    entries = raw.get("categories")
    if not entries:
        _logger.info("category_rules_defaulted", count=len(DEFAULT_CATEGORY_RULES))
        return list(DEFAULT_CATEGORY_RULES)

    rules = [CategoryRule.from_dict(entry) for entry in entries]
    _logger.info("category_rules_loaded", count=len(rules), path=str(config_path))
    return rules


def load_logging_config(config_path: Path = _OBSERVABILITY_CONFIG_PATH) -> LoggingConfig:
    raw = load_yaml_config(config_path).get("logging", {}) or {}
    log_file = raw.get("log_file")
    return LoggingConfig(
        json_output=bool(raw.get("json_output", True)),
        log_level=str(raw.get("log_level", "INFO")),
        log_file=Path(log_file) if log_file else None,
    )
