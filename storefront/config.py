"""Storefront application settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


logger = logging.getLogger(__name__)

# keys that data/settings.json may override; credentials stay in the environment
SETTINGS_FILE_KEYS = {
    "LOG_LEVEL",
    "PAYKEEPER_URL",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USE_SSL",
    "ORDER_NOTIFY_EMAIL",
    "PAYMENT_CHECK_INTERVAL_MINUTES",
    "ACTIVITY_CHECK_INTERVAL_SECONDS",
}


def _as_bool(value: Optional[str], default: bool) -> bool:
    if value is None or value == "":
        return default
    return str(value).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class StoreConfig:
    """Settings for the API, the payment gateway, SMTP and background workers."""

    database_url: str = "sqlite:///data/app.db"
    secret_key: str = "dev_secret"
    log_level: str = "INFO"
    port: int = 3001

    jwt_secret: str = "dev_jwt_secret"
    jwt_refresh_secret: str = "dev_jwt_refresh_secret"
    access_token_ttl_minutes: int = 60
    refresh_token_ttl_days: int = 7

    paykeeper_url: str = ""
    paykeeper_user: str = ""
    paykeeper_password: str = ""

    smtp_host: str = ""
    smtp_port: int = 465
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_ssl: bool = True
    order_notify_email: str = ""

    payment_check_interval_minutes: float = 15
    activity_check_interval_seconds: float = 120
    background_tasks: bool = True

    @property
    def paykeeper_configured(self) -> bool:
        return bool(self.paykeeper_url and self.paykeeper_user and self.paykeeper_password)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user)

    @classmethod
    def load(cls, env_file: Optional[Path] = None, settings_file: Optional[Path] = None) -> "StoreConfig":
        """Build settings from ``.env``, the environment and ``data/settings.json``."""

        project_root = Path.cwd()
        load_dotenv(env_file or project_root / ".env")
        overrides = _load_settings_file(settings_file or project_root / "data" / "settings.json")

        def get(key: str, default: Any = None) -> Any:
            if key in overrides:
                return overrides[key]
            return os.getenv(key, default)

        return cls(
            database_url=get("DATABASE_URL", cls.database_url),
            secret_key=get("SECRET_KEY", cls.secret_key),
            log_level=str(get("LOG_LEVEL", cls.log_level)).upper(),
            port=int(get("PORT", cls.port)),
            jwt_secret=get("JWT_SECRET", cls.jwt_secret),
            jwt_refresh_secret=get("JWT_REFRESH_SECRET", cls.jwt_refresh_secret),
            access_token_ttl_minutes=int(get("ACCESS_TOKEN_TTL_MINUTES", cls.access_token_ttl_minutes)),
            refresh_token_ttl_days=int(get("REFRESH_TOKEN_TTL_DAYS", cls.refresh_token_ttl_days)),
            paykeeper_url=str(get("PAYKEEPER_URL", "")).rstrip("/"),
            paykeeper_user=get("PAYKEEPER_USER", ""),
            paykeeper_password=get("PAYKEEPER_PASSWORD", ""),
            smtp_host=get("SMTP_HOST", ""),
            smtp_port=int(get("SMTP_PORT", cls.smtp_port)),
            smtp_user=get("SMTP_USER", ""),
            smtp_password=get("SMTP_PASSWORD", ""),
            smtp_use_ssl=_as_bool(get("SMTP_USE_SSL"), cls.smtp_use_ssl),
            order_notify_email=get("ORDER_NOTIFY_EMAIL", ""),
            payment_check_interval_minutes=float(
                get("PAYMENT_CHECK_INTERVAL_MINUTES", cls.payment_check_interval_minutes)
            ),
            activity_check_interval_seconds=float(
                get("ACTIVITY_CHECK_INTERVAL_SECONDS", cls.activity_check_interval_seconds)
            ),
            background_tasks=_as_bool(get("BACKGROUND_TASKS"), cls.background_tasks),
        )


def _load_settings_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning("Could not read settings file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    ignored = sorted(k for k in data if k not in SETTINGS_FILE_KEYS)
    if ignored:
        logger.warning("Ignoring keys in %s that must come from the environment: %s", path, ignored)
    return {k: v for k, v in data.items() if k in SETTINGS_FILE_KEYS}
