"""Configuration management for the TikTok Lite ledger bot"""

import os
import logging
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from utils.exception_handler import ConfigurationError

logger = logging.getLogger(__name__)


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value if value else default


def _getenv_bool(name: str, default: bool = False) -> bool:
    raw = _getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "y", "on"}


def _getenv_int(name: str, default: int) -> int:
    raw = _getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"⚠️ Invalid integer for {name}={raw!r}, using default {default}")
        return default


def normalize_database_url(url: Optional[str]) -> Optional[str]:
    """Rewrite plain Postgres URLs to the asyncpg driver used by the async engine"""
    if not url:
        return url
    for prefix in ("postgres://", "postgresql://"):
        if url.startswith(prefix):
            # asyncpg uses 'ssl' instead of 'sslmode'
            url = "postgresql+asyncpg://" + url[len(prefix):]
            return url.replace("sslmode=", "ssl=")
    return url


class Config:
    """Application configuration"""

    # Bot credential - BOT_TOKEN first, TELEGRAM_BOT_TOKEN as fallback
    BOT_TOKEN = _getenv("BOT_TOKEN") or _getenv("TELEGRAM_BOT_TOKEN")

    # Store identifier
    DATABASE_URL = normalize_database_url(_getenv("DATABASE_URL"))
    DB_AUTO_CREATE = _getenv_bool("DB_AUTO_CREATE", default=True)

    # Single admin allowed to override wallet balances
    ADMIN_TELEGRAM_ID = _getenv("ADMIN_TELEGRAM_ID", "") or ""

    TIMEZONE = _getenv("TZ", "Asia/Seoul") or "Asia/Seoul"
    LOG_LEVEL = (_getenv("LOG_LEVEL", "INFO") or "INFO").upper()

    # Due-date sweep schedule (both run the same job)
    SWEEP_DAILY_HOUR = _getenv_int("SWEEP_DAILY_HOUR", 10)
    SWEEP_HOURLY_MINUTE = _getenv_int("SWEEP_HOURLY_MINUTE", 15)

    # Domain constants
    WALLETS = ("uri", "hana", "kt")
    INVITE_CHECKIN_DAYS = 14
    PENDING_LIST_LIMIT = 50
    AUDIT_LIST_DEFAULT = 10
    AUDIT_LIST_MAX = 50

    REQUIRED_SETTINGS = ("BOT_TOKEN", "DATABASE_URL")

    @classmethod
    def missing_required(cls) -> List[str]:
        """Names of required settings that are not configured"""
        return [name for name in cls.REQUIRED_SETTINGS if not getattr(cls, name)]

    @classmethod
    def get_timezone(cls) -> ZoneInfo:
        try:
            return ZoneInfo(cls.TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ConfigurationError(f"Unknown time zone TZ={cls.TIMEZONE!r}") from e

    @classmethod
    def validate_startup_configuration(cls) -> None:
        """Raise ConfigurationError describing every missing or invalid setting"""
        missing = cls.missing_required()
        if missing:
            raise ConfigurationError(
                "Missing env vars. Need " + ", ".join(missing)
                + " (BOT_TOKEN may also be provided as TELEGRAM_BOT_TOKEN)"
            )
        cls.get_timezone()
        if not cls.ADMIN_TELEGRAM_ID:
            logger.warning("⚠️ ADMIN_TELEGRAM_ID not set - 'chinh' wallet overrides are disabled")

    @classmethod
    def log_environment_config(cls) -> None:
        """Log current configuration without revealing credentials"""
        logger.info("🔧 Ledger Bot Configuration:")
        logger.info(f"   Time zone: {cls.TIMEZONE}")
        logger.info(f"   Database driver: {(cls.DATABASE_URL or 'NOT CONFIGURED').split('://')[0]}")
        logger.info(f"   Auto-create tables: {cls.DB_AUTO_CREATE}")
        logger.info(f"   Admin configured: {bool(cls.ADMIN_TELEGRAM_ID)}")
        logger.info(
            f"   Sweep schedule: daily {cls.SWEEP_DAILY_HOUR:02d}:00, hourly at :{cls.SWEEP_HOURLY_MINUTE:02d}"
        )
