# salonledger/core/config.py

from __future__ import annotations

from decimal import Decimal
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict


def _strip_asyncpg_unsupported_params(url: str) -> str:
    """
    asyncpg does NOT accept sslmode or channel_binding as connect kwargs.
    If these appear in the URL query, SQLAlchemy can end up passing them to
    asyncpg.connect(), causing:
      TypeError: connect() got an unexpected keyword argument 'sslmode'
    """
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = parse_qsl(parts.query, keep_blank_values=True)
    filtered = [(k, v) for (k, v) in params if k not in {"sslmode", "channel_binding"}]
    new_query = urlencode(filtered, doseq=True)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, new_query, parts.fragment))


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -----------------------------
    # Environment
    # -----------------------------
    # Use: development | staging | production
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # -----------------------------
    # DB
    # -----------------------------
    DATABASE_URL_ASYNC: str
    SQL_ECHO: bool = False

    # -----------------------------
    # Business rules
    # -----------------------------
    # Months and days are cut in the shop's local time, not UTC.
    BUSINESS_TIMEZONE: str = "America/Mexico_City"

    # A sale counts as fully paid when the unpaid remainder is at most this.
    FULL_PAYMENT_TOLERANCE: Decimal = Decimal("1")

    @property
    def DATABASE_URL_ASYNC_CLEAN(self) -> str:
        return _strip_asyncpg_unsupported_params(self.DATABASE_URL_ASYNC)

    @property
    def business_tz(self) -> ZoneInfo:
        return ZoneInfo(self.BUSINESS_TIMEZONE)

    def model_post_init(self, __context) -> None:  # pydantic v2 hook
        try:
            ZoneInfo(self.BUSINESS_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown BUSINESS_TIMEZONE={self.BUSINESS_TIMEZONE!r}")

        if self.FULL_PAYMENT_TOLERANCE < 0:
            raise ValueError("FULL_PAYMENT_TOLERANCE must be >= 0.")

        if self.LOG_LEVEL.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL={self.LOG_LEVEL!r}")


# this must exist for: `from salonledger.core.config import settings`
settings = Settings()
