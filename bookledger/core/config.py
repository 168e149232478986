from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# bookledger/core/config.py -> BASE_DIR == repository root
BASE_DIR = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(BASE_DIR / ".env"),
        extra="ignore",
        env_prefix="",
        case_sensitive=False,
    )

    # Environment
    env: str = Field(default="dev", validation_alias="ENV")

    # Application
    api_name: str = Field(default="bookledger-api", validation_alias="API_NAME")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    max_request_body_bytes: int = Field(
        default=1024 * 1024, validation_alias="MAX_REQUEST_BODY_BYTES"
    )

    # Database & cache
    database_url: str = Field(
        default="sqlite+pysqlite:///./bookledger.db",
        validation_alias="DATABASE_URL",
    )
    test_database_url: str | None = Field(
        default=None, validation_alias="TEST_DATABASE_URL"
    )
    sqlite_busy_timeout_secs: float = Field(
        default=30.0, validation_alias="SQLITE_BUSY_TIMEOUT_SECS"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0", validation_alias="REDIS_URL"
    )
    catalog_cache_ttl_secs: int = Field(
        default=60, validation_alias="CATALOG_CACHE_TTL_SECS"
    )

    # Ledger
    ledger_lock_timeout_ms: int = Field(
        default=5000, validation_alias="LEDGER_LOCK_TIMEOUT_MS"
    )
    fine_per_day: Decimal = Field(
        default=Decimal("0.50"), validation_alias="FINE_PER_DAY"
    )
    # Calendar day of a return, compared against due dates.
    library_timezone: str = Field(default="UTC", validation_alias="LIBRARY_TIMEZONE")

    # Auth
    auth_secret_key: str = Field(
        default="dev-secret-key", validation_alias="AUTH_SECRET_KEY"
    )
    auth_algorithm: str = Field(default="HS256", validation_alias="AUTH_ALGORITHM")
    auth_access_token_ttl_minutes: int = Field(
        default=15, validation_alias="AUTH_ACCESS_TOKEN_TTL_MINUTES"
    )
    auth_refresh_token_ttl_days: int = Field(
        default=7, validation_alias="AUTH_REFRESH_TOKEN_TTL_DAYS"
    )
    auth_cookie_name: str = Field(
        default="bookledger_auth", validation_alias="AUTH_COOKIE_NAME"
    )
    auth_cookie_samesite: Literal["lax", "strict", "none"] = Field(
        default="lax", validation_alias="AUTH_COOKIE_SAMESITE"
    )
    auth_cookie_secure: bool = Field(
        default=False, validation_alias="AUTH_COOKIE_SECURE"
    )

    @field_validator("auth_cookie_samesite", mode="before")
    @classmethod
    def normalize_cookie_samesite(cls, v: Any) -> Literal["lax", "strict", "none"]:
        if v is None:
            return "lax"
        if not isinstance(v, str):
            raise TypeError("AUTH_COOKIE_SAMESITE must be a string")
        s = v.strip().lower()
        if s not in {"lax", "strict", "none"}:
            raise ValueError("AUTH_COOKIE_SAMESITE must be one of: lax, strict, none")
        return s  # type: ignore[return-value]

    # CORS
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:3000"],
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: Any) -> list[str]:
        """
        Supported env formats:
          - JSON list: '["http://localhost:3000"]'
          - Bracket list (no quotes): '[http://localhost:3000, http://localhost:5173]'
          - Comma-separated: 'http://localhost:3000, http://localhost:5173'
          - '*' wildcard
        """
        if v is None:
            return []
        if isinstance(v, list):
            return [str(x).strip() for x in v if str(x).strip()]
        if not isinstance(v, str):
            raise TypeError("cors_origins must be a string or list of strings")

        s = v.strip()
        if not s:
            return []
        if s == "*":
            return ["*"]

        if s.startswith("[") and s.endswith("]"):
            try:
                parsed = json.loads(s)
                if isinstance(parsed, list):
                    return [str(x).strip() for x in parsed if str(x).strip()]
            except json.JSONDecodeError:
                inner = s[1:-1].strip()
                if not inner:
                    return []
                parts = [p.strip().strip('"').strip("'") for p in inner.split(",")]
                return [p for p in parts if p]

        parts = [p.strip() for p in s.split(",")]
        return [p for p in parts if p]

    # Rate limiting
    rate_limit_window_seconds: int = Field(
        default=60, validation_alias="RATE_LIMIT_WINDOW_SECONDS"
    )
    rate_limit_ledger_per_window: int = Field(
        default=30, validation_alias="RATE_LIMIT_LEDGER_PER_WINDOW"
    )

    # OpenTelemetry
    otel_enabled: bool = Field(default=False, validation_alias="OTEL_ENABLED")
    otel_otlp_endpoint: str | None = Field(
        default=None, validation_alias="OTEL_OTLP_ENDPOINT"
    )


settings = Settings()
