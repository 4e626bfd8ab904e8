"""Application configuration using Pydantic Settings."""

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Annotated

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


DEFAULT_SUPPORTED_TAX_YEARS: tuple[int, ...] = (2019, 2020, 2021, 2022)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Remote bracket source
    tax_api_base_url: str = "http://localhost:5001"
    """Base URL of the remote tax bracket source."""

    tax_api_timeout: float = 10.0
    """Per-attempt request timeout in seconds."""

    tax_api_max_retries: int = 3
    """Retries after the initial attempt for transient failures."""

    tax_api_retry_base_delay: float = 1.0
    """Backoff seed in seconds; retry i waits base * 2**i."""

    # NoDecode prevents pydantic-settings from forcing JSON parsing at the
    # env-source layer, so we can accept either JSON arrays or CSV strings.
    supported_tax_years: Annotated[list[int], NoDecode] = list(DEFAULT_SUPPORTED_TAX_YEARS)
    """Tax years the remote source publishes brackets for."""

    # Caching
    bracket_cache_enabled: bool = False
    """Cache fetched bracket tables in Redis, keyed by tax year."""

    redis_url: str = "redis://localhost:6379/0"
    """Redis connection URL for the bracket cache."""

    # Error Tracking
    sentry_dsn: str | None = None
    """Sentry DSN for error tracking. Optional."""

    # Environment
    environment: str = "development"
    """Current environment (development, staging, production)."""

    debug: bool = False
    """Enable debug mode."""

    log_format: str | None = None
    """Logging format override (json or console). Defaults by environment."""

    @field_validator("tax_api_timeout")
    @classmethod
    def check_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TAX_API_TIMEOUT must be greater than zero.")
        return value

    @field_validator("tax_api_max_retries")
    @classmethod
    def check_max_retries(cls, value: int) -> int:
        if value < 0:
            raise ValueError("TAX_API_MAX_RETRIES cannot be negative.")
        return value

    @field_validator("tax_api_retry_base_delay")
    @classmethod
    def check_retry_base_delay(cls, value: float) -> float:
        if value < 0:
            raise ValueError("TAX_API_RETRY_BASE_DELAY cannot be negative.")
        return value

    @field_validator("supported_tax_years", mode="before")
    @classmethod
    def parse_supported_tax_years(cls, value: object) -> list[int]:
        """Parse supported tax years from JSON array, CSV, or list."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return list(DEFAULT_SUPPORTED_TAX_YEARS)

            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                decoded = None

            if isinstance(decoded, list):
                return _normalize_tax_years(decoded)
            if isinstance(decoded, int) and not isinstance(decoded, bool):
                return _normalize_tax_years([decoded])
            if decoded is not None:
                raise ValueError(
                    "SUPPORTED_TAX_YEARS must be a JSON array or comma-separated string."
                )

            # Fallback: comma-separated values
            parsed = [item.strip() for item in text.split(",")]
            return _normalize_tax_years(parsed)

        if isinstance(value, (list, tuple, set)):
            return _normalize_tax_years(value)

        raise ValueError(
            "SUPPORTED_TAX_YEARS must be a string, list, tuple, or set."
        )


def _normalize_tax_years(values: Iterable[object]) -> list[int]:
    """Normalize and dedupe tax years while preserving declaration order."""
    normalized: list[int] = []
    seen: set[int] = set()
    for raw_item in values:
        if isinstance(raw_item, bool):
            raise ValueError(f"SUPPORTED_TAX_YEARS entry is not a year: {raw_item!r}")
        item = str(raw_item).strip().strip("'").strip('"')
        if not item:
            continue
        try:
            year = int(item)
        except ValueError as exc:
            raise ValueError(
                f"SUPPORTED_TAX_YEARS entry is not a year: {raw_item!r}"
            ) from exc
        if year in seen:
            continue
        normalized.append(year)
        seen.add(year)

    if not normalized:
        return list(DEFAULT_SUPPORTED_TAX_YEARS)
    return normalized


try:
    settings = Settings()
except Exception as exc:
    env_file = Path(".env")
    root_error = str(exc)
    suggestions = [
        "TAX_API_TIMEOUT must be a positive number of seconds.",
        "TAX_API_MAX_RETRIES and TAX_API_RETRY_BASE_DELAY cannot be negative.",
        "Allowed values for SUPPORTED_TAX_YEARS are:",
        "  1) [2019,2020,2021,2022]",
        "  2) 2019,2020,2021,2022",
    ]

    raise RuntimeError(
        "Failed to initialize application settings. "
        f"Check environment variables in {env_file.resolve() if env_file.exists() else '.env'}.\n"
        + f"Error: {root_error}\n"
        + "\n".join(suggestions)
    ) from exc
