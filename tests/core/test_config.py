"""Configuration parsing tests."""

import pytest

from src.core.config import Settings
from src.tax.fetcher import FetcherConfig


def test_defaults_match_remote_source_contract(monkeypatch) -> None:
    """Defaults cover the published years and retry policy."""
    for name in (
        "TAX_API_BASE_URL",
        "TAX_API_TIMEOUT",
        "TAX_API_MAX_RETRIES",
        "TAX_API_RETRY_BASE_DELAY",
        "SUPPORTED_TAX_YEARS",
    ):
        monkeypatch.delenv(name, raising=False)
    cfg = Settings(_env_file=None)

    assert cfg.tax_api_base_url == "http://localhost:5001"
    assert cfg.tax_api_timeout == 10.0
    assert cfg.tax_api_max_retries == 3
    assert cfg.tax_api_retry_base_delay == 1.0
    assert cfg.supported_tax_years == [2019, 2020, 2021, 2022]


def test_supported_tax_years_accepts_csv(monkeypatch) -> None:
    """CSV string in env parses into a list of years."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2021, 2022,2023")
    cfg = Settings(_env_file=None)
    assert cfg.supported_tax_years == [2021, 2022, 2023]


def test_supported_tax_years_accepts_json_array(monkeypatch) -> None:
    """JSON array string in env parses into a list of years."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "[2022, 2023, 2022]")
    cfg = Settings(_env_file=None)
    assert cfg.supported_tax_years == [2022, 2023]


def test_supported_tax_years_accepts_single_year(monkeypatch) -> None:
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2024")
    cfg = Settings(_env_file=None)
    assert cfg.supported_tax_years == [2024]


def test_supported_tax_years_rejects_invalid_object(monkeypatch) -> None:
    """Invalid values fail with a clear validation error."""
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", '{"invalid":"json"}')
    try:
        Settings(_env_file=None)
    except Exception as exc:
        assert "SUPPORTED_TAX_YEARS" in str(exc)
    else:
        raise AssertionError("Expected invalid SUPPORTED_TAX_YEARS to fail")


def test_supported_tax_years_rejects_non_numeric(monkeypatch) -> None:
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2022,next")
    with pytest.raises(Exception, match="SUPPORTED_TAX_YEARS"):
        Settings(_env_file=None)


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("TAX_API_TIMEOUT", "0"),
        ("TAX_API_MAX_RETRIES", "-1"),
        ("TAX_API_RETRY_BASE_DELAY", "-2"),
    ],
)
def test_retry_policy_validation(monkeypatch, name: str, value: str) -> None:
    monkeypatch.setenv(name, value)
    with pytest.raises(Exception, match=name):
        Settings(_env_file=None)


def test_fetcher_config_from_settings(monkeypatch) -> None:
    """Settings map onto an explicit fetcher config value."""
    monkeypatch.setenv("TAX_API_BASE_URL", "https://brackets.example")
    monkeypatch.setenv("TAX_API_TIMEOUT", "2.5")
    monkeypatch.setenv("TAX_API_MAX_RETRIES", "5")
    monkeypatch.setenv("TAX_API_RETRY_BASE_DELAY", "0.25")
    monkeypatch.setenv("SUPPORTED_TAX_YEARS", "2022,2023")

    config = FetcherConfig.from_settings(Settings(_env_file=None))

    assert config.base_url == "https://brackets.example"
    assert config.timeout == 2.5
    assert config.max_retries == 5
    assert config.retry_base_delay == 0.25
    assert config.supported_years.years == (2022, 2023)
    assert config.max_attempts == 6
