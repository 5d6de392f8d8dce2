from datetime import datetime, timezone

import pytest
from pydantic import ValidationError as SettingsError

from stock_tracker.config import Settings
from stock_tracker.errors import (Conflict, ErrorMapper, ExternalServiceError,
                                  NotFound, TrackerError, UpstreamErrorKind,
                                  ValidationError)
from stock_tracker.utils import normalize_stock_symbol, parse_timestamp


@pytest.mark.parametrize(
    "exc, status",
    [
        (ValidationError("bad"), 400),
        (NotFound("gone"), 404),
        (Conflict("dup"), 409),
        (ExternalServiceError("down", UpstreamErrorKind.RATE_LIMIT), 503),
        (TrackerError("other"), 500),
    ],
)
def test_error_mapper(exc, status):
    assert ErrorMapper().to_http(exc)[0] == status


def test_external_error_detail_names_service():
    assert ErrorMapper().to_http(ExternalServiceError("down")) == (503, "Finnhub: down")


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("FINNHUB_API_KEY", "secret")
    monkeypatch.setenv("FINNHUB_RETRY_ATTEMPTS", "5")
    monkeypatch.setenv("CACHE_TTL", "60")
    monkeypatch.setenv("DATABASE_URL", "sqlite://")

    settings = Settings.from_env()

    assert settings.finnhub_api_key == "secret"
    assert settings.finnhub_retry_attempts == 5
    assert settings.finnhub_retry_delay_ms == 1000
    assert settings.cache_ttl_seconds == 60
    assert settings.check_interval_ms == 60000
    assert settings.database_url == "sqlite://"


def test_settings_require_api_key(monkeypatch):
    monkeypatch.delenv("FINNHUB_API_KEY", raising=False)

    with pytest.raises(SettingsError):
        Settings.from_env()


def test_normalize_and_parse_helpers():
    assert normalize_stock_symbol(" msft ") == "MSFT"
    assert parse_timestamp(0).year == 1970
    assert parse_timestamp(None).tzinfo is timezone.utc
    assert parse_timestamp(1700000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=timezone.utc)
