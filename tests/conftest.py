from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from station_dashboard.core.config import Settings
from station_dashboard.factory import create_app
from tests.fakes import FakeStationClient


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        log_level="DEBUG",
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        licor_base_url="http://licor.example.com/v1/data",
        licor_api_token="test-token-1234567890",
        licor_logger_serial="21000001",
        licor_timeout_seconds=1.0,
        display_timezone="America/Chicago",
        default_time_range_hours=24,
        auto_refresh_enabled=False,
        auto_refresh_interval_seconds=300,
    )


@pytest.fixture()
def station() -> FakeStationClient:
    return FakeStationClient()


@pytest.fixture()
def client(settings: Settings, station: FakeStationClient) -> TestClient:
    app = create_app(settings)
    app.state.station_client_factory = lambda _settings: station
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def now() -> datetime:
    return datetime(2025, 6, 1, 12, 30, tzinfo=timezone.utc)
