from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from station_dashboard.core.config import LICOR_DATA_URL, Settings
from station_dashboard.models.weather import CompositeRecord
from station_dashboard.services.readings import aggregate_payload

logger = logging.getLogger(__name__)


class ProviderError(RuntimeError):
    pass


class ProviderNotConfiguredError(ProviderError):
    def __init__(self) -> None:
        super().__init__("LI-COR API token or logger serial number not configured")


class ProviderResponseError(ProviderError):
    def __init__(self, *, status_code: int, reason: str, body: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.body = body
        message = f"API error: {status_code} {reason}"
        if body:
            message = f"{message} - {body[:200]}"
        super().__init__(message)


def format_provider_time(dt: datetime) -> str:
    # The v1 data endpoint takes "YYYY-MM-DD HH:MM:SS" in UTC.
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


class LicorClient:
    def __init__(
        self,
        *,
        api_token: str,
        logger_serial: str,
        timeout_seconds: float,
        base_url: str = LICOR_DATA_URL,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url
        self._api_token = api_token
        self._logger_serial = logger_serial
        self._client = httpx.Client(
            timeout=timeout_seconds,
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    @property
    def configured(self) -> bool:
        return bool(self._base_url and self._api_token and self._logger_serial)

    def fetch_payload(self, start: datetime, stop: datetime) -> Any:
        if not self.configured:
            raise ProviderNotConfiguredError()

        params = {
            "loggers": self._logger_serial,
            "start_date_time": format_provider_time(start),
            "end_date_time": format_provider_time(stop),
        }
        logger.info(
            "Fetching station data",
            extra={"start": params["start_date_time"], "stop": params["end_date_time"]},
        )
        resp = self._client.get(
            self._base_url,
            params=params,
            headers={"Authorization": f"Bearer {self._api_token}"},
        )
        if resp.is_error:
            logger.error(
                "Provider rejected request",
                extra={"status_code": resp.status_code, "reason": resp.reason_phrase},
            )
            raise ProviderResponseError(
                status_code=resp.status_code, reason=resp.reason_phrase, body=resp.text
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError("Provider returned a non-JSON response") from e

    def fetch_records(self, start: datetime, stop: datetime) -> list[CompositeRecord]:
        return aggregate_payload(self.fetch_payload(start, stop))


def create_licor_client(settings: Settings) -> LicorClient:
    return LicorClient(
        api_token=settings.licor_api_token,
        logger_serial=settings.licor_logger_serial,
        timeout_seconds=settings.licor_timeout_seconds,
        base_url=str(settings.licor_base_url),
    )
