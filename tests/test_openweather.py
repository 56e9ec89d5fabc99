"""Tests for the OpenWeatherMap client with mocked httpx."""

import asyncio
import datetime as dt

import httpx
import pytest
import respx

from zipforecast.errors import ProviderUnavailable
from zipforecast.services.openweather import OpenWeatherClient

BASE_URL = "https://test-owm.example.com/data/2.5"

SAMPLE_CURRENT = {
    "name": "Washington",
    "dt": 1736172000,
    "weather": [{"id": 800, "main": "Clear", "description": "clear sky", "icon": "01d"}],
    "main": {"temp": 72.5, "feels_like": 71.0, "temp_min": 65.2, "temp_max": 78.8, "humidity": 40},
    "cod": 200,
}

SAMPLE_FORECAST = {
    "cod": "200",
    "cnt": 3,
    "list": [
        {
            "dt": 1736121600,
            "dt_txt": "2025-01-06 00:00:00",
            "main": {"temp": 62.0, "temp_min": 60.1, "temp_max": 75.3},
            "weather": [{"description": "few clouds", "icon": "02n"}],
        },
        {
            "dt": 1736132400,
            "dt_txt": "2025-01-06 03:00:00",
            "main": {"temp": 61.0, "temp_min": 60.0, "temp_max": 74.0},
            "weather": [{"description": "clear sky", "icon": "01n"}],
        },
        {
            "dt": 1736208000,
            "main": {"temp": 55.0, "temp_min": 54.0, "temp_max": 56.0},
            "weather": [{"description": "light rain", "icon": "10n"}],
        },
    ],
}


@pytest.fixture
def ow() -> OpenWeatherClient:
    return OpenWeatherClient(BASE_URL, "test-key", timeout_seconds=1.0)


def test_requires_api_key():
    with pytest.raises(ValueError, match="API key"):
        OpenWeatherClient(BASE_URL, "")


class TestCurrentConditions:
    @respx.mock
    def test_success(self, ow: OpenWeatherClient):
        route = respx.get(f"{BASE_URL}/weather").mock(return_value=httpx.Response(200, json=SAMPLE_CURRENT))

        current = asyncio.run(ow.current_conditions(38.8977, -77.0365))

        assert current.temp == 72.5
        assert current.temp_min == 65.2
        assert current.temp_max == 78.8
        assert current.description == "clear sky"
        assert current.icon == "01d"
        params = route.calls[0].request.url.params
        assert params["units"] == "imperial"
        assert params["appid"] == "test-key"
        assert params["lat"] == "38.8977"

    @respx.mock
    def test_http_500(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/weather").mock(return_value=httpx.Response(500, text="boom"))

        with pytest.raises(ProviderUnavailable, match="status 500"):
            asyncio.run(ow.current_conditions(38.8977, -77.0365))

    @respx.mock
    def test_timeout(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/weather").mock(side_effect=httpx.ConnectTimeout("timed out"))

        with pytest.raises(ProviderUnavailable, match="timed out"):
            asyncio.run(ow.current_conditions(38.8977, -77.0365))

    @respx.mock
    def test_connection_error(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/weather").mock(side_effect=httpx.ConnectError("refused"))

        with pytest.raises(ProviderUnavailable, match="request failed"):
            asyncio.run(ow.current_conditions(38.8977, -77.0365))

    @respx.mock
    def test_unexpected_payload(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/weather").mock(return_value=httpx.Response(200, json={"cod": 200}))

        with pytest.raises(ProviderUnavailable, match="unexpected"):
            asyncio.run(ow.current_conditions(38.8977, -77.0365))


class TestRawForecastFeed:
    @respx.mock
    def test_success(self, ow: OpenWeatherClient):
        route = respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(200, json=SAMPLE_FORECAST))

        feed = asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365))

        assert len(feed) == 3
        assert feed[0].timestamp == dt.datetime(2025, 1, 6, 0, 0)
        assert feed[0].temp_min == 60.1
        assert feed[0].temp_max == 75.3
        assert feed[0].description == "few clouds"
        assert feed[1].icon == "01n"
        assert feed[2].timestamp == dt.datetime(2025, 1, 7, 0, 0, tzinfo=dt.timezone.utc)
        assert route.calls[0].request.url.params["cnt"] == "40"

    @respx.mock
    def test_empty_list(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(200, json={"cod": "200", "list": []}))

        assert asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365)) == []

    @respx.mock
    def test_http_401(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(401, json={"message": "Invalid API key"}))

        with pytest.raises(ProviderUnavailable, match="status 401"):
            asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365))

    @respx.mock
    def test_invalid_json(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(200, text="<html>"))

        with pytest.raises(ProviderUnavailable, match="invalid JSON"):
            asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365))


class TestUnexpectedBodyShape:
    @respx.mock
    def test_forecast_body_is_a_list(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(200, json=[1, 2, 3]))

        with pytest.raises(ProviderUnavailable, match="unexpected payload"):
            asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365))

    @respx.mock
    def test_current_body_is_a_string(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/weather").mock(return_value=httpx.Response(200, json="ok"))

        with pytest.raises(ProviderUnavailable, match="unexpected payload"):
            asyncio.run(ow.current_conditions(38.8977, -77.0365))

    @respx.mock
    def test_forecast_entries_are_not_objects(self, ow: OpenWeatherClient):
        respx.get(f"{BASE_URL}/forecast").mock(return_value=httpx.Response(200, json={"list": [42]}))

        with pytest.raises(ProviderUnavailable, match="unexpected forecast payload"):
            asyncio.run(ow.raw_forecast_feed(38.8977, -77.0365))
