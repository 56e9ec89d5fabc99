import datetime as dt
import logging
from typing import Any, Dict, List

import httpx

from zipforecast.errors import ProviderUnavailable
from zipforecast.models import CurrentConditions, FeedPoint

logger = logging.getLogger(__name__)

# 5 days * 8 three-hour intervals
FORECAST_POINTS = 40


class OpenWeatherClient:
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 5.0,
        units: str = "imperial",
    ):
        if not api_key:
            raise ValueError("OpenWeatherMap API key not configured. Set OPENWEATHER_API_KEY.")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout_seconds
        self.units = units

    async def current_conditions(self, lat: float, lon: float) -> CurrentConditions:
        data = await self._get("/weather", {"lat": lat, "lon": lon})
        try:
            main = data["main"]
            weather = data["weather"][0]
            return CurrentConditions(
                temp=main["temp"],
                temp_min=main["temp_min"],
                temp_max=main["temp_max"],
                description=weather["description"],
                icon=weather["icon"],
            )
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            logger.error("Unexpected current weather payload: %r", exc)
            raise ProviderUnavailable("OpenWeatherMap returned an unexpected current weather payload") from exc

    async def raw_forecast_feed(self, lat: float, lon: float) -> List[FeedPoint]:
        data = await self._get("/forecast", {"lat": lat, "lon": lon, "cnt": FORECAST_POINTS})
        try:
            return [self._feed_point(entry) for entry in data.get("list", [])]
        except (KeyError, IndexError, TypeError, ValueError, AttributeError) as exc:
            logger.error("Unexpected forecast payload: %r", exc)
            raise ProviderUnavailable("OpenWeatherMap returned an unexpected forecast payload") from exc

    async def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        params = {**params, "units": self.units, "appid": self.api_key}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.get(url, params=params)
                r.raise_for_status()
                data = r.json()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.error("OpenWeatherMap %s returned %s: %s", path, status, exc.response.text[:200])
            raise ProviderUnavailable(
                f"OpenWeatherMap API returned status {status}: {exc.response.reason_phrase}"
            ) from exc
        except httpx.TimeoutException as exc:
            logger.error("OpenWeatherMap %s timed out", path)
            raise ProviderUnavailable("OpenWeatherMap API timed out") from exc
        except httpx.HTTPError as exc:
            logger.error("OpenWeatherMap %s request failed: %s", path, exc)
            raise ProviderUnavailable(f"OpenWeatherMap API request failed: {exc}") from exc
        except ValueError as exc:
            logger.error("OpenWeatherMap %s returned invalid JSON", path)
            raise ProviderUnavailable("OpenWeatherMap API returned invalid JSON") from exc
        if not isinstance(data, dict):
            logger.error("OpenWeatherMap %s returned a non-object body", path)
            raise ProviderUnavailable("OpenWeatherMap returned an unexpected payload")
        return data

    @staticmethod
    def _feed_point(entry: Dict[str, Any]) -> FeedPoint:
        if "dt_txt" in entry:
            timestamp = dt.datetime.fromisoformat(entry["dt_txt"])
        else:
            timestamp = dt.datetime.fromtimestamp(int(entry["dt"]), tz=dt.timezone.utc)
        weather = entry["weather"][0]
        return FeedPoint(
            timestamp=timestamp,
            temp_min=entry["main"]["temp_min"],
            temp_max=entry["main"]["temp_max"],
            description=weather["description"],
            icon=weather["icon"],
        )
