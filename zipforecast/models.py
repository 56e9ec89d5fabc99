import datetime as dt
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, field_validator

UNKNOWN_POSTAL_CODE = "UNKNOWN"


def round_half_up(value: float) -> int:
    """Round to the nearest int, ties away from zero (72.5 -> 73, -72.5 -> -73)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Provenance(str, Enum):
    FRESH = "fresh"
    CACHED = "cached"


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float
    postal_code: str = UNKNOWN_POSTAL_CODE
    formatted_address: str = ""

    @property
    def has_postal_code(self) -> bool:
        code = self.postal_code.strip()
        return bool(code) and code != UNKNOWN_POSTAL_CODE


class DailyForecast(BaseModel):
    """One calendar day of the extended forecast. Temperatures are left unrounded."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    temp_min: float
    temp_max: float
    description: str
    icon: str


class WeatherSnapshot(BaseModel):
    """Current conditions plus up to five daily summaries.

    The three top-level temperatures are display values: floats coming from the
    provider are rounded once here, ints coming back from the cache pass through.
    """

    model_config = ConfigDict(frozen=True)

    current_temp: int
    temp_min: int
    temp_max: int
    description: str
    icon: str
    daily: Tuple[DailyForecast, ...] = ()

    @field_validator("current_temp", "temp_min", "temp_max", mode="before")
    @classmethod
    def _round_display_temp(cls, value: Any) -> Any:
        if isinstance(value, float):
            return round_half_up(value)
        return value


class ForecastResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    location: Location
    snapshot: WeatherSnapshot
    provenance: Provenance = Provenance.FRESH

    @property
    def cached(self) -> bool:
        return self.provenance is Provenance.CACHED

    def to_cache_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude={"provenance"})

    @classmethod
    def from_cache(cls, payload: Dict[str, Any]) -> "ForecastResult":
        """Rehydrate a cached payload. The result is always tagged CACHED."""
        return cls(
            location=Location.model_validate(payload["location"]),
            snapshot=WeatherSnapshot.model_validate(payload["snapshot"]),
            provenance=Provenance.CACHED,
        )


# Weather client outputs ---------------------------------------------------


class CurrentConditions(BaseModel):
    model_config = ConfigDict(frozen=True)

    temp: float
    temp_min: float
    temp_max: float
    description: str
    icon: str


class FeedPoint(BaseModel):
    """A single 3-hour reading from the provider's forecast feed."""

    model_config = ConfigDict(frozen=True)

    timestamp: dt.datetime
    temp_min: float
    temp_max: float
    description: str
    icon: str


# Resolver outputs ---------------------------------------------------------


@dataclass(frozen=True)
class Found:
    location: Location


@dataclass(frozen=True)
class NotFound:
    reason: str


Resolution = Union[Found, NotFound]


# API responses ------------------------------------------------------------


class CacheInfo(BaseModel):
    hit: bool


class CurrentWeather(BaseModel):
    temp: int
    temp_min: int
    temp_max: int
    description: str
    icon: str


class ForecastResponse(BaseModel):
    location: Location
    current: CurrentWeather
    daily: List[DailyForecast]
    cache: CacheInfo

    @classmethod
    def from_result(cls, result: ForecastResult) -> "ForecastResponse":
        snapshot = result.snapshot
        return cls(
            location=result.location,
            current=CurrentWeather(
                temp=snapshot.current_temp,
                temp_min=snapshot.temp_min,
                temp_max=snapshot.temp_max,
                description=snapshot.description,
                icon=snapshot.icon,
            ),
            daily=list(snapshot.daily),
            cache=CacheInfo(hit=result.cached),
        )
