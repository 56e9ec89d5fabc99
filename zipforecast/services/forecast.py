import logging
from typing import List, Optional, Protocol

from pydantic import ValidationError

from zipforecast.errors import (
    AddressNotFound,
    CacheUnavailable,
    ProviderUnavailable,
    ResolverUnavailable,
    UpstreamUnavailable,
)
from zipforecast.models import (
    CurrentConditions,
    FeedPoint,
    ForecastResult,
    Location,
    NotFound,
    Provenance,
    Resolution,
    WeatherSnapshot,
)
from zipforecast.services.aggregator import aggregate
from zipforecast.services.cache import ForecastCache
from zipforecast.services.cache_keys import DEFAULT_COORD_DECIMALS, cache_key

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 30 * 60


class AddressResolver(Protocol):
    async def resolve(self, text: str) -> Resolution:
        ...


class WeatherClient(Protocol):
    async def current_conditions(self, lat: float, lon: float) -> CurrentConditions:
        ...

    async def raw_forecast_feed(self, lat: float, lon: float) -> List[FeedPoint]:
        ...


class ForecastService:
    """Address -> forecast, backed by a location-keyed TTL cache.

    Only AddressNotFound and UpstreamUnavailable leave fetch_forecast; adapter
    errors are translated at this boundary.
    """

    def __init__(
        self,
        *,
        resolver: AddressResolver,
        weather_client: WeatherClient,
        cache: ForecastCache,
        ttl_seconds: int = CACHE_TTL_SECONDS,
        coord_decimals: int = DEFAULT_COORD_DECIMALS,
    ) -> None:
        self.resolver = resolver
        self.weather_client = weather_client
        self.cache = cache
        self.ttl_seconds = ttl_seconds
        self.coord_decimals = coord_decimals

    async def fetch_forecast(self, address: str) -> ForecastResult:
        location = await self._resolve(address)
        key = cache_key(location, self.coord_decimals)

        cached = await self._read_cache(key)
        if cached is not None:
            return cached

        logger.info("Cache miss for %s, fetching from provider", key)
        result = await self._fetch_fresh(location)

        try:
            await self.cache.set_json(key, result.to_cache_payload(), ttl_seconds=self.ttl_seconds)
        except CacheUnavailable as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        return result

    async def _resolve(self, address: str) -> Location:
        try:
            resolution = await self.resolver.resolve(address)
        except ResolverUnavailable as exc:
            raise UpstreamUnavailable(f"Geocoding service temporarily unavailable: {exc}") from exc

        if isinstance(resolution, NotFound):
            logger.info("Address not found: %s", resolution.reason)
            raise AddressNotFound("Address not found. Please verify and try again.")
        return resolution.location

    async def _read_cache(self, key: str) -> Optional[ForecastResult]:
        try:
            cached = await self.cache.get_json(key)
        except CacheUnavailable as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        if not cached.hit or cached.value is None:
            return None

        try:
            result = ForecastResult.from_cache(cached.value)
        except (KeyError, TypeError, ValidationError):
            logger.warning("Ignoring malformed cache entry %s", key)
            return None
        logger.debug("Cache hit for %s (age %ss)", key, cached.age_seconds)
        return result

    async def _fetch_fresh(self, location: Location) -> ForecastResult:
        try:
            current = await self.weather_client.current_conditions(location.latitude, location.longitude)
            feed = await self.weather_client.raw_forecast_feed(location.latitude, location.longitude)
        except ProviderUnavailable as exc:
            raise UpstreamUnavailable(str(exc)) from exc

        snapshot = WeatherSnapshot(
            current_temp=current.temp,
            temp_min=current.temp_min,
            temp_max=current.temp_max,
            description=current.description,
            icon=current.icon,
            daily=tuple(aggregate(feed)),
        )
        return ForecastResult(location=location, snapshot=snapshot, provenance=Provenance.FRESH)
