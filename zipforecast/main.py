import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from zipforecast.config import Settings, settings
from zipforecast.errors import AddressNotFound, UpstreamUnavailable
from zipforecast.models import ForecastResponse
from zipforecast.services.cache import ForecastCache, MemoryCache, RedisCache
from zipforecast.services.forecast import ForecastService
from zipforecast.services.geocoding import NominatimGeocoder
from zipforecast.services.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def build_cache(config: Settings) -> ForecastCache:
    if config.cache_backend == "memory":
        return MemoryCache()
    return RedisCache(config.redis_url)


def build_forecast_service(config: Settings) -> ForecastService:
    return ForecastService(
        resolver=NominatimGeocoder(
            base_url=config.nominatim_base_url,
            user_agent=config.nominatim_user_agent,
            country_codes=config.nominatim_country_codes,
            timeout_seconds=config.geocoder_timeout_seconds,
        ),
        weather_client=OpenWeatherClient(
            config.openweather_base_url,
            config.openweather_api_key,
            timeout_seconds=config.openweather_timeout_seconds,
        ),
        cache=build_cache(config),
        ttl_seconds=config.cache_ttl_forecast_seconds,
        coord_decimals=config.cache_coord_round_decimals,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    app.state.forecast_service = build_forecast_service(settings)
    logger.info("%s started with %s cache", settings.app_name, settings.cache_backend)
    yield
    await app.state.forecast_service.cache.aclose()


app = FastAPI(title=settings.app_name, lifespan=lifespan)


def get_forecast_service(request: Request) -> ForecastService:
    return request.app.state.forecast_service


@app.get("/health")
def health():
    return {"status": "ok", "service": settings.app_name}


@app.get("/")
def root():
    return JSONResponse({"service": settings.app_name, "docs": "/docs"})


@app.get("/v1/forecast", response_model=ForecastResponse)
async def forecast(
    address: str = Query(..., min_length=1, description="US street address, city or zip code"),
    service: ForecastService = Depends(get_forecast_service),
):
    try:
        result = await service.fetch_forecast(address)
    except AddressNotFound as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except UpstreamUnavailable as exc:
        logger.error("Forecast unavailable for %r: %s", address, exc)
        raise HTTPException(
            status_code=503,
            detail="We're having trouble fetching weather data right now. Please try again in a few moments.",
        )
    return ForecastResponse.from_result(result)
