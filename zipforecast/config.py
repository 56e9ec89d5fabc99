from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "zipforecast"
    log_level: str = "INFO"

    # Weather provider
    openweather_api_key: str
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_timeout_seconds: float = 5.0

    # Geocoder
    nominatim_base_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "zipforecast/1.0"
    nominatim_country_codes: str = "us"
    geocoder_timeout_seconds: float = 5.0

    # Cache
    cache_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_forecast_seconds: int = 1800
    cache_coord_round_decimals: int = 2


settings = Settings()
