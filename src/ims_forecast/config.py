"""Configuration settings for the IMS forecast service."""

import os
from typing import Final, Optional, Tuple
from dotenv import load_dotenv

load_dotenv()

# IMS station API
IMS_API_BASE_URL: str = os.getenv("IMS_API_BASE_URL", "https://api.ims.gov.il/v1/envista")
IMS_API_TOKEN: str = os.getenv("IMS_API_TOKEN", "")
USER_AGENT: Final[str] = "IMSForecastService/0.1 (user@example.com)"
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "30"))

# 1=Rain, 2=WSmax, 3=WDmax, 4=WS, 5=WD, 6=STDwd, 7=TD, 8=RH, 9=TDmax, 10=TDmin
WEATHER_CHANNEL_IDS: Final[Tuple[int, ...]] = (1, 2, 3, 4, 5, 6, 7, 8, 9, 10)

# Server configuration
HOST: str = os.getenv("HOST", "0.0.0.0")
PORT: int = int(os.getenv("PORT", "8000"))
DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO").upper()

# Two-level cache configuration
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
CACHE_PREFIX: str = os.getenv("CACHE_PREFIX", "ims-forecast")
CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "redis").lower()  # "redis" or "file"
CACHE_DIR: str = os.getenv("CACHE_DIR", ".cache")
STATIONS_CACHE_SECONDS: int = int(os.getenv("STATIONS_CACHE_SECONDS", str(48 * 60 * 60)))
FORECAST_CACHE_SECONDS: int = int(os.getenv("FORECAST_CACHE_SECONDS", str(24 * 60 * 60)))

# Response cache for read-only feed endpoints
FEED_CACHE_EXPIRE_SECONDS: int = int(os.getenv("FEED_CACHE_EXPIRE_SECONDS", "300"))

# Forecast feed (RSS/XML) settings
FEED_BASE_URL: str = os.getenv("FEED_BASE_URL", "https://ims.gov.il/sites/default/files/ims_data/xml_files")
FEED_DATA_DIR: str = os.getenv("FEED_DATA_DIR", "data")
FEED_REFRESH_INTERVAL_HOURS: float = float(os.getenv("FEED_REFRESH_INTERVAL_HOURS", "6"))
FEED_REFRESH_ON_STARTUP: bool = os.getenv("FEED_REFRESH_ON_STARTUP", "true").lower() == "true"
FEED_STALE_HOURS: float = float(os.getenv("FEED_STALE_HOURS", "6"))  # IMS publishes twice daily
FEED_URGENT_HOURS: float = float(os.getenv("FEED_URGENT_HOURS", "12"))
FEED_RETENTION_DAYS: int = int(os.getenv("FEED_RETENTION_DAYS", "7"))
FEED_DOWNLOAD_DELAY_SECONDS: float = float(os.getenv("FEED_DOWNLOAD_DELAY_SECONDS", "0.5"))

# Forecast resolution
COVERAGE_MIN_PERIODS: int = int(os.getenv("COVERAGE_MIN_PERIODS", "3"))
SYNTHETIC_BASE_TEMPERATURE: float = float(os.getenv("SYNTHETIC_BASE_TEMPERATURE", "20.0"))
_seed = os.getenv("SYNTHETIC_SEED")
SYNTHETIC_SEED: Optional[int] = int(_seed) if _seed else None

# Geocoding
GEOCODING_USER_AGENT: str = os.getenv("GEOCODING_USER_AGENT", "ims-forecast-service")
