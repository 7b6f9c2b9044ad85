"""Construction of the service objects shared by all requests."""

import logging
from dataclasses import dataclass
from typing import Optional, Union

import redis.asyncio as redis

from ims_forecast.cache.stores import FileStore, RedisStore
from ims_forecast.cache.two_level import TwoLevelCache
from ims_forecast.config import (
    CACHE_BACKEND, CACHE_DIR, CACHE_PREFIX, FEED_DATA_DIR, SYNTHETIC_SEED
)
from ims_forecast.feeds.downloader import FeedDownloader
from ims_forecast.feeds.manager import FeedManager
from ims_forecast.feeds.store import FeedStore
from ims_forecast.weather.client import IMSStationClient
from ims_forecast.weather.geocoding import GeocodingService
from ims_forecast.weather.resolver import ForecastResolver
from ims_forecast.weather.service import StationService
from ims_forecast.weather.synthetic import SyntheticForecastGenerator

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Service objects built once at startup and injected into routes."""
    cache: TwoLevelCache
    stations: StationService
    resolver: ForecastResolver
    feed_store: FeedStore
    feed_manager: FeedManager
    geocoding: GeocodingService


async def build_services(
    redis_client: Optional[redis.Redis] = None,
    cache_backend: str = CACHE_BACKEND,
    feed_data_dir: str = FEED_DATA_DIR
) -> Services:
    """Build all services.

    Args:
        redis_client: Redis client for the durable cache tier
        cache_backend: "redis" or "file"
        feed_data_dir: Root directory of downloaded feeds
    """
    store: Union[RedisStore, FileStore]
    if cache_backend == "redis" and redis_client is not None:
        store = RedisStore(redis_client, prefix=f"{CACHE_PREFIX}:data")
        logger.info("Durable cache tier: Redis")
    else:
        store = FileStore(CACHE_DIR)
        await store.init()
        logger.info(f"Durable cache tier: files in {CACHE_DIR}")

    cache = TwoLevelCache(store)
    stations = StationService(IMSStationClient(), cache)
    downloader = FeedDownloader(data_dir=feed_data_dir)
    feed_store = FeedStore(downloader)

    return Services(
        cache=cache,
        stations=stations,
        resolver=ForecastResolver(stations, feed_store, SyntheticForecastGenerator(seed=SYNTHETIC_SEED)),
        feed_store=feed_store,
        feed_manager=FeedManager(downloader),
        geocoding=GeocodingService()
    )


async def close_services(services: Services) -> None:
    """Release HTTP clients."""
    await services.stations.aclose()
    try:
        await services.feed_manager.downloader.aclose()
    except Exception as e:
        logger.error(f"Error closing feed downloader: {e}")
