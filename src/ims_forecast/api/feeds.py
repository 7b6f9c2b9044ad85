"""API endpoints serving the downloaded IMS forecast feeds."""

import logging
from typing import Awaitable, Callable, List

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi_cache.decorator import cache

from ims_forecast.api.dependencies import get_feed_manager, get_feed_store
from ims_forecast.config import FEED_CACHE_EXPIRE_SECONDS
from ims_forecast.exceptions import FeedUnavailableError
from ims_forecast.feeds.catalog import LOCALITY_IDS, LOCALITY_NAMES, SEA_IDS
from ims_forecast.feeds.manager import FeedManager
from ims_forecast.feeds.models import DataStatus, DownloadMetadata, FeedAlert, FeedForecast, FeedItem
from ims_forecast.feeds.store import FeedStore
from ims_forecast.weather.models import Region
from ims_forecast.weather.regions import REGIONS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["feeds"])
admin_router = APIRouter(prefix="/api/admin", tags=["admin"])


async def _read_feed(feed_id: str, name: str, reader: Callable[[], Awaitable[List[FeedItem]]]) -> FeedForecast:
    """Run a feed reader and map its failures to HTTP errors."""
    try:
        items = await reader()
    except FeedUnavailableError as e:
        logger.warning(f"Feed {feed_id} unavailable: {e}")
        raise HTTPException(status_code=503, detail=str(e))
    except ValueError as e:
        logger.error(f"Malformed feed {feed_id}: {e}")
        raise HTTPException(status_code=502, detail="Forecast feed could not be parsed")

    return FeedForecast(feed=feed_id, name=name, items=items)


@router.get("/cities", response_model=List[Region])
async def get_cities() -> List[Region]:
    """Cities that have a dedicated IMS forecast feed."""
    return [region for region in REGIONS if region.id in LOCALITY_IDS]


@router.get("/city-forecast", response_model=FeedForecast)
@cache(expire=FEED_CACHE_EXPIRE_SECONDS)
async def get_city_forecast(
    city: str = Query(..., description="City id as returned by /api/cities, e.g. telaviv"),
    feed_store: FeedStore = Depends(get_feed_store)
) -> FeedForecast:
    """Forecast feed of one city."""
    if city not in LOCALITY_IDS:
        raise HTTPException(status_code=400, detail=f"Unknown city '{city}'")

    return await _read_feed(
        f"city_{city}",
        f"{LOCALITY_NAMES[city]} Forecast",
        lambda: feed_store.get_city_forecast(city)
    )


@router.get("/country-forecast", response_model=FeedForecast)
@cache(expire=FEED_CACHE_EXPIRE_SECONDS)
async def get_country_forecast(feed_store: FeedStore = Depends(get_feed_store)) -> FeedForecast:
    """Country-wide forecast feed."""
    return await _read_feed("country", "Country Forecast", feed_store.get_country_forecast)


@router.get("/sea-forecast", response_model=FeedForecast)
@cache(expire=FEED_CACHE_EXPIRE_SECONDS)
async def get_sea_forecast(
    location: str = Query(..., description=f"One of: {', '.join(SEA_IDS)}"),
    feed_store: FeedStore = Depends(get_feed_store)
) -> FeedForecast:
    """Sea forecast feed of one coastal location."""
    if location not in SEA_IDS:
        raise HTTPException(status_code=400, detail=f"Unknown sea location '{location}'")

    return await _read_feed(
        f"sea_{location}",
        f"{location.title()} Sea Forecast",
        lambda: feed_store.get_sea_forecast(location)
    )


@router.get("/uvi-forecast", response_model=FeedForecast)
@cache(expire=FEED_CACHE_EXPIRE_SECONDS)
async def get_uvi_forecast(feed_store: FeedStore = Depends(get_feed_store)) -> FeedForecast:
    """UV index forecast feed."""
    return await _read_feed("uvi", "UVI Forecast", feed_store.get_uvi_forecast)


@router.get("/alerts", response_model=List[FeedAlert])
@cache(expire=FEED_CACHE_EXPIRE_SECONDS)
async def get_alerts(feed_store: FeedStore = Depends(get_feed_store)) -> List[FeedAlert]:
    """Active weather warnings from all warning feeds."""
    try:
        alerts = await feed_store.get_all_alerts()
    except FeedUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    logger.info(f"Returning {len(alerts)} active alerts")
    return alerts


@admin_router.get("/data-status", response_model=DataStatus)
async def get_data_status(feed_manager: FeedManager = Depends(get_feed_manager)) -> DataStatus:
    """Freshness of the downloaded feed data."""
    return await run_in_threadpool(feed_manager.get_data_status)


@admin_router.post("/refresh-feeds", response_model=DownloadMetadata)
async def refresh_feeds(feed_manager: FeedManager = Depends(get_feed_manager)) -> DownloadMetadata:
    """Download all feeds now, regardless of their age.

    Raises:
        HTTPException: 502 if the download fails
    """
    try:
        metadata = await feed_manager.ensure_fresh_data(force=True)
    except Exception as e:
        logger.error(f"Manual feed refresh failed: {e}")
        raise HTTPException(status_code=502, detail="Feed refresh failed")

    logger.info(f"Manual feed refresh: {metadata.successful}/{metadata.total} feeds downloaded")
    return metadata
