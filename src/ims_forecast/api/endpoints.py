"""API endpoints for station data and forecasts."""

import logging
from typing import List, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ims_forecast.api.dependencies import get_services
from ims_forecast.cache.two_level import CacheStats
from ims_forecast.exceptions import (
    GeocodingError, ServiceUnavailableError, StationNotFoundError, UpstreamUnavailableError
)
from ims_forecast.services import Services
from ims_forecast.weather.models import (
    ErrorResponse, ForecastResponse, NearestStation, Period, Station, StationData
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["stations"])

UNAVAILABLE_DETAIL = "Weather service temporarily unavailable"

_error_responses = {
    404: {"model": ErrorResponse, "description": "Station not found"},
    503: {"model": ErrorResponse, "description": "Station metadata unavailable"},
}


def _station_id_query(description: str = "IMS station id"):
    return Query(..., alias="stationId", gt=0, description=description)


@router.get("/stations", response_model=List[Station])
async def get_stations(services: Services = Depends(get_services)) -> List[Station]:
    """Get all IMS stations.

    Raises:
        HTTPException: 503 if the station list is unavailable
    """
    try:
        stations = await services.stations.get_stations()
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    logger.info(f"Returning {len(stations)} stations")
    return stations


@router.get("/nearest-station", response_model=NearestStation, responses=_error_responses)
async def get_nearest_station(
    lat: Optional[float] = Query(
        None,
        ge=-90,
        le=90,
        description="Latitude in decimal degrees (use with lon)"
    ),
    lon: Optional[float] = Query(
        None,
        ge=-180,
        le=180,
        description="Longitude in decimal degrees (use with lat)"
    ),
    city: Optional[str] = Query(
        None,
        description="City name (alternative to lat/lon, not both)"
    ),
    services: Services = Depends(get_services)
) -> NearestStation:
    """Find the station nearest to a coordinate or a city.

    Raises:
        HTTPException: 400 on invalid location parameters or unknown city,
            404 if no station has a location, 503 if stations are unavailable
    """
    lat, lon, city = validate_location_parameters(lat, lon, city)

    try:
        if city is not None:
            lat, lon = await run_in_threadpool(services.geocoding.forward_geocode, city)
        nearest = await services.stations.find_nearest_station(lat, lon)
    except GeocodingError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if nearest is None:
        raise HTTPException(status_code=404, detail="No station with a known location")

    logger.info(f"Nearest station to ({lat}, {lon}): {nearest.station.name} ({nearest.distance_km}km)")
    return nearest


def validate_location_parameters(
    lat: Optional[float],
    lon: Optional[float],
    city: Optional[str]
) -> tuple[Optional[float], Optional[float], Optional[str]]:
    """
    Validate location request parameters.

    Args:
        lat: Latitude in decimal degrees
        lon: Longitude in decimal degrees
        city: City name

    Returns:
        Tuple of (latitude, longitude, city)

    Raises:
        HTTPException: If validation fails
    """
    has_coordinates = lat is not None or lon is not None
    has_city = city is not None and city.strip() != ""

    if has_coordinates and has_city:
        raise HTTPException(
            status_code=400,
            detail="Cannot provide both coordinates and city name. Use either lat/lon OR city."
        )

    if not has_coordinates and not has_city:
        raise HTTPException(status_code=400, detail="Provide either lat/lon or city.")

    if has_coordinates and (lat is None or lon is None):
        raise HTTPException(
            status_code=400,
            detail="Both latitude and longitude must be provided when using coordinates."
        )

    return lat, lon, city.strip() if has_city else None


async def _load_station_data(services: Services, station_id: int, period: Period, cached: bool) -> StationData:
    try:
        # Unknown ids are rejected before any data request is made
        await services.stations.get_station(station_id)
        if cached:
            return await services.stations.get_station_data(station_id, period)
        return await services.stations.get_station_detail(station_id, period)

    except StationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    except (httpx.HTTPError, UpstreamUnavailableError) as e:
        logger.error(f"Error getting data for station {station_id}: {e}")
        raise HTTPException(status_code=502, detail=UNAVAILABLE_DETAIL)

    except ValidationError as e:
        logger.error(f"Data validation error: {e}")
        raise HTTPException(status_code=500, detail="Internal server error: data validation failed")


@router.get("/station-data", response_model=StationData, responses=_error_responses)
async def get_station_data(
    station_id: int = _station_id_query(),
    period: Period = Query(Period.SHORT, description="short (2 days), medium (7 days) or long (30 days)"),
    services: Services = Depends(get_services)
) -> StationData:
    """Historical observations for a station, served from the cache when possible."""
    data = await _load_station_data(services, station_id, period, cached=True)
    logger.info(f"Returning {len(data.channels)} channels for station {station_id}")
    return data


@router.get("/station-detail", response_model=StationData, responses=_error_responses)
async def get_station_detail(
    station_id: int = _station_id_query(),
    period: Period = Query(Period.SHORT, description="short (2 days), medium (7 days) or long (30 days)"),
    services: Services = Depends(get_services)
) -> StationData:
    """Fresh historical observations for a station, bypassing the cache."""
    return await _load_station_data(services, station_id, period, cached=False)


@router.get("/forecast", response_model=ForecastResponse, responses=_error_responses)
async def get_forecast(
    station_id: int = _station_id_query(),
    period: Period = Query(Period.SHORT, description="short (hourly, 2 days), medium (daily, 7 days) or long (daily, 30 days)"),
    services: Services = Depends(get_services)
) -> ForecastResponse:
    """Get a forecast for a station.

    The response is always tagged with its source: the regional IMS feed,
    aggregated station observations, or synthetic data.

    Raises:
        HTTPException: 404 for an unknown station, 503 if station metadata
            is unavailable
    """
    try:
        forecast = await services.resolver.resolve(station_id, period)

    except StationNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    except ServiceUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))

    except Exception as e:
        logger.error(f"Unexpected error resolving forecast for station {station_id}: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")

    logger.info(
        f"Forecast for station {station_id} from {forecast.source.value}: {len(forecast.forecast)} entries"
    )
    return forecast


@router.get("/health", tags=["health"])
async def health_check(services: Services = Depends(get_services)) -> dict:
    """Health check endpoint.

    Returns:
        Health status response including feed data freshness
    """
    return {
        "status": "healthy",
        "service": "ims-forecast",
        "feedData": await run_in_threadpool(services.feed_manager.get_status_message)
    }


@router.get("/cache/stats", response_model=CacheStats, tags=["cache"])
async def get_cache_stats(services: Services = Depends(get_services)) -> CacheStats:
    """Entry counts of both cache tiers and the durable tier size."""
    return await services.cache.stats()


@router.post("/cache/clear", tags=["cache"])
async def clear_cache(services: Services = Depends(get_services)) -> dict:
    """Empty both cache tiers."""
    await services.cache.clear()
    return {"success": True, "message": "Cache cleared successfully"}
