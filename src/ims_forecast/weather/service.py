"""Station service: cached access to IMS station metadata and observations."""

import logging
from datetime import date
from typing import List, Optional, Sequence

import httpx
from pydantic import TypeAdapter

from ims_forecast.cache.two_level import CacheType, TwoLevelCache
from ims_forecast.config import WEATHER_CHANNEL_IDS
from ims_forecast.exceptions import ServiceUnavailableError, StationNotFoundError, UpstreamUnavailableError
from ims_forecast.weather.client import IMSStationClient
from ims_forecast.weather.dates import get_date_range
from ims_forecast.weather.geo import find_nearest_station
from ims_forecast.weather.models import (
    ChannelDataSet, DateRange, NearestStation, Period, Station, StationData
)

logger = logging.getLogger(__name__)

_stations_adapter = TypeAdapter(List[Station])
_data_sets_adapter = TypeAdapter(List[ChannelDataSet])


class StationService:
    """Station metadata and observations, cached through a TwoLevelCache."""

    def __init__(
        self,
        client: IMSStationClient,
        cache: TwoLevelCache,
        channel_ids: Sequence[int] = WEATHER_CHANNEL_IDS
    ):
        """Initialize the station service.

        Args:
            client: Upstream station client
            cache: Shared two-level cache
            channel_ids: Channels requested for observations
        """
        self.client = client
        self.cache = cache
        self.channel_ids = tuple(channel_ids)

    async def get_stations(self) -> List[Station]:
        """Get the station list from cache or upstream.

        Raises:
            ServiceUnavailableError: If neither the cache nor the IMS API can
                provide the station list
        """
        try:
            raw = await self.cache.get(CacheType.STATIONS, producer=self.client.get_stations)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Station list unavailable: {e}")
            raise ServiceUnavailableError("Weather service temporarily unavailable") from e

        return _stations_adapter.validate_python(raw or [])

    async def get_station(self, station_id: int) -> Station:
        """Get one station by id.

        Raises:
            StationNotFoundError: If the id is unknown
            ServiceUnavailableError: If the station list is unavailable
        """
        for station in await self.get_stations():
            if station.station_id == station_id:
                return station
        raise StationNotFoundError(station_id)

    async def find_nearest_station(self, lat: float, lon: float) -> Optional[NearestStation]:
        """Find the station closest to a coordinate."""
        match = find_nearest_station(lat, lon, await self.get_stations())
        if match is None:
            return None
        station, distance = match
        return NearestStation(station=station, distance_km=round(distance, 2))

    async def get_observations(self, station_id: int, date_range: DateRange) -> List[ChannelDataSet]:
        """Get multi-channel observations for a window, cached per station and window.

        Raises:
            UpstreamUnavailableError: If no channel could be fetched. Nothing
                is cached in that case.
            httpx.HTTPError: If the upstream request fails
        """
        from_date = date_range.start.isoformat()
        to_date = date_range.end.isoformat()

        async def _fetch() -> List[ChannelDataSet]:
            data_sets = await self.client.get_station_data_multi_channel(
                station_id, self.channel_ids, from_date, to_date
            )
            if not data_sets:
                raise UpstreamUnavailableError(f"No channel data for station {station_id}")
            return data_sets

        raw = await self.cache.get(
            CacheType.FORECAST,
            {"station_id": station_id, "from": from_date, "to": to_date},
            producer=_fetch
        )
        return _data_sets_adapter.validate_python(raw or [])

    async def get_station_data(self, station_id: int, period: Period, today: Optional[date] = None) -> StationData:
        """Historical observations over the backward-looking window, cached."""
        date_range = get_date_range(period, today)
        channels = await self.get_observations(station_id, date_range)
        return StationData(station_id=station_id, period=period, date_range=date_range, channels=channels)

    async def get_station_detail(self, station_id: int, period: Period, today: Optional[date] = None) -> StationData:
        """Historical observations over the backward-looking window, bypassing the cache."""
        date_range = get_date_range(period, today)
        channels = await self.client.get_station_data_multi_channel(
            station_id,
            self.channel_ids,
            date_range.start.isoformat(),
            date_range.end.isoformat()
        )
        return StationData(station_id=station_id, period=period, date_range=date_range, channels=channels)

    async def aclose(self):
        """Close the station client."""
        try:
            await self.client.aclose()
        except Exception as e:
            logger.error(f"Error closing station client: {e}")
