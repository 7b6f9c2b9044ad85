from unittest.mock import AsyncMock

import pytest

from helpers import HAIFA_STATION, TEL_AVIV_STATION, UNLOCATED_STATION
from ims_forecast.cache.two_level import TwoLevelCache
from ims_forecast.weather.aggregation import HUMIDITY_CHANNEL, TEMPERATURE_CHANNEL
from ims_forecast.weather.client import IMSStationClient
from ims_forecast.weather.service import StationService


@pytest.fixture
def station_client() -> AsyncMock:
    client = AsyncMock(spec=IMSStationClient)
    client.get_stations.return_value = [TEL_AVIV_STATION, HAIFA_STATION, UNLOCATED_STATION]
    client.get_station_data_multi_channel.return_value = []
    return client


@pytest.fixture
def station_service(station_client: AsyncMock) -> StationService:
    return StationService(station_client, TwoLevelCache(), channel_ids=[TEMPERATURE_CHANNEL, HUMIDITY_CHANNEL])
