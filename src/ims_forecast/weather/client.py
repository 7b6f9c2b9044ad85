"""HTTP client for the IMS Envista station API."""

import asyncio
import logging
from typing import List, Optional, Sequence

import httpx
from pydantic import ValidationError

from ims_forecast.config import IMS_API_BASE_URL, IMS_API_TOKEN, REQUEST_TIMEOUT_SECONDS, USER_AGENT
from ims_forecast.weather.models import (
    ChannelDataSet, ChannelReading, ImsStationDataResponse, Station
)

logger = logging.getLogger(__name__)


class IMSStationClient:
    """Async client for IMS station metadata and channel observations.

    Pure I/O: no caching happens here.
    """

    def __init__(
        self,
        base_url: str = IMS_API_BASE_URL,
        api_token: str = IMS_API_TOKEN,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """Initialize the station client.

        Args:
            base_url: Base URL of the Envista API
            api_token: IMS API token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.client = httpx.AsyncClient(
            headers={
                "Authorization": f"ApiToken {api_token}",
                "User-Agent": USER_AGENT,
            },
            timeout=timeout,
            transport=transport
        )

    async def get_stations(self) -> List[Station]:
        """Fetch all stations.

        Returns:
            List of stations

        Raises:
            httpx.HTTPError: If the API request fails
            ValidationError: If the response format is invalid
            ValueError: If the response is not JSON
        """
        url = f"{self.base_url}/stations"
        logger.info("Fetching station list")

        try:
            response = await self.client.get(url)
            response.raise_for_status()

            if "application/json" not in response.headers.get("content-type", ""):
                raise ValueError("Invalid response format")

            stations = [Station.model_validate(item) for item in response.json()]
            logger.info(f"Fetched {len(stations)} stations")
            return stations

        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error from IMS API: {e.response.status_code} - {e.response.text}")
            raise
        except httpx.RequestError as e:
            logger.error(f"Request error to IMS API: {e}")
            raise
        except ValidationError as e:
            logger.error(f"Invalid station list format: {e}")
            raise
        except ValueError as e:
            logger.error(f"Invalid station list response: {e}")
            raise

    async def get_station_data(
        self,
        station_id: int,
        channel_id: int,
        from_date: str,
        to_date: str
    ) -> ChannelDataSet:
        """Fetch readings of one channel over a date range.

        Args:
            station_id: Station id
            channel_id: Channel id
            from_date: Start date (YYYY-MM-DD)
            to_date: End date (YYYY-MM-DD)

        Returns:
            ChannelDataSet ordered by timestamp

        Raises:
            httpx.HTTPError: If the API request fails
            ValueError: If the response is not JSON or has an invalid format
        """
        url = f"{self.base_url}/stations/{station_id}/data/{channel_id}"
        params = {"from": from_date, "to": to_date}

        response = await self.client.get(url, params=params)
        response.raise_for_status()

        if "application/json" not in response.headers.get("content-type", ""):
            raise ValueError("Invalid response format")

        raw = ImsStationDataResponse.model_validate(response.json())
        return self._to_data_set(raw, channel_id)

    async def get_station_data_multi_channel(
        self,
        station_id: int,
        channel_ids: Sequence[int],
        from_date: str,
        to_date: str
    ) -> List[ChannelDataSet]:
        """Fetch several channels concurrently.

        Channels that fail are dropped from the result instead of failing
        the whole batch.

        Returns:
            Data sets for the channels that could be fetched
        """
        results = await asyncio.gather(
            *(self.get_station_data(station_id, channel_id, from_date, to_date) for channel_id in channel_ids),
            return_exceptions=True
        )

        data_sets = []
        for channel_id, result in zip(channel_ids, results):
            if isinstance(result, BaseException):
                logger.debug(f"Skipping channel {channel_id} of station {station_id}: {result}")
                continue
            data_sets.append(result)

        logger.info(f"Fetched {len(data_sets)}/{len(channel_ids)} channels for station {station_id} ({from_date}..{to_date})")
        return data_sets

    @staticmethod
    def _to_data_set(raw: ImsStationDataResponse, channel_id: int) -> ChannelDataSet:
        """Convert a raw data response into a ChannelDataSet."""
        readings = []
        for entry in raw.data:
            if not entry.channels or entry.channels[0].value is None:
                continue
            channel_value = entry.channels[0]
            readings.append(ChannelReading(
                channel_id=channel_id,
                timestamp=entry.datetime,
                value=channel_value.value,
                valid=channel_value.valid
            ))

        readings.sort(key=lambda reading: reading.timestamp)
        return ChannelDataSet(station_id=raw.station_id, channel_id=channel_id, readings=readings)

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.aclose()
