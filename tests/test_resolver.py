import random
from datetime import timedelta
from typing import List, Optional

import httpx
import pytest

from helpers import TODAY, daily_observations
from ims_forecast.exceptions import FeedUnavailableError, ServiceUnavailableError, StationNotFoundError
from ims_forecast.feeds.models import FeedItem
from ims_forecast.weather.dates import get_forecast_date_range
from ims_forecast.weather.models import (
    DailyForecastPoint, ForecastSource, HourlyForecastPoint, Period
)
from ims_forecast.weather.resolver import (
    ForecastResolver, NeedsFallback, Resolved, ResolverState, min_required_periods, next_state
)
from ims_forecast.weather.synthetic import SyntheticForecastGenerator

FEED_ITEM = FeedItem(
    title="Tel Aviv forecast for 2024-06-10",
    description="Partly cloudy. 18-26°C. Humidity: 60%. NW winds 15 km/h. No rain.",
    pub_date="Mon, 10 Jun 2024 06:00:00 +0300",
)


class StubFeedSource:
    def __init__(self, items: Optional[List[FeedItem]] = None, error: Optional[Exception] = None) -> None:
        self.items = items or []
        self.error = error
        self.requested: List[str] = []

    async def get_region_forecast(self, region_id: str) -> List[FeedItem]:
        self.requested.append(region_id)
        if self.error is not None:
            raise self.error
        return self.items


def _resolver(station_service, feed_source) -> ForecastResolver:
    return ForecastResolver(
        station_service,
        feed_source,
        SyntheticForecastGenerator(rng=random.Random(0)),
    )


def test_next_state_transitions():
    resolved = Resolved([], ForecastSource.FEED)
    fallback = NeedsFallback("nothing")

    assert next_state(ResolverState.TRY_PRIMARY_FEED, resolved) is ResolverState.DONE
    assert next_state(ResolverState.TRY_PRIMARY_FEED, fallback) is ResolverState.TRY_OBSERVATIONS
    assert next_state(ResolverState.TRY_OBSERVATIONS, fallback) is ResolverState.GENERATE_SYNTHETIC
    assert next_state(ResolverState.GENERATE_SYNTHETIC, resolved) is ResolverState.DONE

    with pytest.raises(ValueError):
        next_state(ResolverState.GENERATE_SYNTHETIC, fallback)


@pytest.mark.asyncio
async def test_resolve_raises_when_synthetic_step_falls_back(station_service):
    resolver = _resolver(station_service, StubFeedSource())

    async def no_synthetic(ctx):
        return NeedsFallback("generator disabled")

    resolver._steps[ResolverState.GENERATE_SYNTHETIC] = no_synthetic

    with pytest.raises(ValueError, match="No fallback from state"):
        await resolver.resolve(178, Period.MEDIUM, today=TODAY)


def test_min_required_periods_is_capped_by_window():
    assert min_required_periods(Period.MEDIUM, get_forecast_date_range(Period.MEDIUM, TODAY), 3) == 3
    assert min_required_periods(Period.MEDIUM, get_forecast_date_range(Period.MEDIUM, TODAY), 10) == 7
    assert min_required_periods(Period.SHORT, get_forecast_date_range(Period.SHORT, TODAY), 100) == 48


@pytest.mark.asyncio
async def test_feed_is_preferred(station_service, station_client):
    feed = StubFeedSource([FEED_ITEM])

    result = await _resolver(station_service, feed).resolve(178, Period.MEDIUM, TODAY)

    assert result.source is ForecastSource.FEED
    assert result.region.id == "telaviv"
    assert feed.requested == ["telaviv"]
    assert result.fallback_reasons == []
    assert result.forecast == [DailyForecastPoint(
        date="2024-06-10",
        temp_min="18.0",
        temp_max="26.0",
        temp_current="22.0",
        humidity="60",
        wind_speed="4.2",
        rain="0.0",
    )]
    station_client.get_station_data_multi_channel.assert_not_awaited()


@pytest.mark.asyncio
async def test_hourly_feed_covers_window(station_service):
    result = await _resolver(station_service, StubFeedSource([FEED_ITEM])).resolve(178, Period.SHORT, TODAY)

    assert result.source is ForecastSource.FEED
    assert len(result.forecast) == 48
    assert all(isinstance(point, HourlyForecastPoint) for point in result.forecast)
    assert result.forecast[0].wind_dir == "315"


@pytest.mark.asyncio
async def test_nearest_region_feed_is_requested(station_service):
    feed = StubFeedSource()

    result = await _resolver(station_service, feed).resolve(42, Period.MEDIUM, TODAY)

    assert feed.requested == ["haifa"]
    assert result.region.id == "haifa"
    assert result.region.distance_km < 5


@pytest.mark.asyncio
async def test_observations_used_when_feed_missing(station_service, station_client):
    days = [TODAY + timedelta(days=offset) for offset in range(5)]
    station_client.get_station_data_multi_channel.return_value = daily_observations(178, days)

    result = await _resolver(station_service, StubFeedSource()).resolve(178, Period.MEDIUM, TODAY)

    assert result.source is ForecastSource.OBSERVATIONS
    assert len(result.forecast) == 5
    assert result.forecast[0].temp_min == "17.0"
    assert result.forecast[0].temp_max == "27.0"
    assert result.forecast[0].temp_current == "27.0"
    assert result.fallback_reasons == ["no feed for region telaviv"]
    station_client.get_station_data_multi_channel.assert_awaited_once_with(
        178, (7, 8), "2024-06-10", "2024-06-16"
    )


@pytest.mark.asyncio
async def test_feed_error_falls_back(station_service, station_client):
    days = [TODAY + timedelta(days=offset) for offset in range(7)]
    station_client.get_station_data_multi_channel.return_value = daily_observations(178, days)
    feed = StubFeedSource(error=FeedUnavailableError("No XML data available"))

    result = await _resolver(station_service, feed).resolve(178, Period.MEDIUM, TODAY)

    assert result.source is ForecastSource.OBSERVATIONS
    assert result.fallback_reasons == ["feed error: No XML data available"]


@pytest.mark.asyncio
async def test_sparse_observations_give_full_synthetic_window(station_service, station_client):
    station_client.get_station_data_multi_channel.return_value = daily_observations(178, [TODAY])

    result = await _resolver(station_service, StubFeedSource()).resolve(178, Period.MEDIUM, TODAY)

    assert result.source is ForecastSource.SYNTHETIC
    assert [point.date for point in result.forecast] == [
        (TODAY + timedelta(days=offset)).isoformat() for offset in range(7)
    ]
    assert result.fallback_reasons[-1] == "insufficient coverage: 1/7 periods"


@pytest.mark.asyncio
async def test_short_period_coverage_counts_hours(station_service, station_client):
    # Two readings per day are two hourly points, short of the threshold of 3
    station_client.get_station_data_multi_channel.return_value = daily_observations(178, [TODAY])

    result = await _resolver(station_service, StubFeedSource()).resolve(178, Period.SHORT, TODAY)

    assert result.source is ForecastSource.SYNTHETIC
    assert len(result.forecast) == 48
    assert result.fallback_reasons[-1] == "insufficient coverage: 2/48 periods"


@pytest.mark.asyncio
async def test_upstream_failure_gives_synthetic(station_service, station_client):
    station_client.get_station_data_multi_channel.side_effect = httpx.ConnectError("down")

    result = await _resolver(station_service, StubFeedSource()).resolve(178, Period.LONG, TODAY)

    assert result.source is ForecastSource.SYNTHETIC
    assert len(result.forecast) == 30
    assert result.date_range.start == TODAY
    assert len(result.fallback_reasons) == 2


@pytest.mark.asyncio
async def test_empty_fan_out_gives_synthetic(station_service):
    result = await _resolver(station_service, StubFeedSource()).resolve(178, Period.MEDIUM, TODAY)

    assert result.source is ForecastSource.SYNTHETIC
    assert result.fallback_reasons[-1].startswith("observations error")


@pytest.mark.asyncio
async def test_station_without_location_uses_default_region(station_service):
    feed = StubFeedSource()

    result = await _resolver(station_service, feed).resolve(7, Period.MEDIUM, TODAY)

    assert result.region.id == "telaviv"
    assert result.region.distance_km is None
    assert feed.requested == ["telaviv"]


@pytest.mark.asyncio
async def test_unknown_station(station_service):
    with pytest.raises(StationNotFoundError):
        await _resolver(station_service, StubFeedSource()).resolve(999, Period.SHORT, TODAY)


@pytest.mark.asyncio
async def test_no_station_metadata_is_the_only_failure(station_service, station_client):
    station_client.get_stations.side_effect = httpx.ConnectError("down")

    with pytest.raises(ServiceUnavailableError):
        await _resolver(station_service, StubFeedSource([FEED_ITEM])).resolve(178, Period.SHORT, TODAY)


@pytest.mark.asyncio
async def test_response_serializes_camel_case(station_service):
    result = await _resolver(station_service, StubFeedSource([FEED_ITEM])).resolve(178, Period.MEDIUM, TODAY)

    payload = result.model_dump(mode="json", by_alias=True)

    assert payload["source"] == "feed"
    assert payload["stationId"] == 178
    assert payload["dateRange"] == {"from": "2024-06-10", "to": "2024-06-16"}
    assert payload["region"]["nameHebrew"]
    assert payload["forecast"][0]["tempMax"] == "26.0"
    assert payload["fallbackReasons"] == []
