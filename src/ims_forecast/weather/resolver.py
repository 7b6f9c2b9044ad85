"""Forecast source resolution: feed, then observations, then synthetic data.

Each step returns either ``Resolved`` or ``NeedsFallback`` and
``next_state`` decides where to go from there. Every request ends in
``DONE`` with a source tag. The only error that escapes is
``ServiceUnavailableError``, raised when no station metadata can be loaded
to resolve a region from.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Union, cast

import httpx
from pydantic import ValidationError

from ims_forecast.config import COVERAGE_MIN_PERIODS, SYNTHETIC_BASE_TEMPERATURE
from ims_forecast.exceptions import ForecastServiceError
from ims_forecast.feeds.adapter import forecast_from_feed
from ims_forecast.feeds.models import FeedItem
from ims_forecast.weather.aggregation import aggregate_daily, aggregate_hourly
from ims_forecast.weather.dates import expected_periods, get_forecast_date_range
from ims_forecast.weather.geo import find_nearest_region
from ims_forecast.weather.models import (
    DateRange, ForecastPoints, ForecastResponse, ForecastSource, Period, Region, RegionMatch, Station
)
from ims_forecast.weather.regions import REGIONS
from ims_forecast.weather.service import StationService
from ims_forecast.weather.synthetic import SyntheticForecastGenerator

logger = logging.getLogger(__name__)

DEFAULT_REGION_ID = "telaviv"


class ResolverState(str, Enum):
    RESOLVE_REGION = "resolve_region"
    TRY_PRIMARY_FEED = "try_primary_feed"
    TRY_OBSERVATIONS = "try_observations"
    GENERATE_SYNTHETIC = "generate_synthetic"
    DONE = "done"


@dataclass(frozen=True)
class Resolved:
    """A step produced data."""
    points: ForecastPoints
    source: ForecastSource


@dataclass(frozen=True)
class NeedsFallback:
    """A step could not produce usable data."""
    reason: str


StepOutcome = Union[Resolved, NeedsFallback]

_FALLBACKS: Dict[ResolverState, ResolverState] = {
    ResolverState.TRY_PRIMARY_FEED: ResolverState.TRY_OBSERVATIONS,
    ResolverState.TRY_OBSERVATIONS: ResolverState.GENERATE_SYNTHETIC,
}


def next_state(state: ResolverState, outcome: StepOutcome) -> ResolverState:
    """Transition function of the resolver.

    Raises:
        ValueError: If ``state`` has no fallback, i.e. synthetic generation
            reported NeedsFallback
    """
    if isinstance(outcome, Resolved):
        return ResolverState.DONE
    if state not in _FALLBACKS:
        raise ValueError(f"No fallback from state {state.value}")
    return _FALLBACKS[state]


def min_required_periods(period: Period, date_range: DateRange, threshold: int = COVERAGE_MIN_PERIODS) -> int:
    """Fewest aggregated periods that count as sufficient coverage."""
    return min(threshold, expected_periods(period, date_range))


class FeedSource(Protocol):
    async def get_region_forecast(self, region_id: str) -> List[FeedItem]:
        ...


@dataclass
class ResolutionContext:
    """Per-request resolver state."""
    station: Station
    region: RegionMatch
    period: Period
    date_range: DateRange
    fallback_reasons: List[str] = field(default_factory=list)


class ForecastResolver:
    """Chooses the best available data source for a station forecast."""

    def __init__(
        self,
        station_service: StationService,
        feed_source: FeedSource,
        generator: Optional[SyntheticForecastGenerator] = None,
        regions: Sequence[Region] = REGIONS,
        coverage_threshold: int = COVERAGE_MIN_PERIODS,
        base_temperature: float = SYNTHETIC_BASE_TEMPERATURE,
        default_region_id: str = DEFAULT_REGION_ID
    ):
        """Initialize the resolver.

        Args:
            station_service: Cached station metadata and observations
            feed_source: Provides pre-fetched feed items per region
            generator: Synthetic data generator
            regions: Regions searched for the nearest feed
            coverage_threshold: Minimum aggregated periods before falling
                back to synthetic data (capped at the window size)
            base_temperature: Base temperature for synthetic data
            default_region_id: Region used for stations without a location
        """
        self.station_service = station_service
        self.feed_source = feed_source
        self.generator = generator or SyntheticForecastGenerator()
        self.regions = list(regions)
        self.default_region = next(
            (region for region in self.regions if region.id == default_region_id), self.regions[0]
        )
        self.coverage_threshold = coverage_threshold
        self.base_temperature = base_temperature

        self._steps: Dict[ResolverState, Callable[[ResolutionContext], Awaitable[StepOutcome]]] = {
            ResolverState.TRY_PRIMARY_FEED: self.try_primary_feed,
            ResolverState.TRY_OBSERVATIONS: self.try_observations,
            ResolverState.GENERATE_SYNTHETIC: self.generate_synthetic,
        }

    async def resolve_region(self, station_id: int) -> tuple[Station, RegionMatch]:
        """Look up the station and its nearest region.

        Raises:
            ServiceUnavailableError: If station metadata is unavailable
            StationNotFoundError: If the station id is unknown
        """
        station = await self.station_service.get_station(station_id)
        if station.location is None:
            region = RegionMatch(**self.default_region.model_dump(), distance_km=None)
            logger.warning(f"Station {station_id} has no location, using region {region.name}")
            return station, region

        region = find_nearest_region(station.location.latitude, station.location.longitude, self.regions)
        logger.info(f"Station {station_id} -> nearest region: {region.name} ({region.distance_km:.1f}km)")
        return station, region

    async def try_primary_feed(self, ctx: ResolutionContext) -> StepOutcome:
        """Use the pre-fetched feed of the station's region."""
        try:
            items = await self.feed_source.get_region_forecast(ctx.region.id)
        except (OSError, ValueError, ForecastServiceError) as e:
            logger.warning(f"Feed unavailable for {ctx.region.name}: {e}")
            return NeedsFallback(f"feed error: {e}")

        if not items:
            return NeedsFallback(f"no feed for region {ctx.region.id}")

        points = forecast_from_feed(items, ctx.period, ctx.date_range)
        if not points:
            return NeedsFallback(f"feed for region {ctx.region.id} has no usable items")

        logger.info(f"Using feed forecast for {ctx.region.name}")
        return Resolved(points, ForecastSource.FEED)

    async def try_observations(self, ctx: ResolutionContext) -> StepOutcome:
        """Aggregate station observations over the forecast window."""
        station_id = ctx.station.station_id
        try:
            data_sets = await self.station_service.get_observations(station_id, ctx.date_range)
        except (httpx.HTTPError, ValidationError, ValueError, ForecastServiceError) as e:
            logger.warning(f"Observations unavailable for station {station_id}: {e}")
            return NeedsFallback(f"observations error: {e}")

        if ctx.period.is_hourly:
            points = aggregate_hourly(data_sets)
        else:
            points = aggregate_daily(data_sets)

        expected = expected_periods(ctx.period, ctx.date_range)
        if len(points) < min_required_periods(ctx.period, ctx.date_range, self.coverage_threshold):
            logger.info(f"Insufficient station data ({len(points)}/{expected} periods)")
            return NeedsFallback(f"insufficient coverage: {len(points)}/{expected} periods")

        return Resolved(points, ForecastSource.OBSERVATIONS)

    async def generate_synthetic(self, ctx: ResolutionContext) -> StepOutcome:
        """Generate a full-coverage synthetic series."""
        points = self.generator.generate(
            ctx.period, ctx.date_range.start, ctx.date_range.end, self.base_temperature
        )
        logger.info(f"Synthetic forecast generated: {len(points)} entries")
        return Resolved(points, ForecastSource.SYNTHETIC)

    async def resolve(self, station_id: int, period: Period, today: Optional[date] = None) -> ForecastResponse:
        """Resolve a forecast for a station and period.

        Args:
            station_id: Station id (validated by the caller)
            period: Requested period
            today: Anchor of the forward-looking window (defaults to UTC today)

        Returns:
            ForecastResponse tagged with its source

        Raises:
            ServiceUnavailableError: If station metadata is unavailable
            StationNotFoundError: If the station id is unknown
        """
        station, region = await self.resolve_region(station_id)
        ctx = ResolutionContext(
            station=station,
            region=region,
            period=period,
            date_range=get_forecast_date_range(period, today)
        )

        state = ResolverState.TRY_PRIMARY_FEED
        outcome: StepOutcome = NeedsFallback("not started")
        while state is not ResolverState.DONE:
            outcome = await self._steps[state](ctx)
            if isinstance(outcome, NeedsFallback):
                ctx.fallback_reasons.append(outcome.reason)
            next_ = next_state(state, outcome)
            logger.info(f"Resolver {state.value} -> {next_.value}")
            state = next_

        # next_state only reaches DONE from a Resolved outcome
        resolved = cast(Resolved, outcome)
        return ForecastResponse(
            source=resolved.source,
            station_id=station.station_id,
            region=region,
            period=period,
            date_range=ctx.date_range,
            forecast=resolved.points,
            fallback_reasons=ctx.fallback_reasons
        )
