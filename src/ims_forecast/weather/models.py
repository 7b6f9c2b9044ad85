"""Data models for the IMS forecast service."""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Period(str, Enum):
    """Requested forecast period."""
    SHORT = "short"    # hourly, ~2 days
    MEDIUM = "medium"  # daily, 7 days
    LONG = "long"      # daily, 30 days

    @property
    def is_hourly(self) -> bool:
        return self is Period.SHORT


class ForecastSource(str, Enum):
    """Where a forecast series came from."""
    FEED = "feed"
    OBSERVATIONS = "observations"
    SYNTHETIC = "synthetic"


class Coordinate(CamelModel):
    """Geographic coordinate in decimal degrees."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class Monitor(CamelModel):
    """A measurement channel exposed by a station."""
    channel_id: int = Field(..., description="Channel id, meaning is station-family specific")
    name: str = Field(..., description="Human readable channel name")
    units: Optional[str] = Field(None, description="Measurement unit")
    active: bool = Field(True, description="Whether the channel currently reports")


class Station(CamelModel):
    """IMS station metadata."""
    station_id: int
    name: str
    short_name: Optional[str] = None
    location: Optional[Coordinate] = None
    active: bool = True
    region_id: Optional[int] = None
    monitors: List[Monitor] = Field(default_factory=list)


class ChannelReading(CamelModel):
    """One timestamped value of one channel."""
    channel_id: int
    timestamp: datetime = Field(..., description="Reading time with the offset reported upstream")
    value: float
    valid: bool = True


class ChannelDataSet(CamelModel):
    """Ordered readings of one channel of one station."""
    station_id: int
    channel_id: int
    readings: List[ChannelReading] = Field(default_factory=list)


class DateRange(BaseModel):
    """Inclusive calendar date window."""
    model_config = ConfigDict(populate_by_name=True)

    start: date = Field(..., alias="from")
    end: date = Field(..., alias="to")

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


class HourlyForecastPoint(CamelModel):
    """Forecast values for one hour. Null means no valid reading."""
    time: str = Field(..., description="Hour in 'YYYY-MM-DD HH:00' format")
    temp: Optional[str] = None
    humidity: Optional[str] = None
    wind_speed: Optional[str] = None
    wind_dir: Optional[str] = None
    rain: Optional[str] = None


class DailyForecastPoint(CamelModel):
    """Forecast values for one day. Null means no valid reading."""
    date: str = Field(..., description="Date in YYYY-MM-DD format")
    temp_min: Optional[str] = None
    temp_max: Optional[str] = None
    temp_current: Optional[str] = None
    humidity: Optional[str] = None
    wind_speed: Optional[str] = None
    rain: Optional[str] = None


ForecastPoints = Union[List[HourlyForecastPoint], List[DailyForecastPoint]]


class Region(CamelModel):
    """Forecast coverage area used for feed lookup."""
    id: str
    name: str
    name_hebrew: str
    location: Coordinate


class RegionMatch(Region):
    """A region together with its distance from a station."""
    distance_km: Optional[float] = Field(None, description="Null when the station has no location")


class NearestStation(CamelModel):
    """Nearest station lookup result."""
    station: Station
    distance_km: float


class StationData(CamelModel):
    """Raw multi-channel observations for a station."""
    station_id: int
    period: Period
    date_range: DateRange
    channels: List[ChannelDataSet]


class ForecastResponse(CamelModel):
    """Forecast for a station tagged with its data source."""
    source: ForecastSource
    station_id: int
    region: RegionMatch
    period: Period
    date_range: DateRange
    forecast: ForecastPoints
    fallback_reasons: List[str] = Field(default_factory=list)


class ImsChannelValue(BaseModel):
    """Raw channel value from the IMS data endpoint."""
    value: Optional[float] = None
    status: Optional[Union[int, str]] = None
    valid: bool = False


class ImsDataReading(BaseModel):
    """Raw reading from the IMS data endpoint."""
    datetime: str
    channels: List[ImsChannelValue] = Field(default_factory=list)


class ImsStationDataResponse(BaseModel):
    """Raw response from /stations/{id}/data/{channel}."""
    model_config = ConfigDict(populate_by_name=True)

    station_id: int = Field(..., alias="stationId")
    data: List[ImsDataReading] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
