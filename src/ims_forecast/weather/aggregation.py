"""Hourly and daily rollups of raw channel readings."""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from ims_forecast.weather.models import (
    ChannelDataSet, ChannelReading, DailyForecastPoint, HourlyForecastPoint
)

logger = logging.getLogger(__name__)

RAIN_CHANNEL = 1
WIND_SPEED_CHANNEL = 4
WIND_DIRECTION_CHANNEL = 5
TEMPERATURE_CHANNEL = 7
HUMIDITY_CHANNEL = 8

# Channel id -> semantic field; other channels are ignored
CHANNEL_FIELDS: Dict[int, str] = {
    TEMPERATURE_CHANNEL: "temp",
    HUMIDITY_CHANNEL: "humidity",
    WIND_SPEED_CHANNEL: "wind_speed",
    WIND_DIRECTION_CHANNEL: "wind_dir",
    RAIN_CHANNEL: "rain",
}

# Decimal places per field, shared with the synthetic generator
PRECISION: Dict[str, int] = {
    "temp": 1,
    "humidity": 0,
    "wind_speed": 1,
    "wind_dir": 0,
    "rain": 1,
}


def format_value(value: Optional[float], field_name: str) -> Optional[str]:
    """Format a numeric field with its fixed precision."""
    if value is None:
        return None
    return f"{value:.{PRECISION[field_name]}f}"


def _average(values: List[float]) -> Optional[float]:
    return sum(values) / len(values) if values else None


def _total(values: List[float]) -> Optional[float]:
    return sum(values) if values else None


def _valid_readings(data_sets: Iterable[ChannelDataSet]) -> Iterable[ChannelReading]:
    """Yield valid readings of known channels."""
    for data_set in data_sets:
        if data_set.channel_id not in CHANNEL_FIELDS:
            continue
        for reading in data_set.readings:
            if reading.valid:
                yield reading


def hour_key(timestamp: datetime) -> str:
    """Local calendar hour of a timestamp, in the offset it was reported with."""
    return timestamp.strftime("%Y-%m-%d %H:00")


def day_key(timestamp: datetime) -> str:
    """Local calendar day of a timestamp, in the offset it was reported with."""
    return timestamp.strftime("%Y-%m-%d")


def aggregate_hourly(data_sets: Iterable[ChannelDataSet]) -> List[HourlyForecastPoint]:
    """Aggregate channel readings into hourly points.

    Readings are bucketed by local clock hour. Every field is the average of
    its valid readings in the hour, except rain which is summed.

    Args:
        data_sets: Channel data sets of one station

    Returns:
        Hourly points sorted by time
    """
    buckets: Dict[str, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))

    for reading in _valid_readings(data_sets):
        buckets[hour_key(reading.timestamp)][CHANNEL_FIELDS[reading.channel_id]].append(reading.value)

    points = []
    for key in sorted(buckets):
        values = buckets[key]
        points.append(HourlyForecastPoint(
            time=key,
            temp=format_value(_average(values["temp"]), "temp"),
            humidity=format_value(_average(values["humidity"]), "humidity"),
            wind_speed=format_value(_average(values["wind_speed"]), "wind_speed"),
            wind_dir=format_value(_average(values["wind_dir"]), "wind_dir"),
            rain=format_value(_total(values["rain"]), "rain"),
        ))

    logger.debug(f"Aggregated {len(points)} hourly points")
    return points


@dataclass
class _DailyAccumulator:
    temps: List[float] = field(default_factory=list)
    last_temp: Optional[float] = None
    last_temp_time: Optional[datetime] = None
    humidity: List[float] = field(default_factory=list)
    wind_speed: List[float] = field(default_factory=list)
    rain: List[float] = field(default_factory=list)

    def add(self, reading: ChannelReading) -> None:
        channel_id = reading.channel_id
        if channel_id == TEMPERATURE_CHANNEL:
            self.temps.append(reading.value)
            if self.last_temp_time is None or reading.timestamp > self.last_temp_time:
                self.last_temp = reading.value
                self.last_temp_time = reading.timestamp
        elif channel_id == HUMIDITY_CHANNEL:
            self.humidity.append(reading.value)
        elif channel_id == WIND_SPEED_CHANNEL:
            self.wind_speed.append(reading.value)
        elif channel_id == RAIN_CHANNEL:
            self.rain.append(reading.value)


def aggregate_daily(data_sets: Iterable[ChannelDataSet]) -> List[DailyForecastPoint]:
    """Aggregate channel readings into daily points.

    Temperature gives the day's min and max plus a current value, which is
    the reading with the latest timestamp of the day rather than an
    average. Humidity and wind speed are averaged, rain is summed. Wind
    direction is not part of the daily rollup.

    Args:
        data_sets: Channel data sets of one station

    Returns:
        Daily points sorted by date
    """
    days: Dict[str, _DailyAccumulator] = defaultdict(_DailyAccumulator)

    for reading in _valid_readings(data_sets):
        days[day_key(reading.timestamp)].add(reading)

    points = []
    for key in sorted(days):
        day = days[key]
        points.append(DailyForecastPoint(
            date=key,
            temp_min=format_value(min(day.temps) if day.temps else None, "temp"),
            temp_max=format_value(max(day.temps) if day.temps else None, "temp"),
            temp_current=format_value(day.last_temp, "temp"),
            humidity=format_value(_average(day.humidity), "humidity"),
            wind_speed=format_value(_average(day.wind_speed), "wind_speed"),
            rain=format_value(_total(day.rain), "rain"),
        ))

    logger.debug(f"Aggregated {len(points)} daily points")
    return points
