"""Shared test data: stations and synthetic observation series."""

from datetime import date, datetime, timedelta, timezone
from typing import List

from ims_forecast.weather.aggregation import HUMIDITY_CHANNEL, TEMPERATURE_CHANNEL
from ims_forecast.weather.models import ChannelDataSet, ChannelReading, Coordinate, Station

TODAY = date(2024, 6, 10)
ISRAEL = timezone(timedelta(hours=3))

TEL_AVIV_STATION = Station(
    station_id=178,
    name="TEL AVIV COAST",
    location=Coordinate(latitude=32.058, longitude=34.7588),
)
HAIFA_STATION = Station(
    station_id=42,
    name="HAIFA PORT",
    location=Coordinate(latitude=32.8222, longitude=35.0006),
)
UNLOCATED_STATION = Station(station_id=7, name="MOBILE UNIT")


def daily_observations(station_id: int, days: List[date]) -> List[ChannelDataSet]:
    """Temperature and humidity readings at 06:00 and 15:00 of each day."""
    temperature = []
    humidity = []
    for day in days:
        for hour, temp in ((6, 17.0), (15, 27.0)):
            timestamp = datetime(day.year, day.month, day.day, hour, tzinfo=ISRAEL)
            temperature.append(ChannelReading(channel_id=TEMPERATURE_CHANNEL, timestamp=timestamp, value=temp))
            humidity.append(ChannelReading(channel_id=HUMIDITY_CHANNEL, timestamp=timestamp, value=55.0))

    return [
        ChannelDataSet(station_id=station_id, channel_id=TEMPERATURE_CHANNEL, readings=temperature),
        ChannelDataSet(station_id=station_id, channel_id=HUMIDITY_CHANNEL, readings=humidity),
    ]
