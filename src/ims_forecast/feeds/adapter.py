"""Extraction of structured values from free-text feed forecasts.

IMS locality feeds describe the forecast in prose. These heuristics pull
out the numbers the API serves; anything not found stays null.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from email.utils import parsedate_to_datetime
from typing import Dict, List, Optional, Sequence, Union

from ims_forecast.feeds.models import FeedItem
from ims_forecast.weather.aggregation import format_value
from ims_forecast.weather.models import DailyForecastPoint, DateRange, HourlyForecastPoint, Period

logger = logging.getLogger(__name__)

KMH_TO_MS = 1 / 3.6
KNOTS_TO_MS = 0.514444

_TEMP_RANGE = re.compile(r"(-?\d+)\s*(?:-|to)\s*(-?\d+)\s*(?:°|deg)", re.IGNORECASE)
_TEMP_SINGLE = re.compile(r"temperature:?\s*(-?\d+)|(-?\d+)\s*(?:°|deg)", re.IGNORECASE)
_HUMIDITY = re.compile(r"humidity:?\s*(\d+)|(\d+)%\s*humidity|RH:?\s*(\d+)", re.IGNORECASE)
_WIND_KMH = re.compile(r"(\d+)(?:-\d+)?\s*km/h", re.IGNORECASE)
_WIND_KNOTS = re.compile(r"(\d+)(?:-\d+)?\s*knots?", re.IGNORECASE)
_WIND_MS = re.compile(r"(\d+(?:\.\d+)?)(?:-\d+)?\s*m/s", re.IGNORECASE)
_WIND_DIRECTION = re.compile(
    r"\b(north-east|north-west|south-east|south-west|northeast|northwest|southeast|southwest"
    r"|north|south|east|west|ne|nw|se|sw|n|s|e|w)\s*(?:winds?|erly)",
    re.IGNORECASE
)
_RAIN = re.compile(r"(?:rain|rainfall|precipitation):?\s*(\d+(?:\.\d+)?)\s*mm", re.IGNORECASE)
_DRY = re.compile(r"no\s+rain|\bdry\b|\bclear\b", re.IGNORECASE)
_ISO_DATE = re.compile(r"(\d{4})-(\d{2})-(\d{2})")
_TEXT_DATE = re.compile(r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\.?\s+(\d{1,2}),?\s+(\d{4})", re.IGNORECASE)

DIRECTION_DEGREES: Dict[str, int] = {
    "north": 0, "n": 0,
    "northeast": 45, "north-east": 45, "ne": 45,
    "east": 90, "e": 90,
    "southeast": 135, "south-east": 135, "se": 135,
    "south": 180, "s": 180,
    "southwest": 225, "south-west": 225, "sw": 225,
    "west": 270, "w": 270,
    "northwest": 315, "north-west": 315, "nw": 315,
}

MONTHS = {name: index for index, name in enumerate(
    ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"], start=1
)}


@dataclass
class ExtractedForecast:
    """Values extracted from one feed item."""
    forecast_text: str
    temp: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    humidity: Optional[float] = None
    wind_speed: Optional[float] = None
    wind_dir: Optional[float] = None
    rain: Optional[float] = None
    date: Optional[str] = None


def _first_group(match: Optional[re.Match]) -> Optional[str]:
    if not match:
        return None
    return next((group for group in match.groups() if group is not None), None)


def extract_temperature(text: str) -> Dict[str, float]:
    """Temperature range or single value, e.g. '15-20°C' or 'Temperature: 15'."""
    range_match = _TEMP_RANGE.search(text)
    if range_match:
        low, high = sorted((int(range_match.group(1)), int(range_match.group(2))))
        return {"min": low, "max": high, "avg": round((low + high) / 2)}

    single = _first_group(_TEMP_SINGLE.search(text))
    if single is not None:
        return {"avg": int(single)}
    return {}


def extract_humidity(text: str) -> Optional[float]:
    value = _first_group(_HUMIDITY.search(text))
    return float(value) if value is not None else None


def extract_wind_speed(text: str) -> Optional[float]:
    """Wind speed in m/s, converted from km/h or knots when needed."""
    match = _WIND_KMH.search(text)
    if match:
        return int(match.group(1)) * KMH_TO_MS

    match = _WIND_KNOTS.search(text)
    if match:
        return int(match.group(1)) * KNOTS_TO_MS

    match = _WIND_MS.search(text)
    if match:
        return float(match.group(1))
    return None


def extract_wind_direction(text: str) -> Optional[float]:
    """Compass direction in degrees, e.g. 'NW winds' -> 315."""
    match = _WIND_DIRECTION.search(text)
    if not match:
        return None
    degrees = DIRECTION_DEGREES.get(match.group(1).lower())
    return float(degrees) if degrees is not None else None


def extract_rainfall(text: str) -> Optional[float]:
    """Rainfall in mm; 'dry', 'clear' or 'no rain' mean zero."""
    match = _RAIN.search(text)
    if match:
        return float(match.group(1))
    if _DRY.search(text):
        return 0.0
    return None


def extract_date(title: str, description: str) -> Optional[str]:
    """Date mentioned in the item as YYYY-MM-DD, ISO or 'Feb 9, 2026' style."""
    text = f"{title} {description}"
    iso = _ISO_DATE.search(text)
    if iso:
        return iso.group(0)

    match = _TEXT_DATE.search(text)
    if match:
        month = MONTHS[match.group(1).lower()[:3]]
        return f"{match.group(3)}-{month:02d}-{int(match.group(2)):02d}"
    return None


def extract_forecast_data(item: FeedItem) -> ExtractedForecast:
    """Extract all structured values from one feed item."""
    text = f"{item.title} {item.description}"
    temperature = extract_temperature(text)
    return ExtractedForecast(
        forecast_text=item.description,
        temp=temperature.get("avg"),
        temp_min=temperature.get("min"),
        temp_max=temperature.get("max"),
        humidity=extract_humidity(text),
        wind_speed=extract_wind_speed(text),
        wind_dir=extract_wind_direction(text),
        rain=extract_rainfall(text),
        date=extract_date(item.title, item.description),
    )


def _pub_date(item: FeedItem) -> Optional[str]:
    """Publication date of an item as YYYY-MM-DD."""
    if not item.pub_date:
        return None
    try:
        return parsedate_to_datetime(item.pub_date).date().isoformat()
    except (TypeError, ValueError):
        pass
    try:
        return datetime.fromisoformat(item.pub_date).date().isoformat()
    except ValueError:
        logger.debug(f"Unparseable feed pubDate: {item.pub_date}")
        return None


def to_hourly(items: Sequence[FeedItem], date_range: DateRange) -> List[HourlyForecastPoint]:
    """Spread the first feed item over every hour of the window.

    Feeds are daily prose, so all hours share the same values.
    """
    if not items:
        return []

    extracted = extract_forecast_data(items[0])
    points = []
    current = datetime.combine(date_range.start, time.min)
    end = datetime.combine(date_range.end, time(23))

    while current <= end:
        points.append(HourlyForecastPoint(
            time=current.strftime("%Y-%m-%d %H:00"),
            temp=format_value(extracted.temp, "temp"),
            humidity=format_value(extracted.humidity, "humidity"),
            wind_speed=format_value(extracted.wind_speed, "wind_speed"),
            wind_dir=format_value(extracted.wind_dir, "wind_dir"),
            rain=format_value(extracted.rain, "rain"),
        ))
        current += timedelta(hours=1)

    return points


def to_daily(items: Sequence[FeedItem]) -> List[DailyForecastPoint]:
    """One daily point per dated feed item, sorted by date.

    Items without a recognizable date are skipped; the first item wins for
    a date that appears twice.
    """
    by_date: Dict[str, DailyForecastPoint] = {}

    for item in items:
        extracted = extract_forecast_data(item)
        day = extracted.date or _pub_date(item)
        if day is None or day in by_date:
            continue

        by_date[day] = DailyForecastPoint(
            date=day,
            temp_min=format_value(extracted.temp_min if extracted.temp_min is not None else extracted.temp, "temp"),
            temp_max=format_value(extracted.temp_max if extracted.temp_max is not None else extracted.temp, "temp"),
            temp_current=format_value(extracted.temp, "temp"),
            humidity=format_value(extracted.humidity, "humidity"),
            wind_speed=format_value(extracted.wind_speed, "wind_speed"),
            rain=format_value(extracted.rain, "rain"),
        )

    return [by_date[day] for day in sorted(by_date)]


def forecast_from_feed(
    items: Sequence[FeedItem],
    period: Period,
    date_range: DateRange
) -> Union[List[HourlyForecastPoint], List[DailyForecastPoint]]:
    """Convert feed items to hourly or daily points for a period."""
    if period.is_hourly:
        return to_hourly(items, date_range)
    return to_daily(items)
