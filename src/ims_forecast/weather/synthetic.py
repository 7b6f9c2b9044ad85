"""Synthetic forecast generator.

Used only when neither the feed nor station observations cover the
requested window. Output has the same shape and precision as aggregated
data; callers tell them apart by the ``source`` tag only.
"""

import math
import random
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Union

from ims_forecast.weather.aggregation import format_value
from ims_forecast.weather.models import DailyForecastPoint, HourlyForecastPoint, Period

DIURNAL_AMPLITUDE = 4.0     # degrees C around the base temperature
DIURNAL_PEAK_HOUR = 15      # mid-afternoon maximum
MULTI_DAY_AMPLITUDE = 3.0
MULTI_DAY_STEP = 0.5        # radians per day
TEMP_JITTER = 1.0
HOURLY_RAIN_PROBABILITY = 0.1
DAILY_RAIN_PROBABILITY = 0.2


class SyntheticForecastGenerator:
    """Produces plausible forecast values from a diurnal/multi-day model."""

    def __init__(self, rng: Optional[random.Random] = None, seed: Optional[int] = None):
        """Initialize the generator.

        Args:
            rng: Random source; a new one seeded with ``seed`` when None
            seed: Seed for the default random source
        """
        self.rng = rng or random.Random(seed)

    def _jitter(self, amplitude: float) -> float:
        return self.rng.uniform(-amplitude, amplitude)

    def generate(
        self,
        period: Period,
        from_date: date,
        to_date: date,
        base_temperature: float
    ) -> Union[List[HourlyForecastPoint], List[DailyForecastPoint]]:
        """Generate a full-coverage series for the window.

        Hourly for short periods, daily otherwise.
        """
        if period.is_hourly:
            return self.generate_hourly(from_date, to_date, base_temperature)
        return self.generate_daily(from_date, to_date, base_temperature)

    def generate_hourly(self, from_date: date, to_date: date, base_temperature: float) -> List[HourlyForecastPoint]:
        """One point per hour from ``from_date`` 00:00 to ``to_date`` 23:00."""
        points = []
        current = datetime.combine(from_date, time.min)
        end = datetime.combine(to_date, time(23))

        while current <= end:
            # sin peaks when hour - (peak - 6) == 6
            curve = math.sin((current.hour - (DIURNAL_PEAK_HOUR - 6)) * math.pi / 12) * DIURNAL_AMPLITUDE
            rain = self.rng.uniform(0, 2) if self.rng.random() < HOURLY_RAIN_PROBABILITY else None

            points.append(HourlyForecastPoint(
                time=current.strftime("%Y-%m-%d %H:00"),
                temp=format_value(base_temperature + curve + self._jitter(TEMP_JITTER), "temp"),
                humidity=format_value(70 - curve * 2 + self.rng.uniform(0, 10), "humidity"),
                wind_speed=format_value(self.rng.uniform(3, 7), "wind_speed"),
                wind_dir=format_value(self.rng.uniform(0, 360), "wind_dir"),
                rain=format_value(rain, "rain"),
            ))
            current += timedelta(hours=1)

        return points

    def generate_daily(self, from_date: date, to_date: date, base_temperature: float) -> List[DailyForecastPoint]:
        """One point per day from ``from_date`` to ``to_date`` inclusive."""
        points = []
        day_count = (to_date - from_date).days + 1

        for day_index in range(max(day_count, 0)):
            current = from_date + timedelta(days=day_index)
            drift = math.sin(day_index * MULTI_DAY_STEP) * MULTI_DAY_AMPLITUDE
            centre = base_temperature + drift + self._jitter(TEMP_JITTER)
            rain = self.rng.uniform(0, 5) if self.rng.random() < DAILY_RAIN_PROBABILITY else None

            points.append(DailyForecastPoint(
                date=current.isoformat(),
                temp_min=format_value(centre - 3, "temp"),
                temp_max=format_value(centre + 5, "temp"),
                temp_current=format_value(centre, "temp"),
                humidity=format_value(60 - drift * 2 + self.rng.uniform(0, 20), "humidity"),
                wind_speed=format_value(self.rng.uniform(2, 7), "wind_speed"),
                rain=format_value(rain, "rain"),
            ))

        return points
