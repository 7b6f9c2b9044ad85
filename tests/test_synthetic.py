import random
from datetime import date

import pytest

from ims_forecast.weather.models import DailyForecastPoint, HourlyForecastPoint, Period
from ims_forecast.weather.synthetic import SyntheticForecastGenerator

START = date(2024, 6, 1)


def test_hourly_covers_every_hour_of_window():
    points = SyntheticForecastGenerator(seed=1).generate(Period.SHORT, START, date(2024, 6, 2), 20.0)

    assert len(points) == 48
    assert all(isinstance(point, HourlyForecastPoint) for point in points)
    assert points[0].time == "2024-06-01 00:00"
    assert points[-1].time == "2024-06-02 23:00"


@pytest.mark.parametrize("period,end,expected", [
    (Period.MEDIUM, date(2024, 6, 7), 7),
    (Period.LONG, date(2024, 6, 30), 30),
])
def test_daily_covers_every_day_of_window(period, end, expected):
    points = SyntheticForecastGenerator(seed=1).generate(period, START, end, 20.0)

    assert len(points) == expected
    assert all(isinstance(point, DailyForecastPoint) for point in points)
    assert points[0].date == "2024-06-01"
    assert points[-1].date == end.isoformat()


def test_same_seed_gives_same_series():
    first = SyntheticForecastGenerator(seed=42).generate(Period.MEDIUM, START, date(2024, 6, 7), 20.0)
    second = SyntheticForecastGenerator(rng=random.Random(42)).generate(Period.MEDIUM, START, date(2024, 6, 7), 20.0)

    assert first == second


def test_daily_max_above_min_and_current_between():
    points = SyntheticForecastGenerator(seed=7).generate_daily(START, date(2024, 6, 30), 20.0)

    for point in points:
        assert float(point.temp_max) > float(point.temp_min)
        assert float(point.temp_min) < float(point.temp_current) < float(point.temp_max)


def test_hourly_afternoon_warmer_than_early_morning():
    points = SyntheticForecastGenerator(seed=3).generate_hourly(START, START, 20.0)

    # Amplitude 4 with jitter 1 keeps 15:00 above 03:00
    assert float(points[15].temp) > float(points[3].temp)


def test_values_use_aggregation_precision():
    point = SyntheticForecastGenerator(seed=5).generate_hourly(START, START, 20.0)[0]

    assert len(point.temp.split(".")[1]) == 1
    assert "." not in point.humidity
    assert "." not in point.wind_dir
    assert 3.0 <= float(point.wind_speed) <= 7.0


def test_empty_window():
    assert SyntheticForecastGenerator(seed=1).generate_daily(START, date(2024, 5, 31), 20.0) == []
