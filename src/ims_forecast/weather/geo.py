"""Great-circle distance and nearest-neighbour helpers."""

from typing import Iterable, Optional, Sequence, Tuple

from geopy.distance import great_circle

from ims_forecast.weather.models import Region, RegionMatch, Station


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    if (lat1, lon1) == (lat2, lon2):
        return 0.0
    return great_circle((lat1, lon1), (lat2, lon2)).km


def find_nearest_region(lat: float, lon: float, regions: Sequence[Region]) -> RegionMatch:
    """Find the region closest to a coordinate.

    Ties keep the first region in ``regions`` order. That order is the only
    tie-breaker, so reordering the reference list can change the result for
    equidistant regions.

    Raises:
        ValueError: If ``regions`` is empty
    """
    nearest: Optional[Region] = None
    min_distance = float("inf")

    for region in regions:
        distance = distance_km(lat, lon, region.location.latitude, region.location.longitude)
        if distance < min_distance:
            min_distance = distance
            nearest = region

    if nearest is None:
        raise ValueError("No regions to search")

    return RegionMatch(**nearest.model_dump(), distance_km=min_distance)


def find_nearest_station(lat: float, lon: float, stations: Iterable[Station]) -> Optional[Tuple[Station, float]]:
    """Find the station closest to a coordinate, skipping stations without a location."""
    nearest: Optional[Station] = None
    min_distance = float("inf")

    for station in stations:
        if station.location is None:
            continue
        distance = distance_km(lat, lon, station.location.latitude, station.location.longitude)
        if distance < min_distance:
            min_distance = distance
            nearest = station

    if nearest is None:
        return None
    return nearest, min_distance
