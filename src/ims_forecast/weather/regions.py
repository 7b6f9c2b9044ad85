"""The 15 IMS localities that publish RSS forecasts.

Coordinates are approximate city centres. Region ids match the feed
filenames (``forecast_city_<id>.xml``).
"""

from typing import Dict, List, Optional

from ims_forecast.weather.models import Coordinate, Region


def _region(region_id: str, name: str, name_hebrew: str, lat: float, lon: float) -> Region:
    return Region(
        id=region_id,
        name=name,
        name_hebrew=name_hebrew,
        location=Coordinate(latitude=lat, longitude=lon),
    )


REGIONS: List[Region] = [
    _region("jerusalem", "Jerusalem", "ירושלים", 31.7683, 35.2137),
    _region("telaviv", "Tel Aviv", "תל אביב", 32.0853, 34.7818),
    _region("haifa", "Haifa", "חיפה", 32.7940, 34.9896),
    _region("beersheva", "Beer Sheva", "באר שבע", 31.2518, 34.7913),
    _region("eilat", "Eilat", "אילת", 29.5581, 34.9482),
    _region("tiberias", "Tiberias", "טבריה", 32.7940, 35.5308),
    _region("nazareth", "Nazareth", "נצרת", 32.7046, 35.2978),
    _region("afula", "Afula", "עפולה", 32.6074, 35.2897),
    _region("beitdagan", "Beit Dagan", "בית דגן", 32.0025, 34.8213),
    _region("zefat", "Zefat", "צפת", 32.9658, 35.4983),
    _region("lod", "Lod", "לוד", 31.9510, 34.8880),
    _region("dimona", "Dimona", "דימונה", 31.0686, 35.0333),
    _region("yotvata", "Yotvata", "יטבתה", 29.9000, 35.0667),
    _region("deadsea", "Dead Sea", "ים המלח", 31.3547, 35.4736),
    _region("mitzperamon", "Mitzpe Ramon", "מצפה רמון", 30.6095, 34.8016),
]

_REGIONS_BY_ID: Dict[str, Region] = {region.id: region for region in REGIONS}


def get_region(region_id: str) -> Optional[Region]:
    return _REGIONS_BY_ID.get(region_id)
