"""Catalog of the IMS RSS/XML feeds."""

from typing import Dict, List

from ims_forecast.config import FEED_BASE_URL
from ims_forecast.feeds.models import FeedDefinition

# Region id -> IMS locality number
LOCALITY_IDS: Dict[str, int] = {
    "jerusalem": 31,
    "telaviv": 1,
    "haifa": 6,
    "beersheva": 8,
    "eilat": 75,
    "tiberias": 3,
    "nazareth": 40,
    "afula": 77,
    "beitdagan": 76,
    "zefat": 78,
    "lod": 80,
    "dimona": 33,
    "yotvata": 50,
    "deadsea": 79,
    "mitzperamon": 2,
}

LOCALITY_NAMES: Dict[str, str] = {
    "jerusalem": "Jerusalem",
    "telaviv": "Tel Aviv",
    "haifa": "Haifa",
    "beersheva": "Beer Sheva",
    "eilat": "Eilat",
    "tiberias": "Tiberias",
    "nazareth": "Nazareth",
    "afula": "Afula",
    "beitdagan": "Beit Dagan",
    "zefat": "Zefat",
    "lod": "Lod",
    "dimona": "Dimona",
    "yotvata": "Yotvata",
    "deadsea": "Dead Sea",
    "mitzperamon": "Mitzpe Ramon",
}

# Sea location -> IMS sea forecast number
SEA_IDS: Dict[str, int] = {
    "haifa": 212,
    "ashdod": 213,
    "ashkelon": 211,
    "eilat": 214,
}

# (area, kind) pairs of the regional warning feeds
REGIONAL_ALERTS = [
    (area, kind)
    for area in ("north", "center", "south")
    for kind in ("flood", "storm", "fire")
]


def city_filename(region_id: str) -> str:
    return f"forecast_city_{region_id}.xml"


def sea_filename(location: str) -> str:
    return f"forecast_sea_{location}.xml"


COUNTRY_FILENAME = "forecast_country.xml"
UVI_FILENAME = "forecast_uvi.xml"


def build_feeds(base_url: str = FEED_BASE_URL) -> List[FeedDefinition]:
    """Build the full list of feed definitions under ``base_url``."""
    feeds = [FeedDefinition(
        id="country",
        name="Country Forecast",
        url=f"{base_url}/Forecast_eng.xml",
        filename=COUNTRY_FILENAME,
    )]

    for region_id, locality in LOCALITY_IDS.items():
        feeds.append(FeedDefinition(
            id=f"city_{region_id}",
            name=f"{LOCALITY_NAMES[region_id]} Forecast",
            url=f"{base_url}/locality/Forecast_locality_{locality}_eng.xml",
            filename=city_filename(region_id),
        ))

    for location, sea_id in SEA_IDS.items():
        feeds.append(FeedDefinition(
            id=f"sea_{location}",
            name=f"{location.title()} Sea Forecast",
            url=f"{base_url}/sea/Forecast_sea_{sea_id}_eng.xml",
            filename=sea_filename(location),
        ))

    feeds.append(FeedDefinition(
        id="uvi",
        name="UVI Forecast",
        url=f"{base_url}/IMSUVI_eng.xml",
        filename=UVI_FILENAME,
    ))

    feeds.extend([
        FeedDefinition(
            id="alert_country_all",
            name="All Country Warnings",
            url=f"{base_url}/warnings/WarningsENG.xml",
            filename="alerts_country_all.xml",
        ),
        FeedDefinition(
            id="alert_country_visibility",
            name="Visibility Warnings",
            url=f"{base_url}/warnings/VisibilityWarningsENG.xml",
            filename="alerts_country_visibility.xml",
        ),
        FeedDefinition(
            id="alert_country_sea",
            name="Marine Warnings",
            url=f"{base_url}/warnings/SeaWarningsENG.xml",
            filename="alerts_country_sea.xml",
        ),
    ])

    for area, kind in REGIONAL_ALERTS:
        feeds.append(FeedDefinition(
            id=f"alert_{area}_{kind}",
            name=f"{area.title()} {kind.title()} Warnings",
            url=f"{base_url}/warnings/{kind.title()}Warnings{area.title()}ENG.xml",
            filename=f"alerts_{area}_{kind}.xml",
        ))

    return feeds


FEEDS: List[FeedDefinition] = build_feeds()

ALERT_FILENAMES: List[str] = [feed.filename for feed in FEEDS if feed.id.startswith("alert_")]
