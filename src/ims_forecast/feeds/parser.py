"""RSS parsing for IMS forecast and warning feeds."""

import re
import xml.etree.ElementTree as ET
from typing import List, Optional

from ims_forecast.feeds.models import FeedAlert, FeedItem

_SEVERITY_PATTERN = re.compile(r"severity:\s*(high|medium|low)", re.IGNORECASE)
_REGIONS_PATTERN = re.compile(r"regions?:\s*([^.]+)", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


def _text(element: ET.Element, tag: str) -> Optional[str]:
    child = element.find(tag)
    if child is None or child.text is None:
        return None
    return _WHITESPACE.sub(" ", child.text).strip()


def parse_forecast_feed(xml_string: str) -> List[FeedItem]:
    """Parse an RSS document into feed items.

    Raises:
        ValueError: If the document is not valid XML or not RSS
    """
    try:
        root = ET.fromstring(xml_string)
    except ET.ParseError as e:
        raise ValueError(f"XML parsing error: {e}")

    channel = root.find("channel") if root.tag == "rss" else None
    if channel is None:
        raise ValueError("Invalid RSS structure")

    return [
        FeedItem(
            title=_text(item, "title") or "",
            description=_text(item, "description") or "",
            pub_date=_text(item, "pubDate") or "",
            link=_text(item, "link"),
        )
        for item in channel.findall("item")
    ]


def extract_severity(description: str) -> Optional[str]:
    match = _SEVERITY_PATTERN.search(description)
    return match.group(1).lower() if match else None


def extract_regions(description: str) -> List[str]:
    match = _REGIONS_PATTERN.search(description)
    if not match:
        return []
    return [region.strip() for region in match.group(1).split(",") if region.strip()]


def parse_alert_feed(xml_string: str) -> List[FeedAlert]:
    """Parse a warning feed, extracting severity and affected regions."""
    return [
        FeedAlert(
            **item.model_dump(),
            severity=extract_severity(item.description),
            regions=extract_regions(item.description),
        )
        for item in parse_forecast_feed(xml_string)
    ]
