"""Data models for IMS RSS/XML forecast feeds."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ims_forecast.weather.models import CamelModel


class FeedDefinition(CamelModel):
    """A downloadable feed."""
    id: str
    name: str
    url: str
    filename: str


class FeedItem(CamelModel):
    """One RSS item of a forecast feed."""
    title: str = ""
    description: str = ""
    pub_date: str = ""
    link: Optional[str] = None


class FeedAlert(FeedItem):
    """A warning feed item."""
    severity: Optional[str] = None
    regions: List[str] = Field(default_factory=list)


class FeedForecast(CamelModel):
    """Items of one forecast feed as served to clients."""
    feed: str = Field(..., description="Feed id, e.g. city_haifa or sea_eilat")
    name: str
    items: List[FeedItem] = Field(default_factory=list)


class DownloadResult(CamelModel):
    """Outcome of downloading one feed."""
    feed: FeedDefinition
    success: bool
    error: Optional[str] = None
    filepath: Optional[str] = None
    size: Optional[int] = None


class DownloadMetadata(CamelModel):
    """Summary written to metadata.json next to the downloaded feeds."""
    timestamp: datetime
    directory: str
    total: int
    successful: int
    failed: int
    results: List[DownloadResult] = Field(default_factory=list)


class DataStatus(CamelModel):
    """Freshness of the downloaded feed data."""
    exists: bool
    directory: Optional[str] = None
    age_hours: Optional[float] = None
    is_stale: bool = True
    last_update: Optional[datetime] = None
    stale_since_hours: Optional[float] = Field(None, description="Null when the age is unknown")
