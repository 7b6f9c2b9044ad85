"""Read access to the most recent feed download."""

import asyncio
import logging
from pathlib import Path
from typing import List

from ims_forecast.exceptions import FeedUnavailableError
from ims_forecast.feeds.catalog import ALERT_FILENAMES, COUNTRY_FILENAME, UVI_FILENAME, city_filename, sea_filename
from ims_forecast.feeds.downloader import FeedDownloader
from ims_forecast.feeds.models import FeedAlert, FeedItem
from ims_forecast.feeds.parser import parse_alert_feed, parse_forecast_feed

logger = logging.getLogger(__name__)


class FeedStore:
    """Parsed forecast feeds from the latest download directory."""

    def __init__(self, downloader: FeedDownloader):
        self.downloader = downloader

    async def _latest_dir(self) -> Path:
        download_dir = await asyncio.to_thread(self.downloader.get_most_recent_download_dir)
        if download_dir is None:
            raise FeedUnavailableError("No XML data available")
        return download_dir

    async def _read(self, filename: str) -> str:
        filepath = (await self._latest_dir()) / filename
        try:
            return await asyncio.to_thread(filepath.read_text, encoding="utf-8")
        except FileNotFoundError:
            raise FeedUnavailableError(f"Feed file not found: {filename}")

    async def _parse(self, filename: str) -> List[FeedItem]:
        return parse_forecast_feed(await self._read(filename))

    async def get_region_forecast(self, region_id: str) -> List[FeedItem]:
        """Forecast items for a region; empty when no feed has been downloaded.

        Raises:
            ValueError: If the downloaded feed is malformed
        """
        try:
            return await self._parse(city_filename(region_id))
        except FeedUnavailableError as e:
            logger.info(f"No feed for region {region_id}: {e}")
            return []

    async def get_city_forecast(self, region_id: str) -> List[FeedItem]:
        return await self._parse(city_filename(region_id))

    async def get_country_forecast(self) -> List[FeedItem]:
        return await self._parse(COUNTRY_FILENAME)

    async def get_sea_forecast(self, location: str) -> List[FeedItem]:
        return await self._parse(sea_filename(location))

    async def get_uvi_forecast(self) -> List[FeedItem]:
        return await self._parse(UVI_FILENAME)

    async def get_all_alerts(self) -> List[FeedAlert]:
        """Alerts from every warning feed that currently has content."""
        download_dir = await self._latest_dir()
        alerts: List[FeedAlert] = []

        for filename in ALERT_FILENAMES:
            filepath = download_dir / filename
            try:
                content = await asyncio.to_thread(filepath.read_text, encoding="utf-8")
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning(f"Failed to read {filename}: {e}")
                continue

            try:
                feed_alerts = parse_alert_feed(content)
            except ValueError as e:
                logger.warning(f"Failed to parse {filename}: {e}")
                continue

            # Empty warning feeds carry a single blank item
            if feed_alerts and feed_alerts[0].description.strip():
                alerts.extend(feed_alerts)

        return alerts
