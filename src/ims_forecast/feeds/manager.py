"""Feed data lifecycle: freshness checks and periodic refresh."""

import asyncio
import json
import logging
from datetime import datetime
from typing import Optional

from ims_forecast.config import (
    FEED_REFRESH_INTERVAL_HOURS, FEED_RETENTION_DAYS, FEED_STALE_HOURS, FEED_URGENT_HOURS
)
from ims_forecast.feeds.downloader import METADATA_FILENAME, FeedDownloader
from ims_forecast.feeds.models import DataStatus, DownloadMetadata

logger = logging.getLogger(__name__)


class FeedManager:
    """Keeps the downloaded feeds fresh.

    IMS updates its forecasts twice daily, so data older than the stale
    threshold is refreshed on the next check.
    """

    def __init__(
        self,
        downloader: FeedDownloader,
        stale_hours: float = FEED_STALE_HOURS,
        urgent_hours: float = FEED_URGENT_HOURS,
        retention_days: int = FEED_RETENTION_DAYS
    ):
        self.downloader = downloader
        self.stale_hours = stale_hours
        self.urgent_hours = urgent_hours
        self.retention_days = retention_days

    def get_data_status(self) -> DataStatus:
        """Freshness of the latest download, read from its metadata.json."""
        download_dir = self.downloader.get_most_recent_download_dir()
        if download_dir is None:
            return DataStatus(exists=False)

        metadata_path = download_dir / METADATA_FILENAME
        try:
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
            last_update = datetime.fromisoformat(metadata["timestamp"])
        except FileNotFoundError:
            logger.warning(f"No {METADATA_FILENAME} found in: {download_dir}")
            return DataStatus(exists=True, directory=str(download_dir))
        except (OSError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Invalid feed metadata in {download_dir}: {e}")
            return DataStatus(exists=True, directory=str(download_dir))

        age_hours = (self.downloader.clock() - last_update).total_seconds() / 3600
        is_stale = age_hours > self.stale_hours

        return DataStatus(
            exists=True,
            directory=str(download_dir),
            age_hours=age_hours,
            is_stale=is_stale,
            last_update=last_update,
            stale_since_hours=age_hours - self.stale_hours if is_stale else 0.0
        )

    async def _refresh(self) -> DownloadMetadata:
        metadata = await self.downloader.download_all_feeds()
        await asyncio.to_thread(self.downloader.clean_old_downloads, self.retention_days)
        return metadata

    async def ensure_fresh_data(self, force: bool = False) -> Optional[DownloadMetadata]:
        """Download feeds when missing, stale or forced.

        A failed refresh of stale data keeps the old data in use.

        Returns:
            Download metadata, or None when no download was needed or a
            stale refresh failed

        Raises:
            Exception: If there is no data at all, or a forced refresh fails
        """
        status = await asyncio.to_thread(self.get_data_status)

        if not status.exists:
            logger.info("No XML data found, downloading...")
            return await self._refresh()

        if force:
            logger.info("Forcing XML data refresh...")
            return await self._refresh()

        if status.is_stale:
            age = f"{status.age_hours:.1f}" if status.age_hours is not None else "unknown"
            logger.info(f"XML data is {age}h old (stale), refreshing...")
            try:
                return await self._refresh()
            except Exception as e:
                logger.error(f"Failed to refresh stale XML data, continuing with existing data: {e}")
                return None

        logger.info(f"XML data is fresh ({status.age_hours:.1f}h old)")
        return None

    def get_status_message(self) -> str:
        status = self.get_data_status()
        if not status.exists:
            return "No XML data available"
        if status.age_hours is None:
            return "XML data status unknown"
        if status.is_stale:
            return f"XML data is stale ({status.age_hours:.1f}h old)"
        return f"XML data is fresh ({status.age_hours:.1f}h old)"

    def needs_urgent_refresh(self) -> bool:
        """True when there is no data or it is older than the urgent threshold."""
        status = self.get_data_status()
        return not status.exists or (status.age_hours is not None and status.age_hours > self.urgent_hours)

    async def refresh_periodically(
        self,
        interval_hours: float = FEED_REFRESH_INTERVAL_HOURS,
        initial_refresh: bool = True
    ) -> None:
        """Refresh forever, every ``interval_hours``. Run as a background task."""
        if initial_refresh:
            try:
                await self.ensure_fresh_data()
            except Exception as e:
                logger.warning(f"Initial XML download failed, fallback data will be used: {e}")

        while True:
            await asyncio.sleep(interval_hours * 3600)
            logger.info("Scheduled XML refresh starting...")
            try:
                await self.ensure_fresh_data(force=True)
                logger.info("Scheduled XML refresh complete")
            except Exception as e:
                logger.error(f"Scheduled XML refresh failed, will retry at next interval: {e}")
