"""Downloads IMS RSS/XML feeds into timestamped directories."""

import asyncio
import logging
import re
import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import httpx

from ims_forecast.config import (
    FEED_DATA_DIR, FEED_DOWNLOAD_DELAY_SECONDS, REQUEST_TIMEOUT_SECONDS, USER_AGENT
)
from ims_forecast.feeds.catalog import FEEDS
from ims_forecast.feeds.models import DownloadMetadata, DownloadResult, FeedDefinition

logger = logging.getLogger(__name__)

METADATA_FILENAME = "metadata.json"
_DATE_DIR = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_DIR = re.compile(r"^\d{2}-\d{2}-\d{2}$")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedDownloader:
    """Downloads every feed of the catalog into ``<data>/<date>/<time>/``."""

    def __init__(
        self,
        data_dir: str = FEED_DATA_DIR,
        feeds: Sequence[FeedDefinition] = FEEDS,
        delay_seconds: float = FEED_DOWNLOAD_DELAY_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], datetime] = _utc_now
    ):
        """Initialize the downloader.

        Args:
            data_dir: Root directory for downloads
            feeds: Feeds to download
            delay_seconds: Pause between consecutive downloads
            transport: Optional httpx transport (used by tests)
            clock: Returns the current UTC time
        """
        self.data_dir = Path(data_dir)
        self.feeds = list(feeds)
        self.delay_seconds = delay_seconds
        self.clock = clock
        self.client = httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT},
            timeout=REQUEST_TIMEOUT_SECONDS,
            follow_redirects=True,
            transport=transport
        )

    def create_timestamped_directory(self) -> Path:
        """Create and return ``<data>/<YYYY-MM-DD>/<HH-MM-SS>``."""
        now = self.clock()
        target = self.data_dir / now.strftime("%Y-%m-%d") / now.strftime("%H-%M-%S")
        target.mkdir(parents=True, exist_ok=True)
        return target

    async def download_feed(self, feed: FeedDefinition, target_dir: Path) -> DownloadResult:
        """Download one feed; failures are reported in the result."""
        try:
            logger.info(f"Downloading: {feed.name} from {feed.url}")
            response = await self.client.get(feed.url)

            if response.is_error:
                return DownloadResult(
                    feed=feed,
                    success=False,
                    error=f"HTTP {response.status_code}: {response.reason_phrase}"
                )

            filepath = target_dir / feed.filename
            await asyncio.to_thread(filepath.write_text, response.text, encoding="utf-8")
            size = filepath.stat().st_size
            logger.info(f"Downloaded: {feed.name} ({size} bytes)")

            return DownloadResult(feed=feed, success=True, filepath=str(filepath), size=size)

        except (httpx.HTTPError, OSError) as e:
            logger.warning(f"Failed to download {feed.name}: {e}")
            return DownloadResult(feed=feed, success=False, error=str(e))

    async def download_all_feeds(self) -> DownloadMetadata:
        """Download all feeds sequentially and write metadata.json."""
        target_dir = await asyncio.to_thread(self.create_timestamped_directory)
        logger.info(f"Downloading {len(self.feeds)} feeds to: {target_dir}")

        results: List[DownloadResult] = []
        for index, feed in enumerate(self.feeds):
            if index and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)
            results.append(await self.download_feed(feed, target_dir))

        successful = sum(1 for result in results if result.success)
        metadata = DownloadMetadata(
            timestamp=self.clock(),
            directory=str(target_dir),
            total=len(results),
            successful=successful,
            failed=len(results) - successful,
            results=results
        )

        await asyncio.to_thread(
            (target_dir / METADATA_FILENAME).write_text,
            metadata.model_dump_json(by_alias=True, indent=2),
            encoding="utf-8"
        )
        logger.info(
            f"Download complete: total={metadata.total} successful={metadata.successful} "
            f"failed={metadata.failed} directory={target_dir}"
        )
        return metadata

    def get_most_recent_download_dir(self) -> Optional[Path]:
        """Latest ``<date>/<time>`` download directory, or None."""
        if not self.data_dir.exists():
            return None

        date_dirs = sorted(
            (path for path in self.data_dir.iterdir() if path.is_dir() and _DATE_DIR.match(path.name)),
            reverse=True
        )
        if not date_dirs:
            return None

        time_dirs = sorted(
            (path for path in date_dirs[0].iterdir() if path.is_dir() and _TIME_DIR.match(path.name)),
            reverse=True
        )
        return time_dirs[0] if time_dirs else None

    def clean_old_downloads(self, days_to_keep: int) -> List[Path]:
        """Remove date directories older than ``days_to_keep`` days.

        Returns:
            The removed directories
        """
        if not self.data_dir.exists():
            return []

        cutoff = (self.clock() - timedelta(days=days_to_keep)).strftime("%Y-%m-%d")
        removed = []
        for path in self.data_dir.iterdir():
            if path.is_dir() and _DATE_DIR.match(path.name) and path.name < cutoff:
                logger.info(f"Removing old feed data: {path}")
                shutil.rmtree(path, ignore_errors=True)
                removed.append(path)
        return removed

    async def aclose(self):
        """Close the async HTTP client."""
        await self.client.aclose()
