import random
from datetime import timedelta
from typing import Tuple

import httpx
import pytest
from fastapi.testclient import TestClient
from fastapi_cache import FastAPICache
from fastapi_cache.backends.inmemory import InMemoryBackend

from helpers import TODAY, daily_observations
from ims_forecast.exceptions import GeocodingError
from ims_forecast.feeds.catalog import city_filename
from ims_forecast.feeds.downloader import FeedDownloader
from ims_forecast.feeds.manager import FeedManager
from ims_forecast.feeds.store import FeedStore
from ims_forecast.main import create_app
from ims_forecast.services import Services
from ims_forecast.weather.resolver import ForecastResolver
from ims_forecast.weather.synthetic import SyntheticForecastGenerator

CITY_RSS = """<rss><channel>
  <item>
    <title>Haifa 2024-06-10</title>
    <description>Sunny. 24-30°C. Humidity: 55%. SW winds 18 km/h.</description>
    <pubDate>Mon, 10 Jun 2024 06:00:00 +0300</pubDate>
  </item>
</channel></rss>"""


class StubGeocoding:
    def forward_geocode(self, city: str) -> Tuple[float, float]:
        if city.lower() == "haifa":
            return 32.794, 34.9896
        raise GeocodingError(f"City '{city}' not found")


@pytest.fixture
def feed_downloader(tmp_path) -> FeedDownloader:
    return FeedDownloader(data_dir=str(tmp_path / "data"), feeds=[], delay_seconds=0)


@pytest.fixture
def services(station_service, feed_downloader) -> Services:
    feed_store = FeedStore(feed_downloader)
    return Services(
        cache=station_service.cache,
        stations=station_service,
        resolver=ForecastResolver(station_service, feed_store, SyntheticForecastGenerator(rng=random.Random(1))),
        feed_store=feed_store,
        feed_manager=FeedManager(feed_downloader),
        geocoding=StubGeocoding(),
    )


@pytest.fixture
def client(services) -> TestClient:
    FastAPICache.init(InMemoryBackend(), prefix="test")
    app = create_app()
    app.state.services = services
    # Lifespan is not entered, so no Redis connection or refresh task is started
    return TestClient(app)


def _write_city_feed(downloader: FeedDownloader, region_id: str) -> None:
    target = downloader.create_timestamped_directory()
    (target / city_filename(region_id)).write_text(CITY_RSS, encoding="utf-8")


def test_root_serves_frontend(client):
    response = client.get("/")

    assert response.status_code == 200
    assert "IMS Forecast" in response.text


def test_api_info(client):
    assert client.get("/api").json()["stations"] == "/api/stations"


def test_health(client):
    payload = client.get("/api/health").json()

    assert payload["status"] == "healthy"
    assert payload["feedData"] == "No XML data available"


def test_stations(client):
    response = client.get("/api/stations")

    assert response.status_code == 200
    stations = response.json()
    assert [station["stationId"] for station in stations] == [178, 42, 7]
    assert stations[0]["location"] == {"latitude": 32.058, "longitude": 34.7588}


def test_stations_unavailable(client, station_client):
    station_client.get_stations.side_effect = httpx.ConnectError("down")

    response = client.get("/api/stations")

    assert response.status_code == 503
    assert response.json()["detail"] == "Weather service temporarily unavailable"


def test_nearest_station_by_coordinates(client):
    response = client.get("/api/nearest-station", params={"lat": 32.06, "lon": 34.76})

    assert response.status_code == 200
    assert response.json()["station"]["stationId"] == 178


def test_nearest_station_by_city(client):
    response = client.get("/api/nearest-station", params={"city": "Haifa"})

    assert response.status_code == 200
    assert response.json()["station"]["stationId"] == 42
    assert response.json()["distanceKm"] < 5


@pytest.mark.parametrize("params", [
    {},
    {"lat": 32.0},
    {"lat": 32.0, "lon": 34.8, "city": "Haifa"},
    {"city": "Atlantis"},
])
def test_nearest_station_bad_requests(client, params):
    assert client.get("/api/nearest-station", params=params).status_code == 400


def test_forecast_feed_source(client, feed_downloader):
    _write_city_feed(feed_downloader, "haifa")

    response = client.get("/api/forecast", params={"stationId": 42, "period": "medium"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "feed"
    assert payload["region"]["id"] == "haifa"
    assert payload["forecast"] == [{
        "date": "2024-06-10",
        "tempMin": "24.0",
        "tempMax": "30.0",
        "tempCurrent": "27.0",
        "humidity": "55",
        "windSpeed": "5.0",
        "rain": None,
    }]


def test_forecast_synthetic_source(client):
    response = client.get("/api/forecast", params={"stationId": 178, "period": "long"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["source"] == "synthetic"
    assert len(payload["forecast"]) == 30
    assert set(payload["dateRange"]) == {"from", "to"}
    assert payload["fallbackReasons"]


def test_forecast_defaults_to_short(client):
    payload = client.get("/api/forecast", params={"stationId": 178}).json()

    assert payload["period"] == "short"
    assert len(payload["forecast"]) == 48
    assert "time" in payload["forecast"][0]


def test_forecast_unknown_station(client):
    assert client.get("/api/forecast", params={"stationId": 999}).status_code == 404


@pytest.mark.parametrize("params", [
    {"period": "short"},
    {"stationId": 0},
    {"stationId": 178, "period": "weekly"},
])
def test_forecast_invalid_params(client, params):
    assert client.get("/api/forecast", params=params).status_code == 422


@pytest.mark.parametrize("error", [httpx.ConnectError("down"), ValueError("Invalid response format")])
def test_forecast_without_station_metadata(client, station_client, error):
    station_client.get_stations.side_effect = error

    response = client.get("/api/forecast", params={"stationId": 178})

    assert response.status_code == 503
    assert response.json()["detail"] == "Weather service temporarily unavailable"


def test_station_data_is_cached(client, station_client):
    station_client.get_station_data_multi_channel.return_value = daily_observations(
        178, [TODAY - timedelta(days=1)]
    )

    first = client.get("/api/station-data", params={"stationId": 178, "period": "short"})
    second = client.get("/api/station-data", params={"stationId": 178, "period": "short"})

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert [channel["channelId"] for channel in first.json()["channels"]] == [7, 8]
    assert station_client.get_station_data_multi_channel.await_count == 1


def test_station_detail_bypasses_cache(client, station_client):
    station_client.get_station_data_multi_channel.return_value = daily_observations(178, [TODAY])

    client.get("/api/station-detail", params={"stationId": 178})
    client.get("/api/station-detail", params={"stationId": 178})

    assert station_client.get_station_data_multi_channel.await_count == 2


def test_station_data_upstream_failure(client):
    # The default stub returns no channels at all
    response = client.get("/api/station-data", params={"stationId": 178})

    assert response.status_code == 502


def test_station_data_unknown_station(client, station_client):
    assert client.get("/api/station-data", params={"stationId": 999}).status_code == 404
    station_client.get_station_data_multi_channel.assert_not_awaited()


def test_cache_stats_and_clear(client):
    client.get("/api/stations")

    stats = client.get("/api/cache/stats").json()
    assert stats["memory"]["entries"] == 1

    response = client.post("/api/cache/clear")
    assert response.json()["success"] is True
    assert client.get("/api/cache/stats").json()["memory"]["entries"] == 0


def test_cities(client):
    cities = client.get("/api/cities").json()

    assert len(cities) == 15
    assert cities[1]["id"] == "telaviv"
    assert cities[1]["nameHebrew"]


def test_city_forecast(client, feed_downloader):
    _write_city_feed(feed_downloader, "haifa")

    response = client.get("/api/city-forecast", params={"city": "haifa"})

    assert response.status_code == 200
    payload = response.json()
    assert payload["feed"] == "city_haifa"
    assert payload["items"][0]["pubDate"] == "Mon, 10 Jun 2024 06:00:00 +0300"


def test_city_forecast_errors(client):
    assert client.get("/api/city-forecast", params={"city": "gotham"}).status_code == 400
    assert client.get("/api/city-forecast", params={"city": "eilat"}).status_code == 503


def test_sea_forecast_unknown_location(client):
    assert client.get("/api/sea-forecast", params={"location": "tiberias"}).status_code == 400


def test_feed_endpoints_without_data(client):
    assert client.get("/api/country-forecast").status_code == 503
    assert client.get("/api/uvi-forecast").status_code == 503
    assert client.get("/api/alerts").status_code == 503


def test_admin_data_status(client, feed_downloader):
    assert client.get("/api/admin/data-status").json()["exists"] is False

    feed_downloader.create_timestamped_directory()
    payload = client.get("/api/admin/data-status").json()
    assert payload["exists"] is True
    assert payload["ageHours"] is None


def test_admin_refresh_feeds(client, feed_downloader):
    response = client.post("/api/admin/refresh-feeds")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 0
    assert feed_downloader.get_most_recent_download_dir() is not None
