import httpx
import pytest
import respx

from ims_forecast.cache.two_level import TwoLevelCache
from ims_forecast.exceptions import ServiceUnavailableError
from ims_forecast.weather.client import IMSStationClient
from ims_forecast.weather.service import StationService

BASE_URL = "https://ims.test/v1/envista"

STATIONS_PAYLOAD = [
    {
        "stationId": 178,
        "name": "TEL AVIV COAST",
        "shortName": "TLV",
        "stationsTag": "ignored",
        "location": {"latitude": 32.058, "longitude": 34.7588},
        "active": True,
        "regionId": 13,
        "monitors": [
            {"channelId": 7, "name": "TD", "units": "degC", "active": True},
            {"channelId": 8, "name": "RH", "units": "%", "active": True},
        ],
    },
    {"stationId": 2, "name": "NO LOCATION", "location": None, "active": False},
]


def _data_payload(station_id, values):
    return {
        "stationId": station_id,
        "data": [
            {"datetime": timestamp, "channels": [{"id": 7, "name": "TD", "value": value, "status": 1, "valid": valid}]}
            for timestamp, value, valid in values
        ],
    }


@pytest.mark.asyncio
async def test_get_stations_parses_camel_case_payload():
    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get("/stations").respond(200, json=STATIONS_PAYLOAD)

        async with IMSStationClient(base_url=BASE_URL, api_token="secret") as client:
            stations = await client.get_stations()

    assert route.called
    assert route.calls.last.request.headers["Authorization"] == "ApiToken secret"
    assert [station.station_id for station in stations] == [178, 2]
    assert stations[0].location.latitude == 32.058
    assert stations[0].monitors[1].units == "%"
    assert stations[1].location is None


@pytest.mark.asyncio
async def test_get_stations_http_error_propagates():
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/stations").respond(500, text="boom")

        async with IMSStationClient(base_url=BASE_URL, api_token="secret") as client:
            with pytest.raises(httpx.HTTPStatusError):
                await client.get_stations()


@pytest.mark.asyncio
async def test_get_stations_rejects_non_json():
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/stations").respond(200, text="<html>maintenance</html>")

        async with IMSStationClient(base_url=BASE_URL) as client:
            with pytest.raises(ValueError, match="Invalid response format"):
                await client.get_stations()


@pytest.mark.asyncio
@pytest.mark.parametrize("response", [
    httpx.Response(200, text="<html>maintenance</html>"),
    httpx.Response(200, content=b"{not json", headers={"content-type": "application/json"}),
])
async def test_station_service_maps_unreadable_station_list_to_unavailable(response):
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/stations").mock(return_value=response)

        service = StationService(IMSStationClient(base_url=BASE_URL), TwoLevelCache())
        with pytest.raises(ServiceUnavailableError, match="Weather service temporarily unavailable"):
            await service.get_stations()
        await service.aclose()


@pytest.mark.asyncio
async def test_get_station_data_sorts_and_skips_empty_values():
    payload = _data_payload(178, [
        ("2024-06-01T10:10:00+03:00", 21.0, True),
        ("2024-06-01T10:00:00+03:00", 20.0, True),
        ("2024-06-01T10:20:00+03:00", None, False),
        ("2024-06-01T10:30:00+03:00", 99.0, False),
    ])

    with respx.mock(base_url=BASE_URL) as mock:
        route = mock.get("/stations/178/data/7").respond(200, json=payload)

        async with IMSStationClient(base_url=BASE_URL) as client:
            data_set = await client.get_station_data(178, 7, "2024-06-01", "2024-06-02")

    request = route.calls.last.request
    assert request.url.params["from"] == "2024-06-01"
    assert request.url.params["to"] == "2024-06-02"

    assert data_set.station_id == 178
    assert data_set.channel_id == 7
    assert [reading.value for reading in data_set.readings] == [20.0, 21.0, 99.0]
    assert data_set.readings[-1].valid is False
    assert data_set.readings[0].timestamp.utcoffset().total_seconds() == 3 * 3600


@pytest.mark.asyncio
async def test_get_station_data_rejects_non_json():
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/stations/178/data/7").respond(200, text="<html>maintenance</html>")

        async with IMSStationClient(base_url=BASE_URL) as client:
            with pytest.raises(ValueError, match="Invalid response format"):
                await client.get_station_data(178, 7, "2024-06-01", "2024-06-02")


@pytest.mark.asyncio
async def test_multi_channel_drops_failed_channels():
    with respx.mock(base_url=BASE_URL) as mock:
        mock.get("/stations/178/data/7").respond(
            200, json=_data_payload(178, [("2024-06-01T10:00:00+03:00", 20.0, True)])
        )
        mock.get("/stations/178/data/8").respond(404)
        mock.get("/stations/178/data/9").mock(side_effect=httpx.ConnectTimeout("timed out"))

        async with IMSStationClient(base_url=BASE_URL) as client:
            data_sets = await client.get_station_data_multi_channel(178, [7, 8, 9], "2024-06-01", "2024-06-02")

    assert [data_set.channel_id for data_set in data_sets] == [7]
