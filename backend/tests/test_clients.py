"""Tests for the TomTom, OpenWeatherMap and Gemini clients."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from safewalk.config import settings
from safewalk.schemas.geo import BoundingBox, GeoPoint
from safewalk.services.gemini_client import parse_suggestions

from fakes import make_route

ORIGIN = GeoPoint(latitude=51.50, longitude=-0.12)
DESTINATION = GeoPoint(latitude=51.52, longitude=-0.10)


@pytest.fixture
def api_keys(monkeypatch):
    monkeypatch.setattr(settings, "tomtom_api_key", "tt-test")
    monkeypatch.setattr(settings, "owm_api_key", "owm-test")
    monkeypatch.setattr(settings, "gemini_api_key", "gm-test")


def _mock_client(payload=None, error=None, method="get"):
    mock_resp = MagicMock()
    mock_resp.json.return_value = payload
    mock_resp.raise_for_status = MagicMock()

    mock_client = AsyncMock()
    call = AsyncMock(side_effect=error) if error else AsyncMock(return_value=mock_resp)
    setattr(mock_client, method, call)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


# --- TomTom ---

@pytest.mark.asyncio
async def test_compute_routes_parses_alternatives(api_keys):
    payload = {
        "routes": [
            {
                "summary": {"lengthInMeters": 2100, "travelTimeInSeconds": 1500},
                "legs": [{"points": [
                    {"latitude": 51.50, "longitude": -0.12},
                    {"latitude": 51.51, "longitude": -0.11},
                ]}],
            },
            {
                "summary": {"lengthInMeters": 2400, "travelTimeInSeconds": 1700},
                "legs": [
                    {"points": [{"latitude": 51.50, "longitude": -0.12}]},
                    {"points": [{"latitude": 51.52, "longitude": -0.10}]},
                ],
            },
        ]
    }
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(payload)
        mock_client_cls.return_value = mock_client

        from safewalk.services.tomtom_client import compute_routes
        routes = await compute_routes(ORIGIN, DESTINATION, "fastest")

        assert len(routes) == 2
        assert routes[0].distance_meters == 2100
        assert routes[0].travel_time_seconds == 1500
        assert len(routes[0].points) == 2
        assert routes[1].points[-1].latitude == 51.52

        params = mock_client.get.call_args.kwargs["params"]
        assert params["travelMode"] == "pedestrian"
        assert params["routeType"] == "fastest"
        assert params["maxAlternatives"] == settings.route_max_alternatives


@pytest.mark.asyncio
async def test_compute_routes_without_key(monkeypatch):
    monkeypatch.setattr(settings, "tomtom_api_key", "")
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        from safewalk.services.tomtom_client import compute_routes
        assert await compute_routes(ORIGIN, DESTINATION) == []
        mock_client_cls.assert_not_called()


@pytest.mark.asyncio
async def test_compute_routes_http_error(api_keys):
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        mock_client_cls.return_value = _mock_client(error=httpx.ConnectError("connection refused"))

        from safewalk.services.tomtom_client import compute_routes
        assert await compute_routes(ORIGIN, DESTINATION) == []


@pytest.mark.asyncio
async def test_fetch_traffic_flow(api_keys):
    payload = {"flowSegmentData": {"currentSpeed": 22, "freeFlowSpeed": 44}}
    bbox = BoundingBox(min_lat=51.49, max_lat=51.51, min_lon=-0.13, max_lon=-0.11)
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(payload)
        mock_client_cls.return_value = mock_client

        from safewalk.services.tomtom_client import fetch_traffic_flow
        traffic = await fetch_traffic_flow(bbox)

        assert traffic.current_speed == 22
        assert traffic.free_flow_speed == 44
        assert traffic.speed_ratio == pytest.approx(0.5)
        params = mock_client.get.call_args.kwargs["params"]
        assert params["point"] == f"{bbox.center.latitude},{bbox.center.longitude}"


@pytest.mark.asyncio
async def test_fetch_traffic_flow_missing_speed(api_keys):
    bbox = BoundingBox(min_lat=51.49, max_lat=51.51, min_lon=-0.13, max_lon=-0.11)
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        mock_client_cls.return_value = _mock_client({"flowSegmentData": {}})

        from safewalk.services.tomtom_client import fetch_traffic_flow
        assert await fetch_traffic_flow(bbox) is None


@pytest.mark.asyncio
async def test_search_poi(api_keys):
    payload = {"results": [
        {
            "poi": {"name": "Corner Cafe", "categories": ["cafe", "coffee shop"]},
            "position": {"lat": 51.505, "lon": -0.115},
        },
        {
            "address": {"freeformAddress": "1 High Street"},
            "position": {"lat": 51.506, "lon": -0.114},
        },
        {"position": {"lat": 51.507, "lon": -0.113}},
    ]}
    with patch("safewalk.services.tomtom_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(payload)
        mock_client_cls.return_value = mock_client

        from safewalk.services.tomtom_client import search_poi
        pois = await search_poi("coffee shop", ORIGIN)

        assert [p.name for p in pois] == ["Corner Cafe", "1 High Street"]
        assert pois[0].category == "cafe, coffee shop"
        assert pois[0].latitude == 51.505
        assert "coffee%20shop" in mock_client.get.call_args.args[0]


# --- OpenWeatherMap ---

@pytest.mark.asyncio
async def test_owm_fetch_current(api_keys):
    payload = {
        "current": {
            "temp": 7.5,
            "wind_speed": 13.2,
            "weather": [{"id": 501, "description": "moderate rain"}],
        },
        "hourly": [{"pop": 0.8}, {"pop": 0.2}],
    }
    with patch("safewalk.services.owm_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(payload)
        mock_client_cls.return_value = mock_client

        from safewalk.services.owm_client import fetch_current
        weather = await fetch_current(ORIGIN)

        assert weather.condition_code == 501
        assert weather.temperature == 7.5
        assert weather.wind_speed == 13.2
        assert weather.precipitation_probability == 0.8
        assert weather.condition_text == "moderate rain"
        assert mock_client.get.call_args.kwargs["params"]["units"] == "metric"


@pytest.mark.asyncio
async def test_owm_fetch_failure_returns_none(api_keys):
    with patch("safewalk.services.owm_client.httpx.AsyncClient") as mock_client_cls:
        mock_client_cls.return_value = _mock_client(error=httpx.ReadTimeout("timed out"))

        from safewalk.services.owm_client import fetch_current
        assert await fetch_current(ORIGIN) is None


# --- Gemini ---

@pytest.mark.asyncio
async def test_gemini_generate_text(api_keys):
    payload = {"candidates": [{"content": {"parts": [{"text": "Well lit "}, {"text": "and busy."}]}}]}
    with patch("safewalk.services.gemini_client.httpx.AsyncClient") as mock_client_cls:
        mock_client = _mock_client(payload, method="post")
        mock_client_cls.return_value = mock_client

        from safewalk.services.gemini_client import generate_text
        assert await generate_text("hello") == "Well lit and busy."
        assert mock_client.post.call_args.kwargs["params"] == {"key": "gm-test"}


@pytest.mark.asyncio
async def test_gemini_without_key_skips_call(monkeypatch):
    monkeypatch.setattr(settings, "gemini_api_key", "")
    with patch("safewalk.services.gemini_client.httpx.AsyncClient") as mock_client_cls:
        from safewalk.services.gemini_client import suggest_stops
        assert await suggest_stops("coffee", make_route(51.5, 600), []) is None
        mock_client_cls.assert_not_called()


def test_parse_suggestions_fenced_json():
    text = (
        "```json\n"
        '{"suggestions": [{"name": "Corner Cafe", "description": "Flat white", "type": "cafe", '
        '"lat": 51.505, "lng": -0.115}, {"description": "no name"}], "commentary": "Nice walk."}\n'
        "```"
    )
    result = parse_suggestions(text)
    assert [s.name for s in result.suggestions] == ["Corner Cafe"]
    assert result.suggestions[0].longitude == -0.115
    assert result.commentary == "Nice walk."


def test_parse_suggestions_nested_coordinates():
    text = '{"suggestions": [{"name": "Park", "coordinates": {"lat": 51.5, "lng": -0.1}}]}'
    result = parse_suggestions(text)
    assert result.suggestions[0].latitude == 51.5
    assert result.commentary == ""


def test_parse_suggestions_plain_text():
    result = parse_suggestions("Try the bakery on the corner.")
    assert result.suggestions == []
    assert result.commentary == "Try the bakery on the corner."
