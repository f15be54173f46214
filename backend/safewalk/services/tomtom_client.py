import logging
from urllib.parse import quote

import httpx

from safewalk.config import settings
from safewalk.schemas.geo import BoundingBox, GeoPoint, RouteCandidate
from safewalk.schemas.route import PointOfInterest
from safewalk.schemas.signals import TrafficSignal

logger = logging.getLogger(__name__)

# TomTom rejects unknown routeType values
_ROUTE_TYPES = ("shortest", "fastest")


async def compute_routes(
    origin: GeoPoint,
    destination: GeoPoint,
    route_type: str = "shortest",
    max_alternatives: int | None = None,
) -> list[RouteCandidate]:
    """Fetch pedestrian route alternatives from TomTom Routing."""
    if not settings.tomtom_api_key:
        logger.warning("TomTom API key not configured; no routes available")
        return []

    params = {
        "key": settings.tomtom_api_key,
        "routeType": route_type if route_type in _ROUTE_TYPES else "shortest",
        "maxAlternatives": settings.route_max_alternatives if max_alternatives is None else max_alternatives,
        "travelMode": "pedestrian",
    }
    locations = f"{origin.latitude},{origin.longitude}:{destination.latitude},{destination.longitude}"
    url = f"{settings.tomtom_base_url}/routing/1/calculateRoute/{locations}/json"
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
    except Exception as e:
        logger.warning("TomTom routing failed for %s: %s", locations, e)
        return []

    candidates = []
    for route in data.get("routes", []):
        summary = route.get("summary", {})
        points = [
            GeoPoint(latitude=p["latitude"], longitude=p["longitude"])
            for leg in route.get("legs", [])
            for p in leg.get("points", [])
            if p.get("latitude") is not None and p.get("longitude") is not None
        ]
        candidates.append(RouteCandidate(
            points=points,
            distance_meters=summary.get("lengthInMeters", 0),
            travel_time_seconds=summary.get("travelTimeInSeconds", 0),
        ))
    return candidates


async def fetch_traffic_flow(bbox: BoundingBox) -> TrafficSignal | None:
    """Fetch flow segment data at the center of the box."""
    if not settings.tomtom_api_key:
        return None

    center = bbox.center
    params = {
        "key": settings.tomtom_api_key,
        "point": f"{center.latitude},{center.longitude}",
        "unit": "KMPH",
    }
    url = f"{settings.tomtom_base_url}/traffic/services/4/flowSegmentData/absolute/10/json"
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            flow = resp.json().get("flowSegmentData") or {}
            current = flow.get("currentSpeed")
            if current is None:
                return None
            return TrafficSignal(
                current_speed=current,
                free_flow_speed=flow.get("freeFlowSpeed"),
            )
    except Exception as e:
        logger.warning("TomTom traffic flow fetch failed at %s: %s", params["point"], e)
        return None


async def search_poi(query: str, near: GeoPoint, radius_m: int | None = None) -> list[PointOfInterest]:
    """Search points of interest matching query around a point."""
    if not settings.tomtom_api_key:
        return []

    params = {
        "key": settings.tomtom_api_key,
        "lat": near.latitude,
        "lon": near.longitude,
        "radius": settings.poi_search_radius_m if radius_m is None else radius_m,
        "limit": 20,
    }
    url = f"{settings.tomtom_base_url}/search/2/search/{quote(query)}.json"
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            resp = await client.get(url, params=params)
            resp.raise_for_status()
            results = resp.json().get("results", [])
    except Exception as e:
        logger.warning("TomTom POI search for %r failed: %s", query, e)
        return []

    pois = []
    for r in results:
        poi = r.get("poi") or {}
        position = r.get("position") or {}
        name = poi.get("name") or (r.get("address") or {}).get("freeformAddress")
        if not name:
            continue
        categories = poi.get("categories") or []
        pois.append(PointOfInterest(
            name=name,
            category=", ".join(categories) if categories else None,
            latitude=position.get("lat"),
            longitude=position.get("lon"),
        ))
    return pois
