"""In-memory stand-ins for the signal store and external providers."""

import asyncio
from datetime import datetime, timezone

from safewalk.schemas.geo import BoundingBox, GeoPoint, RouteCandidate
from safewalk.schemas.signals import IncidentRecord, LightingRecord, TrafficSignal, WeatherSignal
from safewalk.services.providers import ProviderSet

AS_OF_DAY = datetime(2026, 10, 18, 14, 0, tzinfo=timezone.utc)
AS_OF_NIGHT = datetime(2026, 10, 18, 22, 0, tzinfo=timezone.utc)


def make_incident(id=1, severity="moderate", verifications=0, latitude=51.5, longitude=-0.12, **kwargs):
    defaults = {
        "title": f"Incident {id}",
        "category": "other",
        "status": "active",
        "created_at": datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc),
    }
    defaults.update(kwargs)
    return IncidentRecord(
        id=id,
        severity=severity,
        verifications=verifications,
        latitude=latitude,
        longitude=longitude,
        **defaults,
    )


def make_lighting(id=1, lux=None, latitude=51.5, longitude=-0.12):
    return LightingRecord(
        id=id,
        latitude=latitude,
        longitude=longitude,
        lux_estimate=lux,
        created_at=datetime(2026, 10, 17, 21, 0, tzinfo=timezone.utc),
    )


def make_route(latitude, travel_time, n_points=3, distance=1000.0):
    points = [GeoPoint(latitude=latitude, longitude=-0.12 + i * 0.001) for i in range(n_points)]
    return RouteCandidate(points=points, distance_meters=distance, travel_time_seconds=travel_time)


def _inside(bbox: BoundingBox, lat: float, lon: float) -> bool:
    return bbox.min_lat <= lat <= bbox.max_lat and bbox.min_lon <= lon <= bbox.max_lon


class FakeRepository:
    def __init__(self, incidents=None, lighting=None, fail=False):
        self.incidents = incidents or []
        self.lighting = lighting or []
        self.fail = fail
        self.incident_calls = []
        self.lighting_calls = []

    async def query_incidents(self, bbox, since, statuses=("active",), limit=None):
        self.incident_calls.append({"bbox": bbox, "since": since, "statuses": statuses, "limit": limit})
        if self.fail:
            return None
        found = [
            i for i in self.incidents
            if _inside(bbox, i.latitude, i.longitude) and i.status in statuses
        ]
        return found[:limit] if limit is not None else found

    async def query_lighting(self, bbox, since):
        self.lighting_calls.append({"bbox": bbox, "since": since})
        if self.fail:
            return None
        return [r for r in self.lighting if _inside(bbox, r.latitude, r.longitude)]


class CallRecorder:
    """Async callable returning a fixed value (or raising) and counting calls."""

    def __init__(self, result=None, error=None, delay=0.0):
        self.result = result
        self.error = error
        self.delay = delay
        self.calls = []

    async def __call__(self, *args):
        self.calls.append(args)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.result


def make_providers(
    routes=None,
    traffic: TrafficSignal | None = None,
    weather: WeatherSignal | None = None,
    repository=None,
    **overrides,
) -> ProviderSet:
    fields = {
        "signals": repository or FakeRepository(),
        "compute_routes": CallRecorder(result=routes or []),
        "get_traffic": CallRecorder(result=traffic),
        "get_weather": CallRecorder(result=weather),
        "search_poi": CallRecorder(result=[]),
        "suggest_stops": CallRecorder(result=None),
        "route_commentary": CallRecorder(result=None),
        "call_timeout": 1.0,
    }
    fields.update(overrides)
    return ProviderSet(**fields)
