"""External collaborators consumed by the ranking engine and forecaster."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TypeVar

from safewalk.config import settings
from safewalk.schemas.geo import BoundingBox, GeoPoint, RouteCandidate
from safewalk.schemas.route import PointOfInterest, RouteSuggestions
from safewalk.schemas.safety import SafetyAssessment
from safewalk.schemas.signals import TrafficSignal, WeatherSignal
from safewalk.services import gemini_client, owm_client, tomtom_client
from safewalk.services.signal_repository import SignalRepository, SignalSource

logger = logging.getLogger(__name__)

T = TypeVar("T")

RoutesFn = Callable[[GeoPoint, GeoPoint, str], Awaitable[list[RouteCandidate]]]
TrafficFn = Callable[[BoundingBox], Awaitable[TrafficSignal | None]]
WeatherFn = Callable[[GeoPoint], Awaitable[WeatherSignal | None]]
PoiFn = Callable[[str, GeoPoint], Awaitable[list[PointOfInterest]]]
SuggestFn = Callable[[str, RouteCandidate, list[PointOfInterest]], Awaitable[RouteSuggestions | None]]
CommentaryFn = Callable[[str, RouteCandidate, SafetyAssessment, WeatherSignal | None], Awaitable[str | None]]


@dataclass
class ProviderSet:
    signals: SignalSource = field(default_factory=SignalRepository)
    compute_routes: RoutesFn = tomtom_client.compute_routes
    get_traffic: TrafficFn = tomtom_client.fetch_traffic_flow
    get_weather: WeatherFn = owm_client.fetch_current
    search_poi: PoiFn = tomtom_client.search_poi
    suggest_stops: SuggestFn = gemini_client.suggest_stops
    route_commentary: CommentaryFn = gemini_client.route_commentary
    call_timeout: float = field(default_factory=lambda: settings.provider_call_timeout)


def get_providers() -> ProviderSet:
    return ProviderSet()


async def guarded(label: str, awaitable: Awaitable[T], default: T, timeout: float) -> T:
    """Await one provider call under its own timeout; failures yield default."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning("%s timed out after %.1fs; using default", label, timeout)
    except Exception as e:
        logger.warning("%s failed; using default: %s", label, e)
    return default
