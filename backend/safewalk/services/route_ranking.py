"""Route ranking engine: fan out contextual fetches and scoring, then sort.

Routing failures are fatal (nothing to rank). Traffic, weather, signal and
enrichment failures only degrade the piece they feed.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import get_args

from safewalk.schemas.geo import GeoPoint, RouteCandidate
from safewalk.schemas.route import RankedRoute, RoutePreference, StopSuggestion
from safewalk.schemas.safety import SafetyAssessment
from safewalk.schemas.signals import TrafficSignal, WeatherSignal
from safewalk.services import safety_scorer
from safewalk.services.providers import ProviderSet, guarded
from safewalk.services.signal_repository import bounding_box

logger = logging.getLogger(__name__)

PREFERENCES = get_args(RoutePreference)


class NoRoutesFoundError(Exception):
    """The routing provider returned no candidate routes."""


def balanced_score(route: RankedRoute) -> float:
    # Time term goes negative past one hour, penalizing very long walks
    return route.assessment.overall_score * 0.6 + (1 - route.route.travel_time_seconds / 3600) * 40


def sort_routes(routes: list[RankedRoute], preference: RoutePreference) -> list[RankedRoute]:
    """Stable sort; ties keep provider order."""
    if preference == "safest":
        return sorted(routes, key=lambda r: -r.assessment.overall_score)
    if preference == "fastest":
        return sorted(routes, key=lambda r: r.route.travel_time_seconds)
    return sorted(routes, key=lambda r: -balanced_score(r))


def fallback_commentary(assessment: SafetyAssessment) -> str:
    components = assessment.components
    parts = []

    if assessment.safety_level in ("excellent", "good"):
        parts.append("This route appears safe for walking.")
    elif assessment.safety_level == "moderate":
        parts.append("This route has moderate safety - stay aware of your surroundings.")
    else:
        parts.append("Exercise caution on this route due to safety concerns.")

    if assessment.metadata.is_dark_hours and components.lighting.score < 60:
        parts.append("Lighting conditions are poor - consider a well-lit alternative.")

    count = components.incidents.details.count
    if count > 0:
        parts.append(f"{count} recent incident(s) reported nearby.")

    if components.congestion.details.congestion_level in ("heavy", "severe"):
        parts.append("Expect crowded conditions along this route.")

    return " ".join(parts)


async def rank_routes(
    origin: GeoPoint,
    destination: GeoPoint,
    preference: RoutePreference = "safest",
    providers: ProviderSet | None = None,
    as_of: datetime | None = None,
    purpose: str | None = None,
) -> list[RankedRoute]:
    """Fetch candidate routes, score each one and order them by preference.

    Raises ValueError for an unknown preference and NoRoutesFoundError when
    the routing provider yields nothing.
    """
    if preference not in PREFERENCES:
        raise ValueError(f"Unknown route preference: {preference!r}")

    providers = providers or ProviderSet()
    as_of = as_of or datetime.now(timezone.utc)
    timeout = providers.call_timeout

    route_type = "fastest" if preference == "fastest" else "shortest"
    candidates = await guarded(
        "routing", providers.compute_routes(origin, destination, route_type), [], timeout,
    )
    if not candidates:
        raise NoRoutesFoundError("No routes found")

    # Shared context from the first candidate
    traffic, weather = await asyncio.gather(
        _fetch_traffic(providers, candidates[0]),
        guarded("weather", providers.get_weather(origin), None, timeout),
    )

    ranked = await asyncio.gather(*(
        _rank_candidate(f"route_{i}", c, traffic, weather, providers, as_of, purpose)
        for i, c in enumerate(candidates)
    ))
    logger.info(
        "Ranked %d routes by %s (traffic=%s, weather=%s)",
        len(ranked), preference, traffic is not None, weather is not None,
    )
    return sort_routes(list(ranked), preference)


async def _fetch_traffic(providers: ProviderSet, first: RouteCandidate) -> TrafficSignal | None:
    bbox = bounding_box(first.points)
    if bbox is None:
        return None
    return await guarded("traffic", providers.get_traffic(bbox), None, providers.call_timeout)


async def _rank_candidate(
    route_id: str,
    route: RouteCandidate,
    traffic: TrafficSignal | None,
    weather: WeatherSignal | None,
    providers: ProviderSet,
    as_of: datetime,
    purpose: str | None,
) -> RankedRoute:
    try:
        assessment = await safety_scorer.assess_route(route.points, traffic, weather, providers.signals, as_of)
    except Exception as e:
        logger.error("Scoring %s failed, scoring without signals: %s", route_id, e)
        assessment = safety_scorer.assess(
            [], [], traffic, weather, as_of, degraded_signals=["incidents", "lighting"],
        )

    suggestions, commentary = await _enrich(route_id, route, assessment, weather, providers, purpose)
    return RankedRoute(
        id=route_id,
        route=route,
        assessment=assessment,
        suggestions=suggestions,
        commentary=commentary,
    )


async def _enrich(
    route_id: str,
    route: RouteCandidate,
    assessment: SafetyAssessment,
    weather: WeatherSignal | None,
    providers: ProviderSet,
    purpose: str | None,
) -> tuple[list[StopSuggestion] | None, str]:
    """Optional POI suggestions and commentary; never affects the assessment."""
    timeout = providers.call_timeout
    suggestions = None
    suggestion_commentary = None

    midpoint = route.midpoint
    if purpose and midpoint is not None:
        result = await guarded(
            f"suggestions for {route_id}", _suggest(providers, purpose, route, midpoint), None, timeout,
        )
        if result is not None:
            suggestions = result.suggestions
            suggestion_commentary = result.commentary or None

    commentary = await guarded(
        f"commentary for {route_id}",
        providers.route_commentary(purpose or "walking", route, assessment, weather),
        None,
        timeout,
    )
    return suggestions, commentary or suggestion_commentary or fallback_commentary(assessment)


async def _suggest(providers: ProviderSet, purpose: str, route: RouteCandidate, midpoint: GeoPoint):
    pois = await providers.search_poi(purpose, midpoint)
    return await providers.suggest_stops(purpose, route, pois)
