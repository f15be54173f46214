"""Composite route safety scoring.

Weighted blend of four 0-100 sub-scores (higher is safer):
  incident(0.35) + lighting(lw*0.25) + congestion(0.15) + walkability(0.25 - lw*0.15)

lw is the time-of-day lighting weight (night 1.0, evening 0.7, day 0.1).
Walkability cedes budget to lighting as the light fails; the raw weights
are normalized to sum to 1 before blending.

Every missing input degrades to a neutral default so an assessment is
always complete.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

from safewalk.config import settings
from safewalk.schemas.geo import GeoPoint
from safewalk.schemas.safety import (
    AssessmentMetadata,
    ComponentWeights,
    CongestionDetails,
    CongestionScore,
    IncidentDetails,
    IncidentScore,
    LightingDetails,
    LightingScore,
    RecentIncident,
    SafetyAssessment,
    SafetyComponents,
    WalkabilityDetails,
    WalkabilityScore,
)
from safewalk.schemas.signals import IncidentRecord, LightingRecord, TrafficSignal, WeatherSignal
from safewalk.services.signal_repository import SignalSource, bounding_box

logger = logging.getLogger(__name__)

EVENING_START = 17
NIGHT_START = 20
NIGHT_END = 6

SEVERITY_PENALTY: dict[str, float] = {
    "dangerous": 25.0,
    "moderate": 15.0,
    "fine": 5.0,
}

# (min score, level, display color), checked top-down
SAFETY_LEVELS = [
    (80, "excellent", "#34C759"),
    (65, "good", "#30D158"),
    (50, "moderate", "#FF9500"),
    (35, "poor", "#FF6B00"),
    (0, "dangerous", "#FF3B30"),
]

CONGESTION_DESCRIPTIONS: dict[str, str] = {
    "free_flow": "Roads are clear with minimal traffic",
    "light": "Light traffic - easy walking conditions",
    "moderate": "Moderate traffic - some congestion",
    "heavy": "Heavy traffic - crowded sidewalks possible",
    "severe": "Severe congestion - expect delays",
    "unknown": "Traffic data unavailable",
}


# --- Time of day ---

def local_hour(as_of: datetime) -> int:
    """Hour of as_of on the configured local wall clock. Naive values are UTC."""
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    return as_of.astimezone(ZoneInfo(settings.local_timezone)).hour


def is_dark_hours(hour: int) -> bool:
    return hour >= NIGHT_START or hour < NIGHT_END


def lighting_weight(hour: int) -> float:
    if is_dark_hours(hour):
        return 1.0
    if hour >= EVENING_START:
        return 0.7
    return 0.1


def time_of_day_label(hour: int) -> str:
    if is_dark_hours(hour):
        return "night"
    if hour >= EVENING_START:
        return "evening"
    if hour >= 12:
        return "afternoon"
    return "morning"


def component_weights(lighting_weight: float) -> ComponentWeights:
    raw = {
        "incident": 0.35,
        "lighting": lighting_weight * 0.25,
        "congestion": 0.15,
        "walkability": 0.25 - lighting_weight * 0.15,
    }
    total = sum(raw.values())
    return ComponentWeights(**{k: v / total for k, v in raw.items()})


# --- Sub-scores ---

def verification_multiplier(verifications: int) -> float:
    return min(1 + max(verifications, 0) * 0.2, 2.0)


def incident_score(incidents: list[IncidentRecord]) -> IncidentScore:
    breakdown = {"fine": 0, "moderate": 0, "dangerous": 0}
    if not incidents:
        return IncidentScore(score=100, details=IncidentDetails(count=0, breakdown=breakdown))

    penalty = 0.0
    for incident in incidents:
        severity = incident.severity or "moderate"
        breakdown[severity] = breakdown.get(severity, 0) + 1
        penalty += SEVERITY_PENALTY.get(severity, 0.0) * verification_multiplier(incident.verifications)

    recent = [
        RecentIncident(
            title=i.title,
            severity=i.severity,
            category=i.category,
            verifications=i.verifications,
        )
        for i in incidents[:5]
    ]
    return IncidentScore(
        score=_clamp(round(100 - penalty)),
        details=IncidentDetails(count=len(incidents), breakdown=breakdown, recent_incidents=recent),
    )


def lighting_score(reports: list[LightingRecord], hour: int) -> LightingScore:
    weight = lighting_weight(hour)
    label = time_of_day_label(hour)

    if not reports:
        # No data: assume moderate lighting by day, poor after dark
        return LightingScore(
            score=50 if is_dark_hours(hour) else 80,
            weight=weight,
            details=LightingDetails(
                reports_count=0,
                time_of_day=label,
                description=lighting_description(None),
            ),
        )

    lux_values = [r.lux_estimate for r in reports if r.lux_estimate is not None]
    if not lux_values:
        return LightingScore(
            score=70,
            weight=weight,
            details=LightingDetails(
                reports_count=len(reports),
                time_of_day=label,
                description=lighting_description(None),
            ),
        )

    avg_lux = sum(lux_values) / len(lux_values)
    return LightingScore(
        score=_lux_to_score(avg_lux),
        weight=weight,
        details=LightingDetails(
            reports_count=len(reports),
            avg_lux=round(avg_lux),
            time_of_day=label,
            description=lighting_description(avg_lux),
        ),
    )


def _lux_to_score(avg_lux: float) -> int:
    if avg_lux < 10:
        return 20
    if avg_lux < 50:
        return 40
    if avg_lux < 100:
        return 60
    if avg_lux < 300:
        return 80
    return 95


def lighting_description(avg_lux: float | None) -> str:
    if avg_lux is None:
        return "No lighting data available"
    if avg_lux < 10:
        return "Very poorly lit area - use caution"
    if avg_lux < 50:
        return "Dimly lit - street lights may be sparse"
    if avg_lux < 100:
        return "Moderately lit area"
    if avg_lux < 300:
        return "Well lit with good visibility"
    return "Brightly lit area"


def congestion_level(ratio: float) -> str:
    if ratio >= 0.9:
        return "free_flow"
    if ratio >= 0.7:
        return "light"
    if ratio >= 0.5:
        return "moderate"
    if ratio >= 0.3:
        return "heavy"
    return "severe"


def congestion_score(traffic: TrafficSignal | None) -> CongestionScore:
    if traffic is None:
        return CongestionScore(
            score=75,
            details=CongestionDetails(
                congestion_level="unknown",
                description=CONGESTION_DESCRIPTIONS["unknown"],
            ),
        )

    ratio = traffic.speed_ratio
    level = congestion_level(ratio)
    return CongestionScore(
        score=_clamp(round(ratio * 100)),
        details=CongestionDetails(
            current_speed=round(traffic.current_speed),
            free_flow_speed=round(traffic.free_flow_speed or traffic.current_speed),
            congestion_level=level,
            description=CONGESTION_DESCRIPTIONS[level],
        ),
    )


def walkability_score(traffic: TrafficSignal | None, weather: WeatherSignal | None) -> WalkabilityScore:
    score = 100
    factors: list[str] = []

    if traffic is not None:
        if traffic.current_speed > 50:
            score -= 30
            factors.append("High-speed traffic nearby")
        elif traffic.current_speed > 30:
            score -= 15
            factors.append("Moderate traffic speeds")

    if weather is not None:
        code = weather.condition_code
        if code is not None:
            if 200 <= code < 300:
                score -= 40
                factors.append("Thunderstorm conditions")
            elif 300 <= code < 600:
                score -= 25
                factors.append("Rainy conditions")
            elif 600 <= code < 700:
                score -= 30
                factors.append("Snowy conditions")

        temp = weather.temperature
        if temp is not None:
            if temp < 0:
                score -= 20
                factors.append("Freezing temperatures")
            elif temp < 10:
                score -= 10
                factors.append("Cold weather")
            elif temp > 35:
                score -= 20
                factors.append("Extreme heat")
            elif temp > 30:
                score -= 10
                factors.append("Hot weather")

    if not factors:
        factors.append("Good walking conditions")

    return WalkabilityScore(score=max(0, score), details=WalkabilityDetails(factors=factors))


def score_to_level(score: int) -> tuple[str, str]:
    for threshold, level, color in SAFETY_LEVELS:
        if score >= threshold:
            return level, color
    return SAFETY_LEVELS[-1][1], SAFETY_LEVELS[-1][2]


# --- Composite ---

def assess(
    incidents: list[IncidentRecord],
    lighting: list[LightingRecord],
    traffic: TrafficSignal | None,
    weather: WeatherSignal | None,
    as_of: datetime,
    degraded_signals: list[str] | None = None,
) -> SafetyAssessment:
    """Blend the four sub-scores into one SafetyAssessment."""
    hour = local_hour(as_of)

    incidents_result = incident_score(incidents)
    lighting_result = lighting_score(lighting, hour)
    congestion_result = congestion_score(traffic)
    walkability_result = walkability_score(traffic, weather)

    weights = component_weights(lighting_result.weight)
    overall = _clamp(round(
        incidents_result.score * weights.incident
        + lighting_result.score * weights.lighting
        + congestion_result.score * weights.congestion
        + walkability_result.score * weights.walkability
    ))
    level, color = score_to_level(overall)

    degraded = list(degraded_signals or [])
    if traffic is None and "traffic" not in degraded:
        degraded.append("traffic")
    if weather is None and "weather" not in degraded:
        degraded.append("weather")

    return SafetyAssessment(
        overall_score=overall,
        safety_level=level,
        safety_color=color,
        components=SafetyComponents(
            incidents=incidents_result,
            lighting=lighting_result,
            congestion=congestion_result,
            walkability=walkability_result,
        ),
        weights=weights,
        metadata=AssessmentMetadata(
            time_of_day=time_of_day_label(hour),
            is_dark_hours=is_dark_hours(hour),
            lighting_weight=lighting_result.weight,
            calculated_at=as_of,
            degraded_signals=degraded,
        ),
    )


async def assess_route(
    points: list[GeoPoint],
    traffic: TrafficSignal | None,
    weather: WeatherSignal | None,
    repository: SignalSource,
    as_of: datetime,
) -> SafetyAssessment:
    """Fetch incidents and lighting around the route concurrently, then score."""
    incidents: list[IncidentRecord] = []
    lighting: list[LightingRecord] = []
    degraded: list[str] = []

    bbox = bounding_box(points)
    if bbox is None:
        degraded.extend(["incidents", "lighting"])
    else:
        results = await asyncio.gather(
            repository.query_incidents(bbox, as_of - timedelta(days=settings.incident_window_days)),
            repository.query_lighting(bbox, as_of - timedelta(days=settings.lighting_window_days)),
            return_exceptions=True,
        )
        for label, result in zip(("incidents", "lighting"), results):
            if isinstance(result, BaseException):
                logger.warning("Signal fetch %s failed, using defaults: %s", label, result)
                degraded.append(label)
            elif result is None:
                logger.warning("Signal store unavailable for %s, using defaults", label)
                degraded.append(label)
            elif label == "incidents":
                incidents = result
            else:
                lighting = result

    return assess(incidents, lighting, traffic, weather, as_of, degraded_signals=degraded)


def _clamp(value: float, low: int = 0, high: int = 100) -> int:
    return int(max(low, min(high, value)))
