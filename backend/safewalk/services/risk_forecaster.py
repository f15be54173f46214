"""Predictive risk forecaster.

Projects a 0-100 safety score forward from the hour-of-day distribution of
historical incidents near the route, plus one live congestion reading and a
coarse weather penalty:

  risk(h) = min(1, hour_score[h]*0.7 + congestion/100*0.25 + weather_penalty*0.2)
  score   = round((1 - risk) * 100)

hour_score[h] compares hour h to the route's own hourly average, so it
measures how unusually incident-prone an hour is, not an absolute count.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from safewalk.config import settings
from safewalk.schemas.forecast import ForecastSignals, RiskForecast, TimeSeriesPoint
from safewalk.schemas.geo import GeoPoint
from safewalk.schemas.signals import IncidentRecord, TrafficSignal, WeatherSignal
from safewalk.services.providers import ProviderSet, guarded
from safewalk.services.safety_scorer import local_hour
from safewalk.services.signal_repository import bounding_box

logger = logging.getLogger(__name__)

FORECAST_OFFSETS = (0, 30, 120, 480)  # minutes
FALLBACK_SCORE = 85
LATE_NIGHT_HOUR = 22
LATE_NIGHT_BIAS = 0.12
WEATHER_PENALTY = 0.1
HISTORICAL_STATUSES = ("active", "resolved")


def fallback_forecast(as_of: datetime, reason: str = "No data available") -> RiskForecast:
    """Fixed neutral forecast used when there is nothing to compute from."""
    return RiskForecast(
        prediction_timestamp=as_of,
        now=FALLBACK_SCORE,
        in_30_min=FALLBACK_SCORE,
        after_22=FALLBACK_SCORE,
        time_series=[TimeSeriesPoint(offset_minutes=m, score=FALLBACK_SCORE) for m in FORECAST_OFFSETS],
        explanation=reason,
        raw_signals=None,
        is_fallback=True,
    )


def sample_points(points: list[GeoPoint], limit: int) -> list[GeoPoint]:
    """Up to `limit` points spread evenly along the route, endpoints included."""
    if len(points) <= limit:
        return list(points)
    if limit == 1:
        return [points[0]]
    step = (len(points) - 1) / (limit - 1)
    return [points[round(i * step)] for i in range(limit)]


def incidents_by_hour(incidents: list[IncidentRecord]) -> list[int]:
    counts = [0] * 24
    for incident in incidents:
        counts[local_hour(incident.created_at)] += 1
    return counts


def hour_scores(counts: list[int]) -> list[float]:
    total = sum(counts)
    avg_per_hour = total / 24 if total else 0
    if avg_per_hour <= 0:
        return [0.0] * 24
    return [min(1.0, c / (avg_per_hour * 2)) for c in counts]


def normalize_congestion(raw: float) -> int:
    """Map a congestion reading of unknown scale onto 0-100.

    <= 1 is a 0-1 fraction, <= 10 a ten-point scale, anything larger is
    taken as already 0-100.
    """
    if raw <= 1:
        return round(max(0.0, raw) * 100)
    if raw <= 10:
        return round(raw * 10)
    return round(min(100.0, raw))


def congestion_fraction(traffic: TrafficSignal | None) -> float:
    if traffic is None:
        return settings.forecast_default_congestion
    return 1 - traffic.speed_ratio


def weather_penalty(weather: WeatherSignal | None) -> float:
    if weather is None:
        return 0.0
    if (weather.precipitation_probability or 0) > 0.4 or (weather.wind_speed or 0) > 12:
        return WEATHER_PENALTY
    return 0.0


def risk_for_hour(hour: int, scores: list[float], congestion: int, penalty: float) -> float:
    return min(1.0, scores[hour % 24] * 0.7 + (congestion / 100) * 0.25 + penalty * 0.2)


def risk_to_score(risk: float) -> int:
    return round((1 - min(1.0, max(0.0, risk))) * 100)


async def forecast_risk(
    points: list[GeoPoint],
    providers: ProviderSet | None = None,
    as_of: datetime | None = None,
) -> RiskForecast:
    """Forecast safety scores for a route (or a single point) from as_of onward."""
    as_of = as_of or datetime.now(timezone.utc)
    providers = providers or ProviderSet()

    samples = sample_points([p for p in points if p is not None], settings.forecast_max_sample_points)
    if not samples:
        return fallback_forecast(as_of)

    try:
        return await _forecast(samples, providers, as_of)
    except Exception as e:
        logger.error("Risk forecast failed, returning neutral forecast: %s", e)
        return fallback_forecast(as_of)


async def _forecast(samples: list[GeoPoint], providers: ProviderSet, as_of: datetime) -> RiskForecast:
    timeout = providers.call_timeout
    bbox = bounding_box(samples)
    midpoint = samples[len(samples) // 2]

    incidents, traffic, weather = await asyncio.gather(
        _historical_incidents(samples, providers, as_of),
        guarded("forecast traffic", providers.get_traffic(bbox), None, timeout),
        guarded("forecast weather", providers.get_weather(midpoint), None, timeout),
    )

    counts = incidents_by_hour(incidents)
    scores = hour_scores(counts)
    congestion = normalize_congestion(congestion_fraction(traffic))
    penalty = weather_penalty(weather)

    def score_at(offset_minutes: int) -> int:
        hour = local_hour(as_of + timedelta(minutes=offset_minutes))
        return risk_to_score(risk_for_hour(hour, scores, congestion, penalty))

    after_22_risk = min(1.0, risk_for_hour(LATE_NIGHT_HOUR, scores, congestion, penalty) + LATE_NIGHT_BIAS)
    explanation = " · ".join([
        f"Historical incidents nearby: {len(incidents)}",
        f"Estimated congestion: {congestion}/100",
        "Weather adds minor risk" if penalty else "Weather nominal",
    ])

    return RiskForecast(
        prediction_timestamp=as_of,
        now=score_at(0),
        in_30_min=score_at(30),
        after_22=risk_to_score(after_22_risk),
        time_series=[TimeSeriesPoint(offset_minutes=m, score=score_at(m)) for m in FORECAST_OFFSETS],
        explanation=explanation,
        raw_signals=ForecastSignals(
            incidents_count=len(incidents),
            incidents_by_hour=counts,
            congestion=congestion,
            weather_penalty=penalty,
        ),
        is_fallback=False,
    )


async def _historical_incidents(
    samples: list[GeoPoint],
    providers: ProviderSet,
    as_of: datetime,
) -> list[IncidentRecord]:
    since = as_of - timedelta(days=settings.forecast_history_days)
    radius_km = settings.forecast_query_radius_m / 1000
    query_points = sample_points(samples, settings.forecast_max_query_points)

    results = await asyncio.gather(*(
        providers.signals.query_incidents(
            bounding_box([p], buffer_km=radius_km),
            since,
            statuses=HISTORICAL_STATUSES,
            limit=settings.forecast_per_point_limit,
        )
        for p in query_points
    ), return_exceptions=True)

    seen: set[int] = set()
    incidents = []
    for result in results:
        if isinstance(result, BaseException):
            logger.warning("Historical incident query failed: %s", result)
            continue
        if result is None:
            continue
        for incident in result:
            if incident.id in seen:
                continue
            seen.add(incident.id)
            incidents.append(incident)
    return incidents
