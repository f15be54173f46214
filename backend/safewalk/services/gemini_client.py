"""Text suggestions from the Gemini generateContent REST endpoint.

Optional enrichment only: every function returns None when the API key is
missing or the call fails, and nothing here feeds the safety score.
"""

import json
import logging

import httpx

from safewalk.config import settings
from safewalk.schemas.geo import RouteCandidate
from safewalk.schemas.route import PointOfInterest, RouteSuggestions, StopSuggestion
from safewalk.schemas.safety import SafetyAssessment
from safewalk.schemas.signals import WeatherSignal

logger = logging.getLogger(__name__)


async def generate_text(prompt: str) -> str | None:
    if not settings.gemini_api_key:
        return None

    url = f"{settings.gemini_base_url}/models/{settings.gemini_model}:generateContent"
    payload = {"contents": [{"parts": [{"text": prompt}]}]}
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            resp = await client.post(url, params={"key": settings.gemini_api_key}, json=payload)
            resp.raise_for_status()
            candidates = resp.json().get("candidates") or []
            if not candidates:
                return None
            parts = candidates[0].get("content", {}).get("parts") or []
            text = "".join(p.get("text", "") for p in parts).strip()
            return text or None
    except Exception as e:
        logger.warning("Gemini generateContent failed: %s", e)
        return None


async def suggest_stops(
    purpose: str,
    route: RouteCandidate,
    pois: list[PointOfInterest],
) -> RouteSuggestions | None:
    """Ask for 3-5 stops along the route that match the walk's purpose."""
    start = route.points[0] if route.points else None
    end = route.points[-1] if route.points else None
    poi_lines = "\n".join(f"- {p.name}: {p.category or 'General'}" for p in pois)
    prompt = (
        f'A user is planning a walk with the purpose: "{purpose}"\n\n'
        "Route information:\n"
        f"- Distance: {route.distance_meters:.0f}m\n"
        f"- Duration: {route.travel_time_seconds:.0f}s\n"
        f"- Start: {_fmt_point(start)}\n"
        f"- End: {_fmt_point(end)}\n\n"
        f"Nearby points of interest:\n{poi_lines or '- none found'}\n\n"
        "Suggest 3-5 stops that match the purpose, using the points of interest above. "
        "Respond with JSON only, in the form "
        '{"suggestions": [{"name": "", "description": "", "type": "", "lat": 0, "lng": 0}], '
        '"commentary": ""}'
    )
    text = await generate_text(prompt)
    if text is None:
        return None
    return parse_suggestions(text)


async def route_commentary(
    purpose: str,
    route: RouteCandidate,
    assessment: SafetyAssessment,
    weather: WeatherSignal | None,
) -> str | None:
    prompt = (
        f'Generate helpful commentary for a walking route with purpose: "{purpose}"\n\n'
        "Route details:\n"
        f"- Distance: {route.distance_meters:.0f}m\n"
        f"- Duration: {round(route.travel_time_seconds / 60)} minutes\n"
        f"- Safety score: {assessment.overall_score}/100 ({assessment.safety_level})\n\n"
        f"Weather: {weather.condition_text if weather and weather.condition_text else 'Not available'}\n\n"
        "Provide practical advice in 2-3 sentences about the route considering the purpose and conditions."
    )
    return await generate_text(prompt)


def parse_suggestions(text: str) -> RouteSuggestions:
    """Parse the model's JSON reply; non-JSON replies become plain commentary."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        cleaned = cleaned.strip("`")
        if cleaned.lower().startswith("json"):
            cleaned = cleaned[4:]
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        return RouteSuggestions(commentary=text.strip())

    if not isinstance(data, dict):
        return RouteSuggestions(commentary=text.strip())

    suggestions = []
    for s in data.get("suggestions") or []:
        if not isinstance(s, dict) or not s.get("name"):
            continue
        coords = s.get("coordinates") or {}
        suggestions.append(StopSuggestion(
            name=s["name"],
            description=s.get("description", ""),
            type=s.get("type"),
            latitude=s.get("lat", coords.get("lat")),
            longitude=s.get("lng", coords.get("lng")),
        ))
    return RouteSuggestions(suggestions=suggestions, commentary=data.get("commentary") or "")


def _fmt_point(point) -> str:
    if point is None:
        return "Unknown"
    return f"{point.latitude}, {point.longitude}"
