import logging

import httpx

from safewalk.config import settings
from safewalk.schemas.geo import GeoPoint
from safewalk.schemas.signals import WeatherSignal

logger = logging.getLogger(__name__)


async def fetch_current(point: GeoPoint) -> WeatherSignal | None:
    """Fetch current conditions from OpenWeatherMap One Call API (metric)."""
    if not settings.owm_api_key:
        return None

    params = {
        "lat": point.latitude,
        "lon": point.longitude,
        "appid": settings.owm_api_key,
        "units": "metric",
        "exclude": "minutely,daily,alerts",
    }
    try:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as client:
            resp = await client.get(settings.owm_base_url, params=params)
            resp.raise_for_status()
            data = resp.json()
            current = data.get("current", {})
            condition = (current.get("weather") or [{}])[0]

            # Current block carries no precipitation probability; use the next hour
            hourly = data.get("hourly") or [{}]
            pop = hourly[0].get("pop")

            return WeatherSignal(
                condition_code=condition.get("id"),
                temperature=current.get("temp"),
                precipitation_probability=pop,
                wind_speed=current.get("wind_speed"),
                condition_text=condition.get("description"),
            )
    except Exception as e:
        logger.warning("OWM current fetch failed for %.4f,%.4f: %s", point.latitude, point.longitude, e)
        return None
