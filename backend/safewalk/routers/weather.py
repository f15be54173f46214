from fastapi import APIRouter, Depends, Query

from safewalk.schemas.geo import GeoPoint
from safewalk.schemas.signals import WeatherSignal
from safewalk.services.providers import ProviderSet, get_providers, guarded

router = APIRouter(prefix="/weather", tags=["weather"])


@router.get("/current", response_model=WeatherSignal | None)
async def get_current_weather(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    providers: ProviderSet = Depends(get_providers),
):
    point = GeoPoint(latitude=lat, longitude=lon)
    return await guarded("weather", providers.get_weather(point), None, providers.call_timeout)
