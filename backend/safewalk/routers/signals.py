import asyncio
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query

from safewalk.config import settings
from safewalk.schemas.geo import BoundingBox
from safewalk.schemas.signals import SignalSnapshot
from safewalk.services.providers import ProviderSet, get_providers

router = APIRouter(prefix="/signals", tags=["signals"])


@router.get("/", response_model=SignalSnapshot)
async def get_signals(
    min_lat: float = Query(..., ge=-90, le=90),
    max_lat: float = Query(..., ge=-90, le=90),
    min_lon: float = Query(..., ge=-180, le=180),
    max_lon: float = Query(..., ge=-180, le=180),
    providers: ProviderSet = Depends(get_providers),
):
    """Active incidents and recent lighting reports inside a bounding box."""
    bbox = BoundingBox(min_lat=min_lat, max_lat=max_lat, min_lon=min_lon, max_lon=max_lon)
    now = datetime.now(timezone.utc)
    incidents, lighting = await asyncio.gather(
        providers.signals.query_incidents(bbox, now - timedelta(days=settings.incident_window_days)),
        providers.signals.query_lighting(bbox, now - timedelta(days=settings.lighting_window_days)),
    )
    return SignalSnapshot(incidents=incidents or [], lighting=lighting or [])
