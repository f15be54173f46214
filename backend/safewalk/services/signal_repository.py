"""Read-only queries over incident and lighting reports.

A query returns None when the store is unavailable or slow, and [] when it
answered with no matching rows. Callers never see the underlying error.
"""

import asyncio
import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from safewalk.config import settings
from safewalk.database import SessionLocal
from safewalk.models.signals import IncidentReport, LightingReport
from safewalk.schemas.geo import BoundingBox, GeoPoint
from safewalk.schemas.signals import IncidentRecord, LightingRecord

logger = logging.getLogger(__name__)

KM_PER_DEGREE = 111.32


def km_to_degrees(km: float) -> float:
    return km / KM_PER_DEGREE


def bounding_box(points: Iterable[GeoPoint | None], buffer_km: float | None = None) -> BoundingBox | None:
    """Min/max lat/lon of the points, padded by buffer_km on every side.

    Returns None when there are no usable points.
    """
    if buffer_km is None:
        buffer_km = settings.bbox_buffer_km
    valid = [p for p in points if p is not None]
    if not valid:
        return None

    pad = km_to_degrees(buffer_km)
    return BoundingBox(
        min_lat=min(p.latitude for p in valid) - pad,
        max_lat=max(p.latitude for p in valid) + pad,
        min_lon=min(p.longitude for p in valid) - pad,
        max_lon=max(p.longitude for p in valid) + pad,
    )


class SignalSource(Protocol):
    async def query_incidents(
        self,
        bbox: BoundingBox,
        since: datetime,
        statuses: tuple[str, ...] = ("active",),
        limit: int | None = None,
    ) -> list[IncidentRecord] | None: ...

    async def query_lighting(self, bbox: BoundingBox, since: datetime) -> list[LightingRecord] | None: ...


def _to_db_time(dt: datetime) -> datetime:
    # Stored timestamps are naive UTC
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


class SignalRepository:
    def __init__(self, session_factory=SessionLocal, timeout: float | None = None):
        self._session_factory = session_factory
        self.timeout = settings.signal_query_timeout if timeout is None else timeout

    async def query_incidents(
        self,
        bbox: BoundingBox,
        since: datetime,
        statuses: tuple[str, ...] = ("active",),
        limit: int | None = None,
    ) -> list[IncidentRecord] | None:
        return await self._run("incidents", self._incidents, bbox, since, statuses, limit)

    async def query_lighting(self, bbox: BoundingBox, since: datetime) -> list[LightingRecord] | None:
        return await self._run("lighting", self._lighting, bbox, since)

    async def _run(self, label: str, fn, *args) -> list | None:
        try:
            return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("Signal query %s timed out after %.1fs", label, self.timeout)
            return None
        except SQLAlchemyError as e:
            logger.warning("Signal query %s failed: %s", label, e)
            return None

    def _incidents(
        self,
        bbox: BoundingBox,
        since: datetime,
        statuses: tuple[str, ...],
        limit: int | None,
    ) -> list[IncidentRecord]:
        db: Session = self._session_factory()
        try:
            query = (
                db.query(IncidentReport)
                .filter(
                    IncidentReport.status.in_(statuses),
                    IncidentReport.latitude.between(bbox.min_lat, bbox.max_lat),
                    IncidentReport.longitude.between(bbox.min_lon, bbox.max_lon),
                    IncidentReport.created_at >= _to_db_time(since),
                )
                .order_by(IncidentReport.created_at.desc())
            )
            if limit is not None:
                query = query.limit(limit)
            return [IncidentRecord.model_validate(row) for row in query.all()]
        finally:
            db.close()

    def _lighting(self, bbox: BoundingBox, since: datetime) -> list[LightingRecord]:
        db: Session = self._session_factory()
        try:
            rows = (
                db.query(LightingReport)
                .filter(
                    LightingReport.latitude.between(bbox.min_lat, bbox.max_lat),
                    LightingReport.longitude.between(bbox.min_lon, bbox.max_lon),
                    LightingReport.created_at >= _to_db_time(since),
                )
                .order_by(LightingReport.created_at.desc())
                .all()
            )
            return [LightingRecord.model_validate(row) for row in rows]
        finally:
            db.close()
