from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from safewalk.schemas.geo import GeoPoint, RouteCandidate
from safewalk.schemas.safety import SafetyAssessment

RoutePreference = Literal["safest", "fastest", "balanced"]


class PointOfInterest(BaseModel):
    name: str
    category: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class StopSuggestion(BaseModel):
    name: str
    description: str = ""
    type: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class RouteSuggestions(BaseModel):
    suggestions: list[StopSuggestion] = []
    commentary: str = ""


class RankedRoute(BaseModel):
    id: str
    route: RouteCandidate
    assessment: SafetyAssessment
    suggestions: list[StopSuggestion] | None = None
    commentary: str = ""


class RankRoutesRequest(BaseModel):
    origin: GeoPoint
    destination: GeoPoint
    preference: RoutePreference = "safest"
    purpose: str | None = Field(default=None, max_length=200)
    as_of: datetime | None = None


class RankRoutesResponse(BaseModel):
    preference: RoutePreference
    routes: list[RankedRoute]
