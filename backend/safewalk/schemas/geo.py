from pydantic import BaseModel, Field


class GeoPoint(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class BoundingBox(BaseModel):
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            latitude=(self.min_lat + self.max_lat) / 2,
            longitude=(self.min_lon + self.max_lon) / 2,
        )


class RouteCandidate(BaseModel):
    points: list[GeoPoint] = []
    distance_meters: float = 0.0
    travel_time_seconds: float = 0.0

    @property
    def midpoint(self) -> GeoPoint | None:
        if not self.points:
            return None
        return self.points[len(self.points) // 2]
