from datetime import datetime

from pydantic import BaseModel

from safewalk.schemas.geo import GeoPoint


class TimeSeriesPoint(BaseModel):
    offset_minutes: int
    score: int  # 0-100, higher is safer


class ForecastSignals(BaseModel):
    incidents_count: int = 0
    incidents_by_hour: list[int] = []
    congestion: int = 0  # 0-100, higher is more congested
    weather_penalty: float = 0.0


class RiskForecast(BaseModel):
    prediction_timestamp: datetime
    now: int
    in_30_min: int
    after_22: int
    time_series: list[TimeSeriesPoint]
    explanation: str
    raw_signals: ForecastSignals | None = None
    is_fallback: bool = False


class ForecastRequest(BaseModel):
    points: list[GeoPoint] = []
    point: GeoPoint | None = None
    as_of: datetime | None = None

    def sample_source(self) -> list[GeoPoint]:
        if self.points:
            return self.points
        return [self.point] if self.point else []
