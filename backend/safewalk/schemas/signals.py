from datetime import datetime

from pydantic import BaseModel


class IncidentRecord(BaseModel):
    id: int
    title: str = ""
    category: str = "other"
    severity: str = "moderate"  # fine, moderate, dangerous
    verifications: int = 0
    status: str = "active"  # active, resolved, false_report
    latitude: float
    longitude: float
    created_at: datetime

    model_config = {"from_attributes": True}


class LightingRecord(BaseModel):
    id: int
    latitude: float
    longitude: float
    lux_estimate: float | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TrafficSignal(BaseModel):
    current_speed: float  # km/h
    free_flow_speed: float | None = None  # km/h

    @property
    def speed_ratio(self) -> float:
        free_flow = self.free_flow_speed or self.current_speed
        if not free_flow or free_flow <= 0:
            return 1.0
        return self.current_speed / free_flow


class WeatherSignal(BaseModel):
    condition_code: int | None = None  # OpenWeatherMap condition id
    temperature: float | None = None  # deg C
    precipitation_probability: float | None = None  # 0-1
    wind_speed: float | None = None  # m/s
    condition_text: str | None = None


class SignalSnapshot(BaseModel):
    incidents: list[IncidentRecord] = []
    lighting: list[LightingRecord] = []
