from datetime import datetime

from pydantic import BaseModel


class RecentIncident(BaseModel):
    title: str
    severity: str
    category: str
    verifications: int = 0


class IncidentDetails(BaseModel):
    count: int = 0
    breakdown: dict[str, int] = {}
    recent_incidents: list[RecentIncident] = []


class IncidentScore(BaseModel):
    score: int  # 0-100, higher is safer
    details: IncidentDetails


class LightingDetails(BaseModel):
    reports_count: int = 0
    avg_lux: int | None = None
    time_of_day: str
    description: str


class LightingScore(BaseModel):
    score: int
    weight: float
    details: LightingDetails


class CongestionDetails(BaseModel):
    current_speed: int | None = None
    free_flow_speed: int | None = None
    congestion_level: str = "unknown"  # free_flow, light, moderate, heavy, severe, unknown
    description: str = ""


class CongestionScore(BaseModel):
    score: int
    details: CongestionDetails


class WalkabilityDetails(BaseModel):
    factors: list[str] = []


class WalkabilityScore(BaseModel):
    score: int
    details: WalkabilityDetails


class ComponentWeights(BaseModel):
    incident: float
    lighting: float
    congestion: float
    walkability: float

    @property
    def total(self) -> float:
        return self.incident + self.lighting + self.congestion + self.walkability


class SafetyComponents(BaseModel):
    incidents: IncidentScore
    lighting: LightingScore
    congestion: CongestionScore
    walkability: WalkabilityScore


class AssessmentMetadata(BaseModel):
    time_of_day: str
    is_dark_hours: bool
    lighting_weight: float
    calculated_at: datetime
    degraded_signals: list[str] = []


class SafetyAssessment(BaseModel):
    overall_score: int
    safety_level: str  # excellent, good, moderate, poor, dangerous
    safety_color: str
    components: SafetyComponents
    weights: ComponentWeights
    metadata: AssessmentMetadata
