from sqlalchemy import Column, DateTime, Float, Integer, String, Text
from sqlalchemy.sql import func

from safewalk.database import Base


class IncidentReport(Base):
    __tablename__ = "incident_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    category = Column(String(40), nullable=False)  # accident, riot, pothole, flooding, structural_damage, debris, other
    severity = Column(String(20), nullable=False, default="moderate")  # fine, moderate, dangerous
    verifications = Column(Integer, nullable=False, default=0)
    status = Column(String(20), nullable=False, default="active", index=True)  # active, resolved, false_report
    latitude = Column(Float, nullable=False, index=True)
    longitude = Column(Float, nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class LightingReport(Base):
    __tablename__ = "lighting_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    latitude = Column(Float, nullable=False, index=True)
    longitude = Column(Float, nullable=False, index=True)
    lux_estimate = Column(Float)  # device sensor or derived; may be missing
    notes = Column(Text)
    created_at = Column(DateTime, nullable=False, server_default=func.now(), index=True)
