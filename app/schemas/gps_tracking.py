"""
GPS Tracking Schemas
Pydantic models for location samples, geofence signals and tracking results
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import Literal, Optional
from datetime import datetime
from enum import Enum

from app.schemas.job import FieldStatus, LiveETA


class GeofenceZone(str, Enum):
    at_site = "at_site"
    near_site = "near_site"
    approaching = "approaching"
    away = "away"


class GeofenceAdvisory(str, Enum):
    almost_there = "almost_there"
    left_site = "left_site"


class TrackingOutcome(str, Enum):
    accepted = "accepted"
    stale = "stale"


# ==================== Location Samples ====================


class LocationSample(BaseModel):
    """Incoming GPS sample from a crew member's device"""

    tech_id: str = Field(..., min_length=1)
    contractor_id: str = Field(..., min_length=1)
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(None, ge=0, description="GPS accuracy in meters")
    heading: Optional[float] = Field(None, ge=0, le=360, description="Compass heading")
    speed: Optional[float] = Field(None, ge=0, description="Speed in mph")
    timestamp: datetime
    job_id: Optional[str] = None


class TechnicianLocationResponse(BaseModel):
    """Latest authoritative location for a technician"""

    technician_id: str
    contractor_id: str
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    is_online: bool = True
    current_job_id: Optional[str] = None
    captured_at: datetime
    received_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# ==================== Geofence ====================


class GeofenceCheck(BaseModel):
    """Distance of a point from a site, classified against the radii"""

    distance_meters: float
    distance_miles: float
    zone: GeofenceZone
    within_arrival: bool
    within_departure: bool
    within_nearby: bool


class GeofenceSignal(BaseModel):
    """What the state machine should do with one sample"""

    auto_transition: Optional[FieldStatus] = None
    advisory: Optional[GeofenceAdvisory] = None
    message: Optional[str] = None
    distance_meters: Optional[float] = None


class TrackingResult(BaseModel):
    """Outcome of processing one location sample"""

    outcome: TrackingOutcome
    tech_id: str
    timestamp: datetime
    job_id: Optional[str] = None
    field_status: Optional[FieldStatus] = None
    signal: Optional[GeofenceSignal] = None
    live_eta: Optional[LiveETA] = None


class TrackingSessionStatus(BaseModel):
    tech_id: str
    contractor_id: str
    active: bool
    paused: bool
    pause_reason: Optional[str] = None
    message: Optional[str] = None
    samples_submitted: int = 0
    samples_accepted: int = 0
    samples_stale: int = 0


class TrackingSessionStart(BaseModel):
    contractor_id: str = Field(..., min_length=1)


class GeolocationErrorReport(BaseModel):
    """Failure reported by the device instead of a fix"""

    reason: Literal["permission_denied", "position_unavailable", "timeout"]
