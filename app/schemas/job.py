from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Optional
from datetime import date, datetime
from enum import Enum

from app.schemas.technician import WorkingDay


class CrewRole(str, Enum):
    LEAD = "lead"
    HELPER = "helper"
    APPRENTICE = "apprentice"
    SPECIALIST = "specialist"


class FieldStatus(str, Enum):
    """Field execution lifecycle of a job."""
    SCHEDULED = "scheduled"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"
    WORKING = "working"
    PAUSED = "paused"
    WRAPPING_UP = "wrapping_up"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


ACTIVE_FIELD_STATUSES = (
    FieldStatus.EN_ROUTE,
    FieldStatus.ARRIVED,
    FieldStatus.WORKING,
    FieldStatus.PAUSED,
    FieldStatus.WRAPPING_UP,
)


class CrewAssignment(BaseModel):
    """One technician on a job's crew."""
    tech_id: str = Field(..., min_length=1)
    tech_name: str = "Unknown Tech"
    role: CrewRole = CrewRole.HELPER
    vehicle_id: Optional[str] = None
    vehicle_name: Optional[str] = None
    color: str = "#64748B"
    assigned_at: Optional[datetime] = None

    @field_validator("tech_name", "role", "color", mode="before")
    @classmethod
    def _fill_blank(cls, v, info):
        if v:
            return v
        return {"tech_name": "Unknown Tech", "role": CrewRole.HELPER, "color": "#64748B"}[info.field_name]


class DaySegment(BaseModel):
    """One calendar day of work within a job."""
    date: date
    day_number: int
    start_time: str
    start_hour: int
    end_time: str
    duration_minutes: int
    is_complete: bool = False


class MultiDaySchedule(BaseModel):
    is_multi_day: bool
    total_days: int
    total_duration_minutes: int
    start_date: date
    end_date: date
    segments: list[DaySegment]
    truncated: bool = False
    warnings: list[str] = Field(default_factory=list)


class LiveETA(BaseModel):
    eta_minutes: int
    eta_time: datetime
    distance_miles: float
    has_traffic_data: bool = False
    calculated_at: datetime


class JobBase(BaseModel):
    contractor_id: str = Field(..., min_length=1, max_length=36)
    title: Optional[str] = Field(None, max_length=255)
    category: Optional[str] = Field(None, max_length=100)
    complexity: Optional[str] = Field(None, pattern="^(simple|moderate|complex|major)$")
    notes: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    scheduled_start: Optional[datetime] = None
    required_crew_size: Optional[int] = Field(None, ge=1)
    preferred_tech_id: Optional[str] = None
    site_latitude: Optional[float] = Field(None, ge=-90, le=90)
    site_longitude: Optional[float] = Field(None, ge=-180, le=180)


class JobCreate(JobBase):
    """Schema for recording a quoted/accepted job."""
    id: Optional[str] = Field(None, max_length=36)
    # Legacy single-technician assignment
    assigned_tech_id: Optional[str] = None
    assigned_tech_name: Optional[str] = None


class JobResponse(JobBase):
    """Job snapshot; also the input type of the pure scheduling services."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    multi_day_schedule: Optional[MultiDaySchedule] = None
    assigned_crew: Optional[list[CrewAssignment]] = None
    crew_size: Optional[int] = 0
    assigned_by: Optional[str] = None
    assigned_at: Optional[datetime] = None
    assigned_tech_id: Optional[str] = None
    assigned_tech_name: Optional[str] = None
    assigned_vehicle_id: Optional[str] = None
    assigned_vehicle_name: Optional[str] = None
    field_status: FieldStatus = FieldStatus.SCHEDULED
    field_status_history: Optional[dict[str, Any]] = None
    live_eta: Optional[LiveETA] = None
    en_route_at: Optional[datetime] = None
    arrived_at: Optional[datetime] = None
    work_started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ScheduleRequest(BaseModel):
    """(Re)schedule a job; segments are recomputed from these inputs."""
    scheduled_start: Optional[datetime] = None
    estimated_duration_minutes: Optional[int] = None
    working_hours: Optional[dict[str, WorkingDay]] = None
    minutes_per_day: Optional[int] = Field(None, ge=1, le=1440)
    expected_version: Optional[int] = None


class CrewCommitRequest(BaseModel):
    crew: list[CrewAssignment]
    expected_version: Optional[int] = None
    assigned_by: str = "manual"


class CrewMemberAddRequest(BaseModel):
    tech_id: str
    role: CrewRole = CrewRole.HELPER
    vehicle_id: Optional[str] = None
    vehicle_name: Optional[str] = None
    expected_version: Optional[int] = None


class CrewRoleUpdateRequest(BaseModel):
    role: CrewRole
    expected_version: Optional[int] = None


class StatusTransitionRequest(BaseModel):
    tech_id: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    notes: str = ""
    expected_version: Optional[int] = None


class StatusTransition(BaseModel):
    from_status: FieldStatus
    to_status: FieldStatus
    at: datetime
    automatic: bool = False
    location: Optional[dict[str, float]] = None
    notes: str = ""


class SegmentLookup(BaseModel):
    is_in_schedule: bool
    segment: Optional[DaySegment] = None
    day_number: Optional[int] = None
    label: str = ""
    display: str = ""


class ScheduleSummary(BaseModel):
    """Calendar view of a job's schedule"""
    job_id: str
    is_multi_day: bool = False
    total_days: int = 0
    days_needed: int
    dates: list[date] = Field(default_factory=list)
    summary: str = ""
    crew_size: int = 0
