from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Optional
from datetime import date, datetime
from enum import Enum

from app.schemas.technician import normalize_time


class BlockType(str, Enum):
    PERSONAL = "personal"
    DOCTOR = "doctor"
    FAMILY = "family"
    TRAINING = "training"
    PARTIAL_DAY = "partial_day"
    RECURRING = "recurring"
    GOOGLE_CALENDAR = "google_cal"
    SICK = "sick"
    EMERGENCY = "emergency"


class BlockSource(str, Enum):
    MANUAL = "manual"
    GOOGLE_SYNC = "google_sync"
    SYSTEM = "system"


class AvailabilityBlockCreate(BaseModel):
    """Schema for recording an availability block."""
    contractor_id: str = Field(..., min_length=1)
    tech_id: str = Field(..., min_length=1)
    type: BlockType = BlockType.PERSONAL
    title: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_recurring: bool = False
    recurrence_rule: Optional[str] = Field(None, max_length=200)
    google_event_id: Optional[str] = None
    source: BlockSource = BlockSource.MANUAL
    created_by: Optional[str] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def _normalize(cls, v):
        return normalize_time(v)

    @model_validator(mode="after")
    def _check_range(self):
        if self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class AvailabilityBlockResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    contractor_id: str
    tech_id: str
    type: str
    title: Optional[str] = None
    notes: Optional[str] = None
    start_date: date
    end_date: date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    is_all_day: bool = True
    is_recurring: bool = False
    recurrence_rule: Optional[str] = None
    google_event_id: Optional[str] = None
    source: str = "manual"
    status: str = "active"
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class SickDayRequest(BaseModel):
    contractor_id: str
    tech_id: str
    day: Optional[date] = None
    created_by: Optional[str] = None


class PartialDayRequest(BaseModel):
    contractor_id: str
    tech_id: str
    day: date
    start_time: str
    end_time: str
    reason: Optional[str] = None
    created_by: Optional[str] = None


class RecurringBlockRequest(BaseModel):
    contractor_id: str
    tech_id: str
    day_of_week: str = Field(..., pattern="(?i)^(monday|tuesday|wednesday|thursday|friday|saturday|sunday)$")
    start_time: str
    end_time: str
    title: Optional[str] = None
    created_by: Optional[str] = None


class OverlappingJob(BaseModel):
    job_id: str
    title: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None


class AvailabilityVerdict(BaseModel):
    """Availability of one technician on one date."""
    available: bool
    blocking_reason: Optional[str] = None
    # day_off | time_off | all_day_block | time_window
    blocking_kind: Optional[str] = None
    overlapping_blocks: list[AvailabilityBlockResponse] = Field(default_factory=list)
    overlapping_jobs: list[OverlappingJob] = Field(default_factory=list)
    jobs_on_day: int = 0


class DayAvailability(BaseModel):
    date: date
    day_number: int
    verdict: AvailabilityVerdict


class UnavailableDay(BaseModel):
    date: date
    day_number: int
    reason: Optional[str] = None
    kind: Optional[str] = None


class DayJobConflicts(BaseModel):
    date: date
    day_number: int
    jobs: list[OverlappingJob]


class MemberAvailabilitySummary(BaseModel):
    tech_id: str
    tech_name: str
    unavailable_days: list[UnavailableDay] = Field(default_factory=list)
    conflicts: list[DayJobConflicts] = Field(default_factory=list)
    available_day_count: int = 0
    day_verdicts: list[DayAvailability] = Field(default_factory=list)


class ComprehensiveDay(BaseModel):
    """Day-by-day availability report row."""
    date: date
    day_name: str
    available: bool
    working_hours: Optional[dict[str, str]] = None
    blocks: list[AvailabilityBlockResponse] = Field(default_factory=list)
    job_ids: list[str] = Field(default_factory=list)
    reasons: list[str] = Field(default_factory=list)
