from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional
from datetime import date, datetime

from app.core.dispatch_config import WEEKDAYS


def normalize_time(value: Optional[str]) -> Optional[str]:
    """Normalize "8:0" / "08:00" / "8" to zero-padded HH:MM."""
    if value is None or value == "":
        return None
    parts = str(value).split(":")
    try:
        hours = int(parts[0])
        minutes = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except ValueError:
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    if not (0 <= hours <= 24 and 0 <= minutes < 60) or (hours == 24 and minutes):
        raise ValueError(f"Invalid time '{value}', expected HH:MM")
    return f"{hours:02d}:{minutes:02d}"


class WorkingDay(BaseModel):
    """One weekday of a technician's standing hours."""
    enabled: bool = True
    start: Optional[str] = None
    end: Optional[str] = None

    @field_validator("start", "end", mode="before")
    @classmethod
    def _normalize(cls, v):
        return normalize_time(v)


def default_working_hours() -> dict[str, WorkingDay]:
    """Monday-Friday 08:00-17:00, weekends off."""
    return {
        day: WorkingDay(enabled=day not in ("saturday", "sunday"), start="08:00", end="17:00")
        for day in WEEKDAYS
    }


class TimeOffEntry(BaseModel):
    start_date: date
    end_date: Optional[date] = None
    type: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= (self.end_date or self.start_date)


class CrewMemberBase(BaseModel):
    """Base crew member schema."""
    contractor_id: str = Field(..., max_length=36)
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, max_length=20)
    color: str = Field(default="#64748B", max_length=7)
    is_active: bool = True

    working_hours: dict[str, WorkingDay] = Field(default_factory=default_working_hours)
    skills: list[str] = Field(default_factory=list)
    max_jobs_per_day: int = Field(default=4, ge=1)
    seniority_level: str = "technician"
    time_off: list[TimeOffEntry] = Field(default_factory=list)

    @field_validator("working_hours", mode="before")
    @classmethod
    def _lowercase_weekdays(cls, v):
        """An empty profile gets standard hours; weekdays absent from a partial one are off."""
        if not v:
            return default_working_hours()
        hours = {str(k).lower(): val for k, val in v.items()}
        for day in WEEKDAYS:
            hours.setdefault(day, WorkingDay(enabled=False))
        return hours

    @field_validator("skills", "time_off", mode="before")
    @classmethod
    def _none_to_list(cls, v):
        return v or []

    @field_validator("max_jobs_per_day", mode="before")
    @classmethod
    def _default_capacity(cls, v):
        return v or 4

    def hours_for(self, day: date) -> Optional[WorkingDay]:
        """Working-hours entry for the weekday of `day`, None when missing."""
        return self.working_hours.get(WEEKDAYS[day.weekday()])

    def works_on(self, day: date) -> bool:
        """A disabled weekday entry counts as a day off."""
        hours = self.hours_for(day)
        return bool(hours and hours.enabled)

    def time_off_on(self, day: date) -> Optional[TimeOffEntry]:
        for entry in self.time_off:
            if entry.covers(day):
                return entry
        return None


class CrewMemberCreate(CrewMemberBase):
    """Schema for adding a crew member to the directory."""
    id: Optional[str] = Field(None, max_length=36)


class CrewMemberResponse(CrewMemberBase):
    """Crew member as read from the directory."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CrewMemberListResponse(BaseModel):
    items: list[CrewMemberResponse]
    total: int
