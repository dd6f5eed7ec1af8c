"""
Dispatch configuration registry.

Everything the scheduling and dispatch engine treats as a constant lives here:
geofence radii, ETA speed, crew role definitions, field-status display
metadata, job complexity table, category -> skills map, seniority ladder and
availability block titles.

The registry is built once at startup from Settings and injected into the
engine components, so tests can build their own with different numbers.

Usage:
    from app.core.dispatch_config import build_dispatch_config

    config = build_dispatch_config(settings)
    segmenter = DaySegmenter(config)
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional

from app.config import Settings


@dataclass(frozen=True)
class GeofenceRadius:
    """Geofence thresholds in meters (ARRIVAL < DEPARTURE < NEARBY)."""
    arrival: float = 100
    departure: float = 200
    nearby: float = 500

    def __post_init__(self):
        if not (self.arrival < self.departure < self.nearby):
            raise ValueError("Geofence radii must satisfy arrival < departure < nearby")


@dataclass(frozen=True)
class UpdateIntervals:
    """Target seconds between location samples for the upstream source."""
    en_route: int = 30
    working: int = 300
    idle: int = 600


@dataclass(frozen=True)
class CrewRoleDefinition:
    id: str
    label: str
    description: str
    color: str


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str
    icon: str


@dataclass(frozen=True)
class ComplexityLevel:
    id: str
    label: str
    suggested_crew: int
    max_crew: int
    min_duration_minutes: int


CREW_ROLES = (
    CrewRoleDefinition("lead", "Lead Tech", "Primary technician, customer contact", "#10B981"),
    CrewRoleDefinition("helper", "Helper", "Assists the lead technician", "#3B82F6"),
    CrewRoleDefinition("apprentice", "Apprentice", "Learning, supervised work", "#8B5CF6"),
    CrewRoleDefinition("specialist", "Specialist", "Specific skill needed for job", "#F59E0B"),
)

STATUS_DISPLAY = {
    "scheduled": StatusDisplay("Scheduled", "#64748B", "Calendar"),
    "en_route": StatusDisplay("En Route", "#3B82F6", "Navigation"),
    "arrived": StatusDisplay("Arrived", "#8B5CF6", "MapPin"),
    "working": StatusDisplay("Working", "#F59E0B", "Wrench"),
    "paused": StatusDisplay("Paused", "#6B7280", "Pause"),
    "wrapping_up": StatusDisplay("Wrapping Up", "#10B981", "ClipboardCheck"),
    "completed": StatusDisplay("Completed", "#10B981", "CheckCircle"),
    "cancelled": StatusDisplay("Cancelled", "#EF4444", "XCircle"),
}

# Ordered by increasing duration threshold
JOB_COMPLEXITY = (
    ComplexityLevel("simple", "Simple", 1, 2, 0),
    ComplexityLevel("moderate", "Moderate", 1, 3, 120),
    ComplexityLevel("complex", "Complex", 2, 4, 240),
    ComplexityLevel("major", "Major Project", 3, 6, 480),
)

CATEGORY_SKILLS = {
    "HVAC": ("HVAC", "Heating", "Cooling", "Refrigeration"),
    "Plumbing": ("Plumbing", "Drain Cleaning", "Water Heater"),
    "Electrical": ("Electrical", "Wiring"),
    "Appliance": ("Appliance Repair", "Diagnostics"),
    "General": (),
}

# Lowest to highest
SENIORITY_LEVELS = ("apprentice", "junior", "technician", "senior", "lead", "master")

BLOCK_TYPE_TITLES = {
    "personal": "Personal Time",
    "doctor": "Medical Appointment",
    "family": "Family Obligation",
    "training": "Training/Meeting",
    "partial_day": "Partial Availability",
    "recurring": "Recurring Block",
    "google_cal": "Calendar Event",
    "sick": "Sick Day",
    "emergency": "Emergency",
}

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


@dataclass(frozen=True)
class DispatchConfig:
    """Immutable engine configuration."""

    radius: GeofenceRadius = field(default_factory=GeofenceRadius)
    intervals: UpdateIntervals = field(default_factory=UpdateIntervals)
    assumed_speed_mph: float = 25
    earth_radius_meters: float = 6371e3
    meters_per_mile: float = 1609.34

    default_minutes_per_day: int = 480
    default_day_start: str = "08:00"
    default_day_end: str = "17:00"
    segment_safety_limit_days: int = 30

    default_max_jobs_per_day: int = 4
    default_job_duration_minutes: int = 120
    cas_max_retries: int = 3

    # Scorer weights
    skill_match_points: float = 50
    seniority_points: float = 20
    load_balance_points: float = 30
    preferred_tech_points: float = 40
    alternatives_count: int = 3
    senior_threshold: str = "senior"

    crew_roles: tuple = CREW_ROLES
    status_display: Mapping[str, StatusDisplay] = field(
        default_factory=lambda: MappingProxyType(dict(STATUS_DISPLAY))
    )
    complexity_levels: tuple = JOB_COMPLEXITY
    category_skills: Mapping[str, tuple] = field(
        default_factory=lambda: MappingProxyType(dict(CATEGORY_SKILLS))
    )
    seniority_levels: tuple = SENIORITY_LEVELS
    block_type_titles: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType(dict(BLOCK_TYPE_TITLES))
    )

    def complexity(self, level_id: str) -> Optional[ComplexityLevel]:
        for level in self.complexity_levels:
            if level.id == level_id:
                return level
        return None

    def seniority_rank(self, level: Optional[str]) -> int:
        """Rank on the seniority ladder, -1 for unknown levels."""
        if not level:
            return -1
        try:
            return self.seniority_levels.index(level.lower())
        except ValueError:
            return -1

    def is_senior(self, level: Optional[str]) -> bool:
        return self.seniority_rank(level) >= self.seniority_rank(self.senior_threshold)

    def default_block_title(self, block_type: Optional[str]) -> str:
        return self.block_type_titles.get(block_type or "", "Unavailable")


def build_dispatch_config(settings: Settings) -> DispatchConfig:
    """Build the engine registry from environment settings."""
    return DispatchConfig(
        radius=GeofenceRadius(
            arrival=settings.DISPATCH_ARRIVAL_RADIUS_METERS,
            departure=settings.DISPATCH_DEPARTURE_RADIUS_METERS,
            nearby=settings.DISPATCH_NEARBY_RADIUS_METERS,
        ),
        intervals=UpdateIntervals(
            en_route=settings.DISPATCH_UPDATE_INTERVAL_EN_ROUTE_SECONDS,
            working=settings.DISPATCH_UPDATE_INTERVAL_WORKING_SECONDS,
            idle=settings.DISPATCH_UPDATE_INTERVAL_IDLE_SECONDS,
        ),
        assumed_speed_mph=settings.DISPATCH_ASSUMED_SPEED_MPH,
        default_minutes_per_day=settings.DISPATCH_DEFAULT_MINUTES_PER_DAY,
        segment_safety_limit_days=settings.DISPATCH_SEGMENT_SAFETY_LIMIT_DAYS,
        default_max_jobs_per_day=settings.DISPATCH_DEFAULT_MAX_JOBS_PER_DAY,
        default_job_duration_minutes=settings.DISPATCH_DEFAULT_JOB_DURATION_MINUTES,
        cas_max_retries=settings.DISPATCH_CAS_MAX_RETRIES,
    )
