from app.schemas.technician import (
    WorkingDay,
    TimeOffEntry,
    CrewMemberCreate,
    CrewMemberResponse,
    CrewMemberListResponse,
)
from app.schemas.job import (
    CrewRole,
    FieldStatus,
    CrewAssignment,
    DaySegment,
    MultiDaySchedule,
    LiveETA,
    JobCreate,
    JobResponse,
)
from app.schemas.availability import (
    BlockType,
    AvailabilityBlockCreate,
    AvailabilityBlockResponse,
    AvailabilityVerdict,
    MemberAvailabilitySummary,
)
from app.schemas.dispatch import (
    ConflictFinding,
    ConflictReport,
    CrewSuggestion,
    CrewCommitResult,
)
from app.schemas.gps_tracking import (
    LocationSample,
    GeofenceCheck,
    GeofenceSignal,
    TrackingResult,
)

__all__ = [
    "WorkingDay",
    "TimeOffEntry",
    "CrewMemberCreate",
    "CrewMemberResponse",
    "CrewMemberListResponse",
    "CrewRole",
    "FieldStatus",
    "CrewAssignment",
    "DaySegment",
    "MultiDaySchedule",
    "LiveETA",
    "JobCreate",
    "JobResponse",
    "BlockType",
    "AvailabilityBlockCreate",
    "AvailabilityBlockResponse",
    "AvailabilityVerdict",
    "MemberAvailabilitySummary",
    "ConflictFinding",
    "ConflictReport",
    "CrewSuggestion",
    "CrewCommitResult",
    "LocationSample",
    "GeofenceCheck",
    "GeofenceSignal",
    "TrackingResult",
]
