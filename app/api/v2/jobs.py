"""
Jobs API - scheduling, crew assignment and field status.
"""

from fastapi import APIRouter, Query, status
from datetime import date
from typing import Optional
import logging

from app.api.deps import Config, DbSession, Dispatch
from app.exceptions import ValidationError
from app.schemas.availability import MemberAvailabilitySummary
from app.schemas.dispatch import (
    ConflictReport,
    CrewCheckRequest,
    CrewCommitResult,
    CrewSizeValidation,
    CrewSuggestion,
)
from app.schemas.job import (
    CrewCommitRequest,
    CrewMemberAddRequest,
    CrewRoleUpdateRequest,
    JobCreate,
    JobResponse,
    ScheduleRequest,
    ScheduleSummary,
    SegmentLookup,
    StatusTransitionRequest,
)
from app.services.conflict_detector import validate_crew_size
from app.services.crew_utils import get_crew_size, legacy_to_crew_format
from app.services.day_segmenter import get_multi_day_dates, get_multi_day_summary, get_segment_for_date
from app.services.field_status import ACTIONS
from app.services.job_store import JobStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def create_job(data: JobCreate, db: DbSession):
    """Record a quoted/accepted job."""
    return await JobStore(db).create(data)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    db: DbSession,
    contractor_id: str = Query(..., min_length=1),
    include_cancelled: bool = True,
):
    return await JobStore(db).list_for_contractor(contractor_id, include_cancelled)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, db: DbSession):
    return await JobStore(db).get(job_id)


@router.put("/{job_id}/schedule", response_model=JobResponse)
async def schedule_job(job_id: str, request: ScheduleRequest, dispatch: Dispatch):
    """Recompute day segments from start, duration and working hours."""
    return await dispatch.schedule_job(job_id, request)


@router.get("/{job_id}/schedule", response_model=ScheduleSummary)
async def get_schedule_summary(job_id: str, dispatch: Dispatch):
    """Dates, day count and summary text for calendar views."""
    job = await dispatch.jobs.get(job_id)
    schedule = job.multi_day_schedule
    return ScheduleSummary(
        job_id=job.id,
        is_multi_day=bool(schedule and schedule.is_multi_day),
        total_days=schedule.total_days if schedule else 0,
        days_needed=dispatch.segmenter.calculate_days_needed(job.estimated_duration_minutes),
        dates=get_multi_day_dates(schedule),
        summary=get_multi_day_summary(schedule),
        crew_size=get_crew_size(job),
    )


@router.get("/{job_id}/segments/{day}", response_model=SegmentLookup)
async def get_segment(job_id: str, day: date, db: DbSession):
    job = await JobStore(db).get(job_id)
    return get_segment_for_date(day, job.multi_day_schedule)


@router.get("/{job_id}/suggest-crew", response_model=CrewSuggestion)
async def suggest_crew(job_id: str, dispatch: Dispatch, target_date: Optional[date] = Query(None, alias="date")):
    """Ranked crew suggestion. Never fails for an empty candidate pool."""
    return await dispatch.suggest_crew(job_id, target_date)


@router.post("/{job_id}/crew/check", response_model=ConflictReport)
async def check_crew(job_id: str, request: CrewCheckRequest, dispatch: Dispatch):
    """Conflict report for a proposed crew without committing it."""
    return await dispatch.check_conflicts(job_id, request.crew)


@router.put("/{job_id}/crew", response_model=CrewCommitResult)
async def commit_crew(job_id: str, request: CrewCommitRequest, dispatch: Dispatch):
    return await dispatch.commit_crew(job_id, request)


@router.post("/{job_id}/crew/members", response_model=CrewCommitResult)
async def add_crew_member(job_id: str, request: CrewMemberAddRequest, dispatch: Dispatch):
    return await dispatch.add_crew_member(job_id, request)


@router.delete("/{job_id}/crew/members/{tech_id}", response_model=JobResponse)
async def remove_crew_member(
    job_id: str,
    tech_id: str,
    dispatch: Dispatch,
    expected_version: Optional[int] = None,
):
    return await dispatch.remove_crew_member(job_id, tech_id, expected_version)


@router.patch("/{job_id}/crew/members/{tech_id}", response_model=JobResponse)
async def update_crew_role(job_id: str, tech_id: str, request: CrewRoleUpdateRequest, dispatch: Dispatch):
    return await dispatch.update_crew_role(job_id, tech_id, request.role, request.expected_version)


@router.get("/{job_id}/crew/validation", response_model=CrewSizeValidation)
async def validate_crew(job_id: str, dispatch: Dispatch):
    job = await dispatch.jobs.get(job_id)
    return validate_crew_size(
        get_crew_size(job),
        dispatch.detector.required_crew_size(job),
        dispatch.detector.maximum_crew_size(job),
    )


@router.get("/{job_id}/crew/availability", response_model=list[MemberAvailabilitySummary])
async def crew_availability(job_id: str, dispatch: Dispatch):
    """Availability of the assigned crew across every day of the job."""
    job = await dispatch.jobs.get(job_id)
    crew_ids = {m.tech_id for m in legacy_to_crew_format(job)}
    members = [m for m in await dispatch.directory.list(job.contractor_id) if m.id in crew_ids]
    return dispatch.resolver.resolve_crew(
        members,
        dispatch.segments_for_job(job),
        await dispatch.blocks.list_active(job.contractor_id),
        await dispatch.jobs.list_for_contractor(job.contractor_id, include_cancelled=False),
        exclude_job_id=job.id,
    )


@router.post("/{job_id}/status/{action}", response_model=JobResponse)
async def transition_status(
    job_id: str,
    action: str,
    dispatch: Dispatch,
    request: Optional[StatusTransitionRequest] = None,
):
    """Explicit field status action (start_en_route, mark_arrived, ...)."""
    if action not in ACTIONS:
        raise ValidationError(
            f"Unknown action '{action}'",
            errors=[{"field": "action", "message": f"Expected one of: {', '.join(ACTIONS)}"}],
        )
    return await dispatch.transition_status(job_id, action, request or StatusTransitionRequest())


@router.get("/{job_id}/status/display")
async def status_display(job_id: str, db: DbSession, config: Config):
    job = await JobStore(db).get(job_id)
    display = config.status_display[job.field_status.value]
    return {"status": job.field_status.value, "label": display.label, "color": display.color, "icon": display.icon}
