"""
Crew helpers shared by the resolver, scorer, conflict detector and
dispatch service.

Jobs may still carry the legacy single-technician fields instead of a crew
list. legacy_to_crew_format() is applied at every read so the rest of the
engine only ever sees a crew list.
"""
from datetime import date, datetime, timezone
from typing import Iterable, Optional

from app.schemas.job import CrewAssignment, CrewRole, FieldStatus, JobResponse
from app.schemas.technician import CrewMemberResponse
from app.services.day_segmenter import minutes_to_time, time_to_minutes


def create_crew_assignment(
    member: CrewMemberResponse,
    role: CrewRole = CrewRole.HELPER,
    vehicle_id: Optional[str] = None,
    vehicle_name: Optional[str] = None,
) -> CrewAssignment:
    return CrewAssignment(
        tech_id=member.id,
        tech_name=member.name,
        role=role,
        vehicle_id=vehicle_id,
        vehicle_name=vehicle_name,
        color=member.color,
        assigned_at=datetime.now(timezone.utc),
    )


def legacy_to_crew_format(job: JobResponse) -> list[CrewAssignment]:
    """Crew list for a job, translating a legacy single assignment into a one-member crew."""
    if job.assigned_crew:
        return [m for m in job.assigned_crew if m.tech_id]
    if job.assigned_tech_id:
        return [
            CrewAssignment(
                tech_id=job.assigned_tech_id,
                tech_name=job.assigned_tech_name or "Unknown Tech",
                role=CrewRole.LEAD,
                vehicle_id=job.assigned_vehicle_id,
                vehicle_name=job.assigned_vehicle_name,
                assigned_at=job.assigned_at,
            )
        ]
    return []


def get_crew_lead(crew: list[CrewAssignment]) -> Optional[CrewAssignment]:
    if not crew:
        return None
    return next((m for m in crew if m.role == CrewRole.LEAD), crew[0])


def get_crew_size(job: JobResponse) -> int:
    return len(legacy_to_crew_format(job))


def get_assigned_tech_ids(job: JobResponse) -> list[str]:
    return [m.tech_id for m in legacy_to_crew_format(job)]


def is_tech_assigned(job: JobResponse, tech_id: str) -> bool:
    return tech_id in get_assigned_tech_ids(job)


def enforce_single_lead(crew: list[CrewAssignment]) -> list[CrewAssignment]:
    """
    Repair the crew so exactly one member is lead.

    No lead: the first member is promoted. Several: the first lead in input
    order stays, later ones become helpers. Order is preserved.
    """
    if not crew:
        return []
    repaired = [m.model_copy() for m in crew]
    leads = [i for i, m in enumerate(repaired) if m.role == CrewRole.LEAD]
    if not leads:
        repaired[0].role = CrewRole.LEAD
    for i in leads[1:]:
        repaired[i].role = CrewRole.HELPER
    return repaired


def crew_storage_fields(crew: list[CrewAssignment]) -> dict:
    """Column values for persisting a crew, with legacy fields mirrored from the lead."""
    lead = get_crew_lead(crew)
    return {
        "assigned_crew": [m.model_dump(mode="json") for m in crew],
        "crew_size": len(crew),
        "assigned_tech_id": lead.tech_id if lead else None,
        "assigned_tech_name": lead.tech_name if lead else None,
        "assigned_vehicle_id": lead.vehicle_id if lead else None,
        "assigned_vehicle_name": lead.vehicle_name if lead else None,
    }


def job_dates(job: JobResponse) -> list[date]:
    """Calendar dates a job occupies: its segments, else its scheduled start date."""
    if job.multi_day_schedule and job.multi_day_schedule.segments:
        return [s.date for s in job.multi_day_schedule.segments]
    if job.scheduled_start:
        return [job.scheduled_start.date()]
    return []


def job_window_on(job: JobResponse, day: date, default_duration: int = 120) -> tuple[Optional[str], Optional[str]]:
    """(start, end) HH:MM of a job's work on `day`; (None, None) when unknown."""
    if job.multi_day_schedule:
        for segment in job.multi_day_schedule.segments:
            if segment.date == day:
                return segment.start_time, segment.end_time
    if job.scheduled_start and job.scheduled_start.date() == day:
        start = job.scheduled_start.hour * 60 + job.scheduled_start.minute
        duration = job.estimated_duration_minutes or default_duration
        return minutes_to_time(start), minutes_to_time(min(start + duration, 24 * 60))
    return None, None


def windows_overlap(
    start_a: Optional[str], end_a: Optional[str], start_b: Optional[str], end_b: Optional[str]
) -> bool:
    """Two HH:MM ranges overlap unless one ends at or before the other starts. Open ranges always overlap."""
    if not (start_a and end_a and start_b and end_b):
        return True
    a0, a1 = time_to_minutes(start_a), time_to_minutes(end_a)
    b0, b1 = time_to_minutes(start_b), time_to_minutes(end_b)
    return not (a1 <= b0 or b1 <= a0)


def jobs_for_tech_on_date(
    jobs: Iterable[JobResponse],
    tech_id: str,
    day: date,
    exclude_job_id: Optional[str] = None,
) -> list[JobResponse]:
    """Non-cancelled jobs with `tech_id` on their crew that occupy `day`."""
    return [
        job
        for job in jobs
        if job.id != exclude_job_id
        and job.field_status != FieldStatus.CANCELLED
        and day in job_dates(job)
        and is_tech_assigned(job, tech_id)
    ]
