from fastapi import APIRouter, Query, status
from datetime import date
from typing import Optional
import logging

from app.api.deps import Config, DbSession
from app.exceptions import ValidationError
from app.schemas.availability import AvailabilityVerdict, ComprehensiveDay
from app.schemas.technician import CrewMemberCreate, CrewMemberListResponse, CrewMemberResponse
from app.services.availability_service import AvailabilityResolver
from app.services.job_store import AvailabilityBlockStore, CrewDirectory, JobStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=CrewMemberResponse, status_code=status.HTTP_201_CREATED)
async def create_crew_member(data: CrewMemberCreate, db: DbSession):
    """Add a crew member to the directory."""
    return await CrewDirectory(db).create(data)


@router.get("", response_model=CrewMemberListResponse)
async def list_crew(
    db: DbSession,
    contractor_id: str = Query(..., min_length=1),
    active_only: bool = False,
):
    items = await CrewDirectory(db).list(contractor_id, active_only)
    return CrewMemberListResponse(items=items, total=len(items))


@router.get("/{tech_id}", response_model=CrewMemberResponse)
async def get_crew_member(tech_id: str, db: DbSession):
    return await CrewDirectory(db).get(tech_id)


@router.get("/{tech_id}/availability", response_model=AvailabilityVerdict)
async def check_availability(
    tech_id: str,
    db: DbSession,
    config: Config,
    day: date = Query(..., alias="date"),
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
):
    """Availability verdict for one date, optionally for a time window."""
    member = await CrewDirectory(db).get(tech_id)
    blocks = await AvailabilityBlockStore(db, config).list_active(member.contractor_id, tech_id)
    jobs = await JobStore(db).list_for_tech(member.contractor_id, tech_id)
    return AvailabilityResolver(config).check_availability(member, day, blocks, jobs, start_time, end_time)


@router.get("/{tech_id}/availability/range", response_model=list[ComprehensiveDay])
async def availability_range(
    tech_id: str,
    db: DbSession,
    config: Config,
    start_date: date,
    end_date: date,
):
    """Day-by-day availability report."""
    if end_date < start_date:
        raise ValidationError("end_date must not be before start_date")
    member = await CrewDirectory(db).get(tech_id)
    blocks = await AvailabilityBlockStore(db, config).list_active(member.contractor_id, tech_id)
    jobs = await JobStore(db).list_for_tech(member.contractor_id, tech_id)
    return AvailabilityResolver(config).get_comprehensive_availability(member, start_date, end_date, blocks, jobs)
