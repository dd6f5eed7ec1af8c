"""
Availability blocks API - one-off, partial-day and weekly recurring
unavailability for crew members.
"""

from fastapi import APIRouter, Query, status
from datetime import date
from typing import Optional
import logging

from app.api.deps import Config, DbSession
from app.schemas.availability import (
    AvailabilityBlockCreate,
    AvailabilityBlockResponse,
    PartialDayRequest,
    RecurringBlockRequest,
    SickDayRequest,
)
from app.services.availability_service import AvailabilityResolver
from app.services.job_store import AvailabilityBlockStore

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=AvailabilityBlockResponse, status_code=status.HTTP_201_CREATED)
async def create_block(data: AvailabilityBlockCreate, db: DbSession, config: Config):
    return await AvailabilityBlockStore(db, config).create(data)


@router.get("", response_model=list[AvailabilityBlockResponse])
async def list_blocks(
    db: DbSession,
    config: Config,
    contractor_id: str = Query(..., min_length=1),
    tech_id: Optional[str] = None,
):
    """Active blocks for a contractor, optionally for one tech."""
    return await AvailabilityBlockStore(db, config).list_active(contractor_id, tech_id)


@router.get("/on-date", response_model=list[AvailabilityBlockResponse])
async def blocks_on_date(
    db: DbSession,
    config: Config,
    contractor_id: str,
    tech_id: str,
    day: date = Query(..., alias="date"),
):
    """Blocks covering a date, weekly recurring matches included."""
    blocks = await AvailabilityBlockStore(db, config).list_active(contractor_id, tech_id)
    return AvailabilityResolver(config).get_blocks_for_tech_on_date(blocks, tech_id, day)


@router.delete("/{block_id}", response_model=AvailabilityBlockResponse)
async def cancel_block(block_id: str, db: DbSession, config: Config):
    """Soft-delete: the block is kept with status cancelled."""
    return await AvailabilityBlockStore(db, config).cancel(block_id)


@router.post("/sick", response_model=AvailabilityBlockResponse, status_code=status.HTTP_201_CREATED)
async def mark_sick(request: SickDayRequest, db: DbSession, config: Config):
    return await AvailabilityBlockStore(db, config).mark_sick(
        request.contractor_id, request.tech_id, request.day, request.created_by
    )


@router.post("/partial-day", response_model=AvailabilityBlockResponse, status_code=status.HTTP_201_CREATED)
async def block_partial_day(request: PartialDayRequest, db: DbSession, config: Config):
    return await AvailabilityBlockStore(db, config).block_partial_day(
        request.contractor_id,
        request.tech_id,
        request.day,
        request.start_time,
        request.end_time,
        request.reason,
        request.created_by,
    )


@router.post("/recurring", response_model=AvailabilityBlockResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_block(request: RecurringBlockRequest, db: DbSession, config: Config):
    """Weekly block on the given weekday, starting from its next occurrence."""
    return await AvailabilityBlockStore(db, config).create_recurring_block(
        request.contractor_id,
        request.tech_id,
        request.day_of_week,
        request.start_time,
        request.end_time,
        request.title,
        request.created_by,
    )
