"""
Stores for jobs, the crew directory, availability blocks and technician
locations, over an async SQLAlchemy session.

Job writes are compare-and-set on Job.version; the caller decides whether a
lost race is an error (manual actions) or a retry (automatic writers).
"""
import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import func

from app.core.dispatch_config import DispatchConfig, WEEKDAYS
from app.exceptions import NotFoundError, ValidationError
from app.models.availability_block import AvailabilityBlock
from app.models.gps_tracking import LocationHistory, TechnicianLocation
from app.models.job import Job
from app.models.technician import CrewMember
from app.schemas.availability import AvailabilityBlockCreate, AvailabilityBlockResponse, BlockType
from app.schemas.gps_tracking import LocationSample
from app.schemas.job import ACTIVE_FIELD_STATUSES, JobCreate, JobResponse
from app.schemas.technician import CrewMemberCreate, CrewMemberResponse, normalize_time
from app.services.crew_utils import is_tech_assigned
from app.services.geofence import haversine_distance_meters

logger = logging.getLogger(__name__)


def wall_clock(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo, keeping the local wall-clock reading (scheduled times)."""
    if value is None or value.tzinfo is None:
        return value
    return value.replace(tzinfo=None)


def naive_utc(value: datetime) -> datetime:
    """Convert to UTC and drop tzinfo (device capture times)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class JobStore:
    """Job persistence with per-job optimistic concurrency"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, job_id: str) -> JobResponse:
        result = await self.db.execute(
            select(Job).where(Job.id == job_id).execution_options(populate_existing=True)
        )
        job = result.scalar_one_or_none()
        if not job:
            raise NotFoundError("Job", job_id)
        return JobResponse.model_validate(job)

    async def create(self, data: JobCreate) -> JobResponse:
        values = data.model_dump(exclude={"id"})
        values["scheduled_start"] = wall_clock(values.get("scheduled_start"))
        job = Job(id=data.id or str(uuid.uuid4()), version=1, field_status="scheduled", **values)
        if data.assigned_tech_id:
            job.crew_size = 1
        self.db.add(job)
        await self.db.commit()
        await self.db.refresh(job)
        logger.info(f"Created job {job.id} for contractor {job.contractor_id}")
        return JobResponse.model_validate(job)

    async def update(self, job_id: str, fields: dict[str, Any], expected_version: int) -> bool:
        """
        Apply `fields` only if the job is still at `expected_version`.

        Returns False when another writer got there first; nothing is written.
        """
        if "scheduled_start" in fields:
            fields = {**fields, "scheduled_start": wall_clock(fields["scheduled_start"])}
        result = await self.db.execute(
            update(Job)
            .where(Job.id == job_id, Job.version == expected_version)
            .values(**fields, version=Job.version + 1, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        if result.rowcount != 1:
            logger.warning(f"Version conflict on job {job_id} (expected version {expected_version})")
            return False
        return True

    async def list_for_contractor(self, contractor_id: str, include_cancelled: bool = True) -> list[JobResponse]:
        query = select(Job).where(Job.contractor_id == contractor_id)
        if not include_cancelled:
            query = query.where(Job.field_status != "cancelled")
        result = await self.db.execute(
            query.order_by(Job.scheduled_start, Job.id).execution_options(populate_existing=True)
        )
        return [JobResponse.model_validate(j) for j in result.scalars().all()]

    async def list_for_tech(self, contractor_id: str, tech_id: str, active_only: bool = False) -> list[JobResponse]:
        """Jobs with `tech_id` on the crew (or legacy assignment)."""
        jobs = await self.list_for_contractor(contractor_id)
        jobs = [j for j in jobs if is_tech_assigned(j, tech_id)]
        if active_only:
            jobs = [j for j in jobs if j.field_status in ACTIVE_FIELD_STATUSES]
        return jobs


class CrewDirectory:
    """Crew member profiles. Directory order is creation time, then id."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self, contractor_id: str, active_only: bool = False) -> list[CrewMemberResponse]:
        query = select(CrewMember).where(CrewMember.contractor_id == contractor_id)
        if active_only:
            query = query.where(CrewMember.is_active.is_(True))
        result = await self.db.execute(query.order_by(CrewMember.created_at, CrewMember.id))
        return [CrewMemberResponse.model_validate(m) for m in result.scalars().all()]

    async def get(self, tech_id: str) -> CrewMemberResponse:
        result = await self.db.execute(select(CrewMember).where(CrewMember.id == tech_id))
        member = result.scalar_one_or_none()
        if not member:
            raise NotFoundError("Crew member", tech_id)
        return CrewMemberResponse.model_validate(member)

    async def create(self, data: CrewMemberCreate) -> CrewMemberResponse:
        values = data.model_dump(mode="json", exclude={"id"})
        member = CrewMember(id=data.id or str(uuid.uuid4()), **values)
        self.db.add(member)
        await self.db.commit()
        await self.db.refresh(member)
        return CrewMemberResponse.model_validate(member)


class AvailabilityBlockStore:
    """Availability blocks; cancellation is a soft delete via status"""

    def __init__(self, db: AsyncSession, config: DispatchConfig):
        self.db = db
        self.config = config

    async def list_active(self, contractor_id: str, tech_id: Optional[str] = None) -> list[AvailabilityBlockResponse]:
        query = select(AvailabilityBlock).where(
            AvailabilityBlock.contractor_id == contractor_id,
            AvailabilityBlock.status == "active",
        )
        if tech_id:
            query = query.where(AvailabilityBlock.tech_id == tech_id)
        result = await self.db.execute(query.order_by(AvailabilityBlock.start_date, AvailabilityBlock.id))
        return [AvailabilityBlockResponse.model_validate(b) for b in result.scalars().all()]

    async def get(self, block_id: str) -> AvailabilityBlock:
        result = await self.db.execute(select(AvailabilityBlock).where(AvailabilityBlock.id == block_id))
        block = result.scalar_one_or_none()
        if not block:
            raise NotFoundError("Availability block", block_id)
        return block

    async def create(self, data: AvailabilityBlockCreate) -> AvailabilityBlockResponse:
        block_type = data.type.value
        block = AvailabilityBlock(
            id=str(uuid.uuid4()),
            contractor_id=data.contractor_id,
            tech_id=data.tech_id,
            type=block_type,
            title=data.title or self.config.default_block_title(block_type),
            notes=data.notes,
            start_date=data.start_date,
            end_date=data.end_date or data.start_date,
            start_time=data.start_time,
            end_time=data.end_time,
            is_all_day=not (data.start_time and data.end_time),
            is_recurring=data.is_recurring,
            recurrence_rule=data.recurrence_rule,
            google_event_id=data.google_event_id,
            source=data.source.value,
            status="active",
            created_by=data.created_by,
        )
        self.db.add(block)
        await self.db.commit()
        await self.db.refresh(block)
        logger.info(f"Added {block_type} block {block.id} for tech {data.tech_id}")
        return AvailabilityBlockResponse.model_validate(block)

    async def cancel(self, block_id: str) -> AvailabilityBlockResponse:
        block = await self.get(block_id)
        block.status = "cancelled"
        await self.db.commit()
        await self.db.refresh(block)
        return AvailabilityBlockResponse.model_validate(block)

    async def mark_sick(
        self, contractor_id: str, tech_id: str, day: Optional[date] = None, created_by: Optional[str] = None
    ) -> AvailabilityBlockResponse:
        return await self.create(
            AvailabilityBlockCreate(
                contractor_id=contractor_id,
                tech_id=tech_id,
                type=BlockType.SICK,
                start_date=day or date.today(),
                created_by=created_by,
            )
        )

    async def block_partial_day(
        self,
        contractor_id: str,
        tech_id: str,
        day: date,
        start_time: str,
        end_time: str,
        reason: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> AvailabilityBlockResponse:
        if not (normalize_time(start_time) and normalize_time(end_time)):
            raise ValidationError("Partial-day blocks need both start_time and end_time")
        return await self.create(
            AvailabilityBlockCreate(
                contractor_id=contractor_id,
                tech_id=tech_id,
                type=BlockType.PARTIAL_DAY,
                start_date=day,
                start_time=start_time,
                end_time=end_time,
                title=reason or "Unavailable",
                created_by=created_by,
            )
        )

    async def create_recurring_block(
        self,
        contractor_id: str,
        tech_id: str,
        day_of_week: str,
        start_time: str,
        end_time: str,
        title: Optional[str] = None,
        created_by: Optional[str] = None,
        today: Optional[date] = None,
    ) -> AvailabilityBlockResponse:
        """Weekly block anchored on the next occurrence of `day_of_week`."""
        day_of_week = day_of_week.lower()
        if day_of_week not in WEEKDAYS:
            raise ValidationError(f"Unknown weekday '{day_of_week}'")
        today = today or date.today()
        days_until = (WEEKDAYS.index(day_of_week) - today.weekday()) % 7
        anchor = today + timedelta(days=days_until)
        return await self.create(
            AvailabilityBlockCreate(
                contractor_id=contractor_id,
                tech_id=tech_id,
                type=BlockType.RECURRING,
                start_date=anchor,
                start_time=start_time,
                end_time=end_time,
                is_recurring=True,
                recurrence_rule=f"RRULE:FREQ=WEEKLY;BYDAY={day_of_week[:2].upper()}",
                title=title,
                created_by=created_by,
            )
        )


class LocationStore:
    """Latest location per technician plus accepted-sample history"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_latest(self, tech_id: str) -> Optional[TechnicianLocation]:
        result = await self.db.execute(
            select(TechnicianLocation)
            .where(TechnicianLocation.technician_id == tech_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def list_for_contractor(self, contractor_id: str) -> list[TechnicianLocation]:
        result = await self.db.execute(
            select(TechnicianLocation)
            .where(TechnicianLocation.contractor_id == contractor_id)
            .order_by(TechnicianLocation.technician_id)
        )
        return list(result.scalars().all())

    async def save_if_newer(self, sample: LocationSample, job_id: Optional[str] = None) -> bool:
        """
        Last-write-wins keyed by capture time.

        A sample captured at or before the stored one is discarded and
        False is returned.
        """
        captured_at = naive_utc(sample.timestamp)
        current = await self.get_latest(sample.tech_id)

        distance = None
        if current is not None:
            if current.captured_at >= captured_at:
                return False
            distance = haversine_distance_meters(current.latitude, current.longitude, sample.lat, sample.lng)
            current.latitude = sample.lat
            current.longitude = sample.lng
            current.accuracy = sample.accuracy
            current.speed = sample.speed
            current.heading = sample.heading
            current.is_online = True
            current.captured_at = captured_at
            current.received_at = datetime.now(timezone.utc).replace(tzinfo=None)
            if job_id:
                current.current_job_id = job_id
        else:
            self.db.add(
                TechnicianLocation(
                    technician_id=sample.tech_id,
                    contractor_id=sample.contractor_id,
                    latitude=sample.lat,
                    longitude=sample.lng,
                    accuracy=sample.accuracy,
                    speed=sample.speed,
                    heading=sample.heading,
                    is_online=True,
                    current_job_id=job_id,
                    captured_at=captured_at,
                    received_at=datetime.now(timezone.utc).replace(tzinfo=None),
                )
            )

        self.db.add(
            LocationHistory(
                technician_id=sample.tech_id,
                job_id=job_id or (current.current_job_id if current else None),
                latitude=sample.lat,
                longitude=sample.lng,
                accuracy=sample.accuracy,
                speed=sample.speed,
                heading=sample.heading,
                distance_from_previous=round(distance, 1) if distance is not None else None,
                captured_at=captured_at,
            )
        )
        await self.db.commit()
        return True

    async def set_current_job(self, tech_id: str, job_id: Optional[str]) -> None:
        current = await self.get_latest(tech_id)
        if current is None:
            return
        current.current_job_id = job_id
        await self.db.commit()

    async def mark_offline(self, tech_id: str) -> None:
        current = await self.get_latest(tech_id)
        if current is None:
            return
        current.is_online = False
        await self.db.commit()
