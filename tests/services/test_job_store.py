"""
Tests for the job, crew directory, availability block and location stores.
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from sqlalchemy import select

from app.exceptions import NotFoundError
from app.models.gps_tracking import LocationHistory
from app.schemas.availability import AvailabilityBlockCreate
from app.schemas.gps_tracking import LocationSample
from app.schemas.job import JobCreate
from app.schemas.technician import CrewMemberCreate
from app.services.job_store import (
    AvailabilityBlockStore,
    CrewDirectory,
    JobStore,
    LocationStore,
    naive_utc,
    wall_clock,
)

from factories import CrewMemberFactory, JobFactory

T0 = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)


def sample(tech_id: str = "tech-1", at: datetime = T0, lat: float = 30.2672, **kwargs) -> LocationSample:
    return LocationSample(
        tech_id=tech_id,
        contractor_id="contractor-1",
        lat=lat,
        lng=-97.7431,
        timestamp=at,
        **kwargs,
    )


class TestJobStore:
    """Tests for job persistence and compare-and-set writes."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_db):
        store = JobStore(test_db)

        created = await store.create(JobCreate(**JobFactory(id="job-1", title="Panel Upgrade")))
        fetched = await store.get("job-1")

        assert created.version == 1
        assert fetched.title == "Panel Upgrade"
        assert fetched.field_status.value == "scheduled"
        assert fetched.scheduled_start == datetime(2026, 3, 2, 9, 0)

    @pytest.mark.asyncio
    async def test_get_missing(self, test_db):
        with pytest.raises(NotFoundError):
            await JobStore(test_db).get("nope")

    @pytest.mark.asyncio
    async def test_update_bumps_version(self, test_db):
        store = JobStore(test_db)
        await store.create(JobCreate(**JobFactory(id="job-1")))

        assert await store.update("job-1", {"notes": "Gate code 1234"}, 1) is True
        job = await store.get("job-1")

        assert job.version == 2
        assert job.notes == "Gate code 1234"

    @pytest.mark.asyncio
    async def test_stale_version_writes_nothing(self, test_db):
        store = JobStore(test_db)
        await store.create(JobCreate(**JobFactory(id="job-1")))
        await store.update("job-1", {"notes": "first"}, 1)

        assert await store.update("job-1", {"notes": "second"}, 1) is False
        job = await store.get("job-1")

        assert job.version == 2
        assert job.notes == "first"

    @pytest.mark.asyncio
    async def test_list_for_tech(self, test_db):
        store = JobStore(test_db)
        await store.create(JobCreate(**JobFactory(id="job-1", assigned_tech_id="tech-1")))
        await store.create(JobCreate(**JobFactory(id="job-2", assigned_tech_id="tech-2")))

        jobs = await store.list_for_tech("contractor-1", "tech-1")

        assert [j.id for j in jobs] == ["job-1"]
        assert await store.list_for_tech("contractor-1", "tech-1", active_only=True) == []

    @pytest.mark.asyncio
    async def test_list_excludes_cancelled(self, test_db):
        store = JobStore(test_db)
        await store.create(JobCreate(**JobFactory(id="job-1")))
        await store.create(JobCreate(**JobFactory(id="job-2")))
        await store.update("job-2", {"field_status": "cancelled"}, 1)

        jobs = await store.list_for_contractor("contractor-1", include_cancelled=False)

        assert [j.id for j in jobs] == ["job-1"]

    def test_time_helpers(self):
        local = datetime(2026, 3, 2, 9, 0, tzinfo=timezone(timedelta(hours=-6)))

        assert wall_clock(local) == datetime(2026, 3, 2, 9, 0)
        assert naive_utc(local) == datetime(2026, 3, 2, 15, 0)


class TestCrewDirectory:
    """Tests for crew member profiles."""

    @pytest.mark.asyncio
    async def test_create_and_list(self, test_db):
        directory = CrewDirectory(test_db)
        await directory.create(CrewMemberCreate(**CrewMemberFactory(id="tech-a", skills=["HVAC"])))
        await directory.create(CrewMemberCreate(**CrewMemberFactory(id="tech-b", is_active=False)))

        everyone = await directory.list("contractor-1")
        active = await directory.list("contractor-1", active_only=True)

        assert [m.id for m in everyone] == ["tech-a", "tech-b"]
        assert [m.id for m in active] == ["tech-a"]
        assert everyone[0].skills == ["HVAC"]
        assert everyone[0].working_hours["monday"].start == "08:00"
        assert everyone[0].working_hours["saturday"].enabled is False

    @pytest.mark.asyncio
    async def test_get_missing(self, test_db):
        with pytest.raises(NotFoundError):
            await CrewDirectory(test_db).get("nope")


class TestAvailabilityBlockStore:
    """Tests for block creation and soft cancellation."""

    @pytest.mark.asyncio
    async def test_create_defaults(self, test_db, config):
        store = AvailabilityBlockStore(test_db, config)

        block = await store.create(
            AvailabilityBlockCreate(contractor_id="contractor-1", tech_id="tech-1", type="doctor", start_date=date(2026, 3, 4))
        )

        assert block.title == "Medical Appointment"
        assert block.end_date == date(2026, 3, 4)
        assert block.is_all_day is True
        assert block.status == "active"

    @pytest.mark.asyncio
    async def test_cancel_is_soft_delete(self, test_db, config):
        store = AvailabilityBlockStore(test_db, config)
        block = await store.mark_sick("contractor-1", "tech-1", date(2026, 3, 4))

        cancelled = await store.cancel(block.id)

        assert cancelled.status == "cancelled"
        assert await store.list_active("contractor-1") == []

    @pytest.mark.asyncio
    async def test_mark_sick(self, test_db, config):
        block = await AvailabilityBlockStore(test_db, config).mark_sick("contractor-1", "tech-1", date(2026, 3, 4))

        assert block.type == "sick"
        assert block.title == "Sick Day"
        assert block.is_all_day is True

    @pytest.mark.asyncio
    async def test_partial_day(self, test_db, config):
        block = await AvailabilityBlockStore(test_db, config).block_partial_day(
            "contractor-1", "tech-1", date(2026, 3, 4), "9:0", "11:30", reason="Dentist"
        )

        assert block.is_all_day is False
        assert (block.start_time, block.end_time) == ("09:00", "11:30")
        assert block.title == "Dentist"

    @pytest.mark.asyncio
    async def test_recurring_block_anchors_on_next_weekday(self, test_db, config):
        store = AvailabilityBlockStore(test_db, config)

        block = await store.create_recurring_block(
            "contractor-1", "tech-1", "Monday", "14:00", "16:00", today=date(2026, 3, 4)
        )

        assert block.start_date == date(2026, 3, 9)
        assert block.is_recurring is True
        assert block.recurrence_rule == "RRULE:FREQ=WEEKLY;BYDAY=MO"
        assert block.title == "Recurring Block"

    @pytest.mark.asyncio
    async def test_recurring_block_today(self, test_db, config):
        block = await AvailabilityBlockStore(test_db, config).create_recurring_block(
            "contractor-1", "tech-1", "wednesday", "14:00", "16:00", today=date(2026, 3, 4)
        )

        assert block.start_date == date(2026, 3, 4)

    @pytest.mark.asyncio
    async def test_list_active_by_tech(self, test_db, config):
        store = AvailabilityBlockStore(test_db, config)
        await store.mark_sick("contractor-1", "tech-1", date(2026, 3, 4))
        await store.mark_sick("contractor-1", "tech-2", date(2026, 3, 4))

        blocks = await store.list_active("contractor-1", "tech-2")

        assert [b.tech_id for b in blocks] == ["tech-2"]


class TestLocationStore:
    """Tests for last-write-wins location storage."""

    @pytest.mark.asyncio
    async def test_first_sample_saved(self, test_db):
        store = LocationStore(test_db)

        assert await store.save_if_newer(sample(job_id="job-1"), "job-1") is True
        latest = await store.get_latest("tech-1")

        assert latest.captured_at == datetime(2026, 3, 2, 14, 0)
        assert latest.current_job_id == "job-1"

    @pytest.mark.asyncio
    async def test_older_sample_discarded(self, test_db):
        store = LocationStore(test_db)
        await store.save_if_newer(sample(at=T0, lat=30.2672))

        assert await store.save_if_newer(sample(at=T0 - timedelta(seconds=30), lat=30.5)) is False
        assert await store.save_if_newer(sample(at=T0, lat=30.5)) is False
        latest = await store.get_latest("tech-1")

        assert latest.latitude == 30.2672

    @pytest.mark.asyncio
    async def test_newer_sample_replaces_and_records_history(self, test_db):
        store = LocationStore(test_db)
        await store.save_if_newer(sample(at=T0, lat=30.2672))

        assert await store.save_if_newer(sample(at=T0 + timedelta(seconds=30), lat=30.2682)) is True
        latest = await store.get_latest("tech-1")
        history = (
            await test_db.execute(select(LocationHistory).order_by(LocationHistory.captured_at))
        ).scalars().all()

        assert latest.latitude == 30.2682
        assert len(history) == 2
        assert history[0].distance_from_previous is None
        assert history[1].distance_from_previous == pytest.approx(111.2, abs=0.1)

    @pytest.mark.asyncio
    async def test_offset_timestamps_compared_in_utc(self, test_db):
        store = LocationStore(test_db)
        await store.save_if_newer(sample(at=T0))
        # 08:30 at UTC-6 is 14:30 UTC
        later = datetime(2026, 3, 2, 8, 30, tzinfo=timezone(timedelta(hours=-6)))

        assert await store.save_if_newer(sample(at=later)) is True

    @pytest.mark.asyncio
    async def test_set_current_job_and_offline(self, test_db):
        store = LocationStore(test_db)
        await store.save_if_newer(sample())

        await store.set_current_job("tech-1", "job-9")
        await store.mark_offline("tech-1")
        latest = await store.get_latest("tech-1")

        assert latest.current_job_id == "job-9"
        assert latest.is_online is False
