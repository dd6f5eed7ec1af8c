"""
Dispatch service - schedules jobs, commits crews, applies field status
changes and processes location samples.

Every job write is compare-and-set on the job version. Manual actions raise
ConcurrencyConflictError on a lost race; automatic writers (ETA refresh,
auto-arrival) re-read and retry.
"""
import logging
from datetime import date, datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dispatch_config import DispatchConfig
from app.exceptions import ConcurrencyConflictError, HardConflictError, NotFoundError, ValidationError
from app.schemas.dispatch import ConflictReport, CrewCommitResult, CrewSuggestion
from app.schemas.gps_tracking import LocationSample, TrackingOutcome, TrackingResult
from app.schemas.job import (
    ACTIVE_FIELD_STATUSES,
    CrewAssignment,
    CrewCommitRequest,
    CrewMemberAddRequest,
    CrewRole,
    DaySegment,
    FieldStatus,
    JobResponse,
    LiveETA,
    ScheduleRequest,
    StatusTransitionRequest,
)
from app.services.availability_service import AvailabilityResolver
from app.services.conflict_detector import ConflictDetector, validate_crew_size
from app.services.crew_suggestion_service import CrewSuggestionScorer
from app.services.crew_utils import (
    create_crew_assignment,
    crew_storage_fields,
    enforce_single_lead,
    get_crew_lead,
    legacy_to_crew_format,
)
from app.services.day_segmenter import DaySegmenter, minutes_to_time
from app.services.field_status import FieldStatusMachine
from app.services.geofence import GeofenceCalculator
from app.services.job_store import AvailabilityBlockStore, CrewDirectory, JobStore, LocationStore
from app.services.websocket_manager import LocationPublisher

logger = logging.getLogger(__name__)


class DispatchService:
    """Orchestrates the engine components over one database session"""

    def __init__(
        self,
        db: AsyncSession,
        config: DispatchConfig,
        publisher: Optional[LocationPublisher] = None,
    ):
        self.db = db
        self.config = config
        self.publisher = publisher

        self.jobs = JobStore(db)
        self.directory = CrewDirectory(db)
        self.blocks = AvailabilityBlockStore(db, config)
        self.locations = LocationStore(db)

        self.segmenter = DaySegmenter(config)
        self.resolver = AvailabilityResolver(config)
        self.scorer = CrewSuggestionScorer(config)
        self.detector = ConflictDetector(config, self.resolver)
        self.geofence = GeofenceCalculator(config)
        self.machine = FieldStatusMachine(config, self.geofence)

    # ==================== Helpers ====================

    async def _publish(self, contractor_id: str, event_type: str, data: dict) -> None:
        if self.publisher is not None:
            await self.publisher.publish(contractor_id, event_type, data)

    async def _write(self, job: JobResponse, fields: dict, expected_version: Optional[int]) -> JobResponse:
        """Manual write: stale versions raise."""
        version = job.version if expected_version is None else expected_version
        if not await self.jobs.update(job.id, fields, version):
            raise ConcurrencyConflictError(job.id, version)
        return await self.jobs.get(job.id)

    def segments_for_job(self, job: JobResponse) -> list[DaySegment]:
        """Stored segments, else a single segment derived from the scheduled start."""
        if job.multi_day_schedule and job.multi_day_schedule.segments:
            return job.multi_day_schedule.segments
        if job.scheduled_start:
            start = job.scheduled_start.hour * 60 + job.scheduled_start.minute
            duration = job.estimated_duration_minutes or self.config.default_job_duration_minutes
            return [
                DaySegment(
                    date=job.scheduled_start.date(),
                    day_number=1,
                    start_time=minutes_to_time(start),
                    start_hour=start // 60,
                    end_time=minutes_to_time(min(start + duration, 24 * 60)),
                    duration_minutes=duration,
                    is_complete=True,
                )
            ]
        raise ValidationError(
            f"Job {job.id} has no schedule",
            errors=[{"field": "scheduled_start", "message": "Schedule the job before assigning a crew"}],
        )

    # ==================== Scheduling ====================

    async def schedule_job(self, job_id: str, request: ScheduleRequest) -> JobResponse:
        """(Re)compute a job's day segments from start, duration and working hours."""
        job = await self.jobs.get(job_id)
        start = request.scheduled_start or job.scheduled_start
        if start is None:
            raise ValidationError(
                "scheduled_start is required",
                errors=[{"field": "scheduled_start", "message": "Field required"}],
            )
        duration = request.estimated_duration_minutes
        if duration is None:
            duration = job.estimated_duration_minutes or self.config.default_job_duration_minutes

        working_hours = request.working_hours
        if working_hours is None:
            lead = get_crew_lead(legacy_to_crew_format(job))
            if lead:
                try:
                    working_hours = (await self.directory.get(lead.tech_id)).working_hours
                except NotFoundError:
                    logger.warning(f"Lead {lead.tech_id} of job {job_id} not in directory, using default hours")

        schedule = self.segmenter.create_multi_day_schedule(
            start.date(), duration, working_hours, request.minutes_per_day
        )
        for warning in schedule.warnings:
            logger.warning(f"Job {job_id}: {warning}")

        return await self._write(
            job,
            {
                "scheduled_start": start,
                "estimated_duration_minutes": duration,
                "multi_day_schedule": schedule.model_dump(mode="json"),
            },
            request.expected_version,
        )

    # ==================== Crew ====================

    async def suggest_crew(self, job_id: str, target_date: Optional[date] = None) -> CrewSuggestion:
        job = await self.jobs.get(job_id)
        members = await self.directory.list(job.contractor_id, active_only=True)
        existing = await self.jobs.list_for_contractor(job.contractor_id, include_cancelled=False)
        return self.scorer.suggest_crew(job, members, existing, target_date)

    async def check_conflicts(self, job_id: str, crew: list[CrewAssignment]) -> ConflictReport:
        """Dry run of commit-time validation; writes nothing."""
        job = await self.jobs.get(job_id)
        return await self._detect(job, enforce_single_lead(crew))

    async def _detect(self, job: JobResponse, crew: list[CrewAssignment]) -> ConflictReport:
        segments = self.segments_for_job(job)
        members = await self.directory.list(job.contractor_id)
        blocks = await self.blocks.list_active(job.contractor_id)
        existing = await self.jobs.list_for_contractor(job.contractor_id, include_cancelled=False)
        return self.detector.detect_conflicts(
            crew,
            segments,
            members,
            blocks,
            existing,
            job_id=job.id,
            required_size=self.detector.required_crew_size(job),
        )

    async def _commit(
        self,
        job: JobResponse,
        crew: list[CrewAssignment],
        expected_version: Optional[int],
        assigned_by: str,
    ) -> CrewCommitResult:
        if not crew:
            raise ValidationError(
                "Crew must have at least one member",
                errors=[{"field": "crew", "message": "Empty crew"}],
            )
        tech_ids = [m.tech_id for m in crew]
        if len(set(tech_ids)) != len(tech_ids):
            raise ValidationError(
                "A technician can only appear once in a crew",
                errors=[{"field": "crew", "message": "Duplicate tech_id"}],
            )

        crew = enforce_single_lead(crew)
        report = await self._detect(job, crew)
        if report.has_errors:
            raise HardConflictError([f.model_dump(mode="json") for f in report.errors])

        members = {m.id: m for m in await self.directory.list(job.contractor_id)}
        now = datetime.now(timezone.utc)
        for assignment in crew:
            member = members[assignment.tech_id]
            if assignment.tech_name == "Unknown Tech":
                assignment.tech_name = member.name
            assignment.color = member.color or assignment.color
            assignment.assigned_at = assignment.assigned_at or now

        fields = crew_storage_fields(crew)
        fields.update({"assigned_by": assigned_by, "assigned_at": now})
        updated = await self._write(job, fields, expected_version)

        logger.info(
            f"Committed crew of {len(crew)} to job {job.id} "
            f"({len(report.warnings)} warnings, {len(report.shortages)} shortages)"
        )
        await self._publish(
            job.contractor_id,
            "job.crew_assigned",
            {"job_id": job.id, "crew": fields["assigned_crew"], "version": updated.version},
        )
        return CrewCommitResult(
            job=updated,
            warnings=report.warnings,
            shortages=report.shortages,
            crew_validation=validate_crew_size(
                len(crew), self.detector.required_crew_size(job), self.detector.maximum_crew_size(job)
            ),
        )

    async def commit_crew(self, job_id: str, request: CrewCommitRequest) -> CrewCommitResult:
        """
        Validate and store a crew. Blocking conflicts raise HardConflictError
        and nothing is written; warnings come back with the result.
        """
        job = await self.jobs.get(job_id)
        return await self._commit(job, list(request.crew), request.expected_version, request.assigned_by)

    async def add_crew_member(self, job_id: str, request: CrewMemberAddRequest) -> CrewCommitResult:
        job = await self.jobs.get(job_id)
        crew = legacy_to_crew_format(job)
        if any(m.tech_id == request.tech_id for m in crew):
            raise ValidationError(f"Tech {request.tech_id} is already on this crew")

        member = await self.directory.get(request.tech_id)
        if request.role == CrewRole.LEAD:
            for m in crew:
                if m.role == CrewRole.LEAD:
                    m.role = CrewRole.HELPER
        crew.append(create_crew_assignment(member, request.role, request.vehicle_id, request.vehicle_name))
        return await self._commit(job, crew, request.expected_version, "manual")

    async def remove_crew_member(self, job_id: str, tech_id: str, expected_version: Optional[int] = None) -> JobResponse:
        """Remove a member; a removed lead is replaced by the first remaining member."""
        job = await self.jobs.get(job_id)
        crew = legacy_to_crew_format(job)
        if not any(m.tech_id == tech_id for m in crew):
            raise NotFoundError("Crew member", tech_id)

        remaining = enforce_single_lead([m for m in crew if m.tech_id != tech_id])
        updated = await self._write(job, crew_storage_fields(remaining), expected_version)
        await self._publish(
            job.contractor_id,
            "job.crew_assigned",
            {"job_id": job.id, "crew": [m.model_dump(mode="json") for m in remaining], "version": updated.version},
        )
        return updated

    async def update_crew_role(
        self, job_id: str, tech_id: str, role: CrewRole, expected_version: Optional[int] = None
    ) -> JobResponse:
        job = await self.jobs.get(job_id)
        crew = legacy_to_crew_format(job)
        target = next((m for m in crew if m.tech_id == tech_id), None)
        if target is None:
            raise NotFoundError("Crew member", tech_id)

        if role == CrewRole.LEAD:
            for m in crew:
                if m.role == CrewRole.LEAD:
                    m.role = CrewRole.HELPER
        target.role = role
        crew = enforce_single_lead(crew)
        return await self._write(job, crew_storage_fields(crew), expected_version)

    # ==================== Field Status ====================

    async def transition_status(self, job_id: str, action: str, request: StatusTransitionRequest) -> JobResponse:
        """Explicit operator action. Not guarded against the current status."""
        job = await self.jobs.get(job_id)
        location = None
        if request.latitude is not None and request.longitude is not None:
            location = {"lat": request.latitude, "lng": request.longitude}

        record, fields = self.machine.apply_action(job, action, location=location, notes=request.notes)
        updated = await self._write(job, fields, request.expected_version)

        if request.tech_id:
            if record.to_status == FieldStatus.EN_ROUTE:
                await self.locations.set_current_job(request.tech_id, job_id)
            elif record.to_status in (FieldStatus.COMPLETED, FieldStatus.CANCELLED):
                await self.locations.set_current_job(request.tech_id, None)

        logger.info(f"Job {job_id}: {record.from_status.value} -> {record.to_status.value} ({action})")
        await self._publish(
            job.contractor_id,
            "job.status_changed",
            {**record.model_dump(mode="json"), "job_id": job_id, "version": updated.version},
        )
        return updated

    # ==================== Location ====================

    async def _find_tracked_job(self, sample: LocationSample) -> Optional[JobResponse]:
        job_id = sample.job_id
        if job_id is None:
            latest = await self.locations.get_latest(sample.tech_id)
            job_id = latest.current_job_id if latest else None
        if job_id is not None:
            try:
                return await self.jobs.get(job_id)
            except NotFoundError:
                logger.warning(f"Sample from {sample.tech_id} references unknown job {job_id}")
                return None
        active = await self.jobs.list_for_tech(sample.contractor_id, sample.tech_id, active_only=True)
        return active[0] if active else None

    async def process_location_sample(self, sample: LocationSample) -> TrackingResult:
        """
        Store the sample if it is the newest for its tech, publish it, then
        refresh ETA / apply auto-arrival on the tech's active job.
        """
        if not await self.locations.save_if_newer(sample, sample.job_id):
            logger.warning(f"Discarded stale sample from {sample.tech_id} captured {sample.timestamp}")
            return TrackingResult(outcome=TrackingOutcome.stale, tech_id=sample.tech_id, timestamp=sample.timestamp)

        await self._publish(sample.contractor_id, "location.updated", sample.model_dump(mode="json"))
        result = TrackingResult(outcome=TrackingOutcome.accepted, tech_id=sample.tech_id, timestamp=sample.timestamp)

        job = await self._find_tracked_job(sample)
        if job is None:
            return result
        result.job_id = job.id

        for attempt in range(self.config.cas_max_retries + 1):
            if attempt:
                job = await self.jobs.get(job.id)
            result.field_status = job.field_status
            if job.field_status not in ACTIVE_FIELD_STATUSES:
                return result

            signal = self.machine.evaluate_location(job, sample.lat, sample.lng)
            if signal is None:
                return result
            result.signal = signal

            fields = {}
            eta: Optional[LiveETA] = None
            if self.geofence.needs_eta(job.field_status):
                eta = self.geofence.estimate_eta(sample.lat, sample.lng, job.site_latitude, job.site_longitude)
                fields["live_eta"] = eta.model_dump(mode="json")

            record = None
            if signal.auto_transition is not None:
                record, transition_fields = self.machine.transition(
                    job,
                    signal.auto_transition,
                    location={"lat": sample.lat, "lng": sample.lng},
                    notes="Auto-detected arrival",
                    automatic=True,
                )
                fields.update(transition_fields)

            if not fields:
                return result

            if await self.jobs.update(job.id, fields, job.version):
                if record is not None:
                    result.field_status = record.to_status
                    await self._publish(
                        job.contractor_id,
                        "job.status_changed",
                        {**record.model_dump(mode="json"), "job_id": job.id, "version": job.version + 1},
                    )
                elif eta is not None:
                    result.live_eta = eta
                    await self._publish(
                        job.contractor_id,
                        "job.eta_updated",
                        {"job_id": job.id, "tech_id": sample.tech_id, **eta.model_dump(mode="json")},
                    )
                return result

            logger.warning(f"Retrying tracking update for job {job.id} (attempt {attempt + 1})")

        logger.error(
            f"Gave up tracking update for job {job.id} after {self.config.cas_max_retries} retries"
        )
        return result
