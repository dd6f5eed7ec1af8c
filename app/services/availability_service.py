"""
Availability resolver.

Merges a crew member's working hours, time off, availability blocks (one-off
and weekly recurring) and existing job load into a per-date verdict.
Pure functions over snapshots; nothing here writes.
"""
import logging
from datetime import date, timedelta
from typing import Iterable, Optional

from app.core.dispatch_config import DispatchConfig, WEEKDAYS
from app.schemas.availability import (
    AvailabilityBlockResponse,
    AvailabilityVerdict,
    ComprehensiveDay,
    DayAvailability,
    DayJobConflicts,
    MemberAvailabilitySummary,
    OverlappingJob,
    UnavailableDay,
)
from app.schemas.job import DaySegment, JobResponse
from app.schemas.technician import CrewMemberResponse
from app.services.crew_utils import job_window_on, jobs_for_tech_on_date, windows_overlap

logger = logging.getLogger(__name__)


def is_all_day(block: AvailabilityBlockResponse) -> bool:
    return block.is_all_day or not (block.start_time and block.end_time)


def matches_weekly_rule(block: AvailabilityBlockResponse, day: date) -> bool:
    """Weekly-by-weekday only; any other rule string never matches."""
    if not block.is_recurring or not block.recurrence_rule:
        return False
    if "WEEKLY" not in block.recurrence_rule.upper():
        return False
    return block.start_date.weekday() == day.weekday()


class AvailabilityResolver:
    """Per member, per date availability verdicts"""

    def __init__(self, config: DispatchConfig):
        self.config = config

    def block_title(self, block: AvailabilityBlockResponse) -> str:
        return block.title or self.config.default_block_title(block.type)

    def get_blocks_for_tech_on_date(
        self, blocks: Iterable[AvailabilityBlockResponse], tech_id: str, day: date
    ) -> list[AvailabilityBlockResponse]:
        """Active blocks for `tech_id` covering `day`, recurring matches included."""
        found = []
        for block in blocks:
            if block.tech_id != tech_id or block.status != "active":
                continue
            end_date = block.end_date or block.start_date
            if block.start_date <= day <= end_date or matches_weekly_rule(block, day):
                found.append(block)
        return found

    def _overlapping_jobs(
        self,
        tech_id: str,
        day: date,
        jobs: Iterable[JobResponse],
        start_time: Optional[str],
        end_time: Optional[str],
        exclude_job_id: Optional[str],
    ) -> tuple[int, list[OverlappingJob]]:
        on_day = jobs_for_tech_on_date(jobs, tech_id, day, exclude_job_id)
        overlapping = []
        for job in on_day:
            job_start, job_end = job_window_on(job, day, self.config.default_job_duration_minutes)
            if windows_overlap(start_time, end_time, job_start, job_end):
                overlapping.append(
                    OverlappingJob(job_id=job.id, title=job.title, start_time=job_start, end_time=job_end)
                )
        return len(on_day), overlapping

    def check_availability(
        self,
        member: CrewMemberResponse,
        day: date,
        blocks: Iterable[AvailabilityBlockResponse] = (),
        jobs: Iterable[JobResponse] = (),
        start_time: Optional[str] = None,
        end_time: Optional[str] = None,
        exclude_job_id: Optional[str] = None,
    ) -> AvailabilityVerdict:
        """
        Evaluate, in order, short-circuiting on the first hard block:
        day off, time off, all-day block, then time-window overlap.
        Jobs already on that date are always reported.
        """
        jobs = list(jobs)
        jobs_on_day, overlapping_jobs = self._overlapping_jobs(
            member.id, day, jobs, start_time, end_time, exclude_job_id
        )
        verdict = AvailabilityVerdict(
            available=True, overlapping_jobs=overlapping_jobs, jobs_on_day=jobs_on_day
        )

        if not member.works_on(day):
            verdict.available = False
            verdict.blocking_reason = "day_off"
            verdict.blocking_kind = "day_off"
            return verdict

        time_off = member.time_off_on(day)
        if time_off:
            verdict.available = False
            verdict.blocking_reason = "time_off"
            verdict.blocking_kind = "time_off"
            return verdict

        day_blocks = self.get_blocks_for_tech_on_date(blocks, member.id, day)
        all_day = [b for b in day_blocks if is_all_day(b)]
        if all_day:
            verdict.available = False
            verdict.blocking_reason = self.block_title(all_day[0])
            verdict.blocking_kind = "all_day_block"
            verdict.overlapping_blocks = all_day
            return verdict

        if not (start_time and end_time):
            # No window to test against: partial blocks are informational
            verdict.overlapping_blocks = day_blocks
            return verdict

        overlapping = [
            b for b in day_blocks if windows_overlap(start_time, end_time, b.start_time, b.end_time)
        ]
        verdict.overlapping_blocks = overlapping
        if overlapping:
            verdict.available = False
            verdict.blocking_reason = self.block_title(overlapping[0])
            verdict.blocking_kind = "time_window"
        return verdict

    def resolve_member(
        self,
        member: CrewMemberResponse,
        segments: list[DaySegment],
        blocks: Iterable[AvailabilityBlockResponse] = (),
        jobs: Iterable[JobResponse] = (),
        exclude_job_id: Optional[str] = None,
    ) -> MemberAvailabilitySummary:
        blocks, jobs = list(blocks), list(jobs)
        summary = MemberAvailabilitySummary(tech_id=member.id, tech_name=member.name)

        for segment in segments:
            verdict = self.check_availability(
                member,
                segment.date,
                blocks,
                jobs,
                segment.start_time,
                segment.end_time,
                exclude_job_id,
            )
            summary.day_verdicts.append(
                DayAvailability(date=segment.date, day_number=segment.day_number, verdict=verdict)
            )
            if verdict.available:
                summary.available_day_count += 1
            else:
                summary.unavailable_days.append(
                    UnavailableDay(
                        date=segment.date,
                        day_number=segment.day_number,
                        reason=verdict.blocking_reason,
                        kind=verdict.blocking_kind,
                    )
                )
            if verdict.overlapping_jobs:
                summary.conflicts.append(
                    DayJobConflicts(
                        date=segment.date, day_number=segment.day_number, jobs=verdict.overlapping_jobs
                    )
                )
        return summary

    def resolve_crew(
        self,
        members: list[CrewMemberResponse],
        segments: list[DaySegment],
        blocks: Iterable[AvailabilityBlockResponse] = (),
        jobs: Iterable[JobResponse] = (),
        exclude_job_id: Optional[str] = None,
    ) -> list[MemberAvailabilitySummary]:
        """Batch form: every member across every segment of a job."""
        blocks, jobs = list(blocks), list(jobs)
        return [self.resolve_member(m, segments, blocks, jobs, exclude_job_id) for m in members]

    def get_comprehensive_availability(
        self,
        member: CrewMemberResponse,
        start_date: date,
        end_date: date,
        blocks: Iterable[AvailabilityBlockResponse] = (),
        jobs: Iterable[JobResponse] = (),
    ) -> list[ComprehensiveDay]:
        """Day-by-day report combining working hours, time off, blocks and jobs."""
        blocks, jobs = list(blocks), list(jobs)
        report = []
        current = start_date
        while current <= end_date:
            row = ComprehensiveDay(date=current, day_name=WEEKDAYS[current.weekday()], available=True)

            hours = member.hours_for(current)
            if not (hours and hours.enabled):
                row.available = False
                row.reasons.append("Day off (working hours)")
            else:
                row.working_hours = {
                    "start": hours.start or self.config.default_day_start,
                    "end": hours.end or self.config.default_day_end,
                }

            time_off = member.time_off_on(current)
            if time_off:
                row.available = False
                row.reasons.append(f"Time off: {time_off.type or 'scheduled'}")

            row.blocks = self.get_blocks_for_tech_on_date(blocks, member.id, current)
            all_day = [b for b in row.blocks if is_all_day(b)]
            if all_day:
                row.available = False
                row.reasons.append(self.block_title(all_day[0]))

            row.job_ids = [j.id for j in jobs_for_tech_on_date(jobs, member.id, current)]
            report.append(row)
            current += timedelta(days=1)
        return report
