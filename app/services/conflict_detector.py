"""
Conflict detector - cross-checks a proposed crew and its day segments
against the directory, availability blocks and already-committed jobs.

Error findings block a commit; warnings are returned with the result.
"""
import logging
from typing import Iterable, Optional

from app.core.dispatch_config import DispatchConfig, WEEKDAYS
from app.schemas.availability import AvailabilityBlockResponse
from app.schemas.dispatch import ConflictFinding, ConflictReport, CrewShortage, CrewSizeValidation
from app.schemas.job import CrewAssignment, DaySegment, JobResponse
from app.schemas.technician import CrewMemberResponse
from app.services.availability_service import AvailabilityResolver
from app.services.crew_suggestion_service import CrewSuggestionScorer

logger = logging.getLogger(__name__)

ERROR = "error"
WARNING = "warning"

# Findings that take a member out of the day's usable headcount
UNUSABLE_TYPES = ("day_off", "unavailable", "capacity", "unknown_member")


class ConflictDetector:
    """Commit-time validation of crew assignments"""

    def __init__(self, config: DispatchConfig, resolver: Optional[AvailabilityResolver] = None):
        self.config = config
        self.resolver = resolver or AvailabilityResolver(config)
        self.scorer = CrewSuggestionScorer(config)

    def required_crew_size(self, job: JobResponse) -> int:
        if job.required_crew_size:
            return job.required_crew_size
        return self.scorer.classify_complexity(job).suggested_crew

    def maximum_crew_size(self, job: JobResponse) -> int:
        return max(self.scorer.classify_complexity(job).max_crew, self.required_crew_size(job))

    def detect_conflicts(
        self,
        crew: list[CrewAssignment],
        segments: list[DaySegment],
        directory: Iterable[CrewMemberResponse],
        blocks: Iterable[AvailabilityBlockResponse] = (),
        existing_jobs: Iterable[JobResponse] = (),
        job_id: Optional[str] = None,
        required_size: Optional[int] = None,
    ) -> ConflictReport:
        members = {m.id: m for m in directory}
        blocks, existing_jobs = list(blocks), list(existing_jobs)
        report = ConflictReport()

        for assignment in crew:
            member = members.get(assignment.tech_id)
            name = member.name if member else assignment.tech_name
            if member is None:
                report.conflicts.append(
                    ConflictFinding(
                        tech_id=assignment.tech_id,
                        tech_name=name,
                        type="unknown_member",
                        severity=ERROR,
                        message=f"{name} is not in the crew directory",
                    )
                )
                continue
            for segment in segments:
                report.conflicts.extend(
                    self._check_member_day(member, segment, blocks, existing_jobs, job_id)
                )

        if len(segments) > 1 and required_size:
            report.shortages = self._shortages(crew, segments, report.conflicts, required_size)

        report.has_conflicts = bool(report.conflicts or report.shortages)
        report.has_errors = any(c.severity == ERROR for c in report.conflicts)
        if report.has_errors:
            logger.info(
                f"Crew for job {job_id} has {len(report.errors)} blocking conflict(s)"
            )
        return report

    def _check_member_day(
        self,
        member: CrewMemberResponse,
        segment: DaySegment,
        blocks: list[AvailabilityBlockResponse],
        existing_jobs: list[JobResponse],
        job_id: Optional[str],
    ) -> list[ConflictFinding]:
        verdict = self.resolver.check_availability(
            member,
            segment.date,
            blocks,
            existing_jobs,
            segment.start_time,
            segment.end_time,
            exclude_job_id=job_id,
        )

        def finding(kind: str, severity: str, message: str) -> ConflictFinding:
            return ConflictFinding(
                tech_id=member.id,
                tech_name=member.name,
                date=segment.date,
                day_number=segment.day_number,
                type=kind,
                severity=severity,
                message=message,
            )

        if verdict.blocking_kind == "day_off":
            weekday = WEEKDAYS[segment.date.weekday()]
            return [finding("day_off", ERROR, f"{member.name} doesn't work on {weekday}s")]
        if verdict.blocking_kind in ("time_off", "all_day_block"):
            reason = "time off" if verdict.blocking_kind == "time_off" else verdict.blocking_reason
            return [
                finding("unavailable", ERROR, f"{member.name} is unavailable on {segment.date}: {reason}")
            ]

        findings = []
        capacity = member.max_jobs_per_day or self.config.default_max_jobs_per_day
        if verdict.jobs_on_day >= capacity:
            findings.append(
                finding(
                    "capacity",
                    WARNING,
                    f"{member.name} already has {verdict.jobs_on_day} jobs scheduled on {segment.date}",
                )
            )
        if verdict.blocking_kind == "time_window":
            findings.append(
                finding(
                    "partial_block",
                    WARNING,
                    f"{member.name} has a partial-day block on {segment.date}: {verdict.blocking_reason}",
                )
            )
        if verdict.overlapping_jobs:
            titles = ", ".join(j.title or j.job_id for j in verdict.overlapping_jobs)
            findings.append(
                finding(
                    "job_overlap",
                    WARNING,
                    f"{member.name} overlaps existing job(s) on {segment.date}: {titles}",
                )
            )
        return findings

    def _shortages(
        self,
        crew: list[CrewAssignment],
        segments: list[DaySegment],
        findings: list[ConflictFinding],
        required_size: int,
    ) -> list[CrewShortage]:
        shortages = []
        for segment in segments:
            unusable = {
                f.tech_id
                for f in findings
                if f.type in UNUSABLE_TYPES and (f.date is None or f.date == segment.date)
            }
            usable = sum(1 for m in crew if m.tech_id not in unusable)
            if usable < required_size:
                deficit = required_size - usable
                shortages.append(
                    CrewShortage(
                        date=segment.date,
                        day_number=segment.day_number,
                        available_count=usable,
                        required_count=required_size,
                        deficit=deficit,
                        message=f"Day {segment.day_number} ({segment.date}) is short {deficit} tech(s)",
                    )
                )
        return shortages


def validate_crew_size(assigned_size: int, required_size: int, maximum_size: Optional[int] = None) -> CrewSizeValidation:
    """Staffing status of a crew against its required and maximum size."""
    required_size = max(required_size or 1, 1)
    maximum_size = maximum_size or required_size + 2
    result = CrewSizeValidation(
        is_valid=False,
        status="unassigned",
        assigned_size=assigned_size,
        required_size=required_size,
        maximum_size=maximum_size,
    )

    if assigned_size == 0:
        result.messages.append(f"Job requires {required_size} tech(s) but none assigned")
        return result

    result.is_valid = True
    if assigned_size < required_size:
        result.status = "understaffed"
        result.messages.append(
            f"Job ideally needs {required_size} tech(s), only {assigned_size} assigned"
        )
    elif assigned_size > maximum_size:
        result.status = "overstaffed"
        result.messages.append(f"Job only needs {required_size} tech(s), {assigned_size} assigned")
    else:
        result.status = "valid"
    return result
