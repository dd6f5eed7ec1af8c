"""
Crew suggestion scorer - ranks crew members for a job on a date
based on skills, seniority, current load, and customer preference.

Never raises: an empty candidate pool gives an empty suggestion with a reason.
"""
import logging
from datetime import date
from typing import Iterable, Optional

from app.core.dispatch_config import ComplexityLevel, DispatchConfig
from app.schemas.dispatch import AlternativeCandidate, CrewSuggestion, ScoredCandidate
from app.schemas.job import CrewRole, JobResponse
from app.schemas.technician import CrewMemberResponse
from app.services.crew_utils import create_crew_assignment, job_dates, jobs_for_tech_on_date

logger = logging.getLogger(__name__)


class CrewSuggestionScorer:
    """Heuristic crew ranking"""

    def __init__(self, config: DispatchConfig):
        self.config = config

    def classify_complexity(self, job: JobResponse) -> ComplexityLevel:
        """Explicit label wins; otherwise tiered by estimated duration."""
        if job.complexity:
            level = self.config.complexity(job.complexity)
            if level:
                return level
        duration = job.estimated_duration_minutes or self.config.default_job_duration_minutes
        selected = self.config.complexity_levels[0]
        for level in self.config.complexity_levels:
            if duration >= level.min_duration_minutes:
                selected = level
        return selected

    def required_skills(self, category: Optional[str]) -> tuple:
        """Skills for the first mapped category contained in `category`; unmapped needs none."""
        category = (category or "General").lower()
        for key, skills in self.config.category_skills.items():
            if key.lower() in category:
                return skills
        return ()

    def score_member(
        self,
        member: CrewMemberResponse,
        job: JobResponse,
        jobs_today: int,
        required_skills: tuple,
    ) -> ScoredCandidate:
        score = 0.0
        notes = []

        if not required_skills or set(required_skills) & set(member.skills):
            score += self.config.skill_match_points
            notes.append("Has required skills")

        if self.config.is_senior(member.seniority_level):
            score += self.config.seniority_points
            notes.append("Senior tech")

        capacity = member.max_jobs_per_day or self.config.default_max_jobs_per_day
        score += self.config.load_balance_points * (1 - jobs_today / capacity)
        if jobs_today == 0:
            notes.append("No other jobs today")

        if job.preferred_tech_id and job.preferred_tech_id == member.id:
            score += self.config.preferred_tech_points
            notes.append("Customer preference")

        return ScoredCandidate(
            tech_id=member.id,
            tech_name=member.name,
            score=round(score, 2),
            jobs_today=jobs_today,
            notes=notes,
        )

    def suggest_crew(
        self,
        job: JobResponse,
        members: Iterable[CrewMemberResponse],
        existing_jobs: Iterable[JobResponse] = (),
        target_date: Optional[date] = None,
    ) -> CrewSuggestion:
        """Top-N members become lead + helpers; the next few are alternatives."""
        level = self.classify_complexity(job)
        suggestion = CrewSuggestion(
            job_id=job.id,
            complexity=level.id,
            suggested_crew_size=level.suggested_crew,
            max_crew_size=level.max_crew,
        )
        plural = "s" if level.suggested_crew > 1 else ""
        suggestion.reasoning.append(
            f"Job complexity: {level.id} (suggests {level.suggested_crew} tech{plural})"
        )

        if target_date is None:
            dates = job_dates(job)
            target_date = dates[0] if dates else None
        if target_date is None:
            suggestion.reason = "Job has no scheduled date"
            suggestion.reasoning.append(suggestion.reason)
            return suggestion
        suggestion.date = target_date

        existing_jobs = list(existing_jobs)
        by_id = {}
        candidates = []
        for member in members:
            if not member.is_active or not member.works_on(target_date):
                continue
            jobs_today = len(jobs_for_tech_on_date(existing_jobs, member.id, target_date, job.id))
            capacity = member.max_jobs_per_day or self.config.default_max_jobs_per_day
            if jobs_today >= capacity:
                continue
            by_id[member.id] = member
            candidates.append((member, jobs_today))

        if not candidates:
            suggestion.reason = "No techs available on this date"
            suggestion.reasoning.append(suggestion.reason)
            logger.info(f"No crew candidates for job {job.id} on {target_date}")
            return suggestion

        skills = self.required_skills(job.category)
        scored = [self.score_member(m, job, n, skills) for m, n in candidates]
        # sorted() is stable: equal scores keep directory order
        ranked = sorted(scored, key=lambda c: c.score, reverse=True)
        suggestion.ranked = ranked

        selected = min(level.suggested_crew, len(ranked))
        for i, candidate in enumerate(ranked[:selected]):
            role = CrewRole.LEAD if i == 0 else CrewRole.HELPER
            suggestion.suggested_crew.append(create_crew_assignment(by_id[candidate.tech_id], role))
            label = "Lead" if i == 0 else "Helper"
            fallback = "Best available" if i == 0 else "Available"
            suggestion.reasoning.append(
                f"{label}: {candidate.tech_name} - {', '.join(candidate.notes) or fallback}"
            )

        if selected < level.suggested_crew:
            suggestion.reasoning.append(
                f"Only {selected} of {level.suggested_crew} suggested techs available"
            )

        suggestion.alternatives = [
            AlternativeCandidate(tech_id=c.tech_id, tech_name=c.tech_name, score=c.score)
            for c in ranked[selected:selected + self.config.alternatives_count]
        ]
        return suggestion
