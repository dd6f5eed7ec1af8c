from pydantic import BaseModel, Field
from typing import Optional
from datetime import date as date_type

from app.schemas.job import CrewAssignment, JobResponse


class ConflictFinding(BaseModel):
    """One (member, day) scheduling problem. Errors block commit, warnings do not."""
    tech_id: str
    tech_name: str
    date: Optional[date_type] = None
    day_number: Optional[int] = None
    # day_off | unavailable | capacity | partial_block | job_overlap | unknown_member
    type: str
    severity: str  # error | warning
    message: str


class CrewShortage(BaseModel):
    date: date_type
    day_number: int
    available_count: int
    required_count: int
    deficit: int
    message: str


class ConflictReport(BaseModel):
    has_conflicts: bool = False
    has_errors: bool = False
    conflicts: list[ConflictFinding] = Field(default_factory=list)
    shortages: list[CrewShortage] = Field(default_factory=list)

    @property
    def errors(self) -> list[ConflictFinding]:
        return [c for c in self.conflicts if c.severity == "error"]

    @property
    def warnings(self) -> list[ConflictFinding]:
        return [c for c in self.conflicts if c.severity == "warning"]


class CrewSizeValidation(BaseModel):
    is_valid: bool
    status: str  # valid | understaffed | overstaffed | unassigned
    assigned_size: int
    required_size: int
    maximum_size: int
    messages: list[str] = Field(default_factory=list)


class AlternativeCandidate(BaseModel):
    tech_id: str
    tech_name: str
    score: float
    can_replace: str = "any"


class ScoredCandidate(BaseModel):
    tech_id: str
    tech_name: str
    score: float
    jobs_today: int
    notes: list[str] = Field(default_factory=list)


class CrewSuggestion(BaseModel):
    job_id: Optional[str] = None
    date: Optional[date_type] = None
    complexity: str
    suggested_crew_size: int
    max_crew_size: int
    suggested_crew: list[CrewAssignment] = Field(default_factory=list)
    alternatives: list[AlternativeCandidate] = Field(default_factory=list)
    ranked: list[ScoredCandidate] = Field(default_factory=list)
    reasoning: list[str] = Field(default_factory=list)
    reason: Optional[str] = None


class CrewCheckRequest(BaseModel):
    crew: list[CrewAssignment]


class CrewCommitResult(BaseModel):
    """Successful commit plus any soft conflicts the dispatcher should see."""
    job: JobResponse
    warnings: list[ConflictFinding] = Field(default_factory=list)
    shortages: list[CrewShortage] = Field(default_factory=list)
    crew_validation: Optional[CrewSizeValidation] = None
