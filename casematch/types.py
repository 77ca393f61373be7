"""Type definitions for the case-competition team matcher."""

from dataclasses import dataclass, field
from enum import Enum, IntEnum

POSTGRADUATE_MARKERS = ("pg", "mba", "master", "postgrad", "post grad")


class TeamComposition(Enum):
    """Who a participant is willing to have on their team."""

    UNDERGRADS_ONLY = "Undergrads only"
    POSTGRADS_ONLY = "Postgrads only"
    EITHER = "Either UG or PG"


class EducationLevel(Enum):
    """Education level derived from the study-year label."""

    UNDERGRADUATE = "Undergraduate"
    POSTGRADUATE = "Postgraduate"


class Availability(IntEnum):
    """Self-reported availability tier, ordered from least to most available."""

    NOT_AVAILABLE = 0
    LIGHT = 1
    MODERATE = 2
    FULL = 3


class Experience(IntEnum):
    """Self-reported case competition experience tier."""

    NONE = 0
    PARTICIPATED_1_2 = 1
    PARTICIPATED_3_PLUS = 2
    FINALIST_WINNER = 3


class ParticipantStatus(Enum):
    """Lifecycle flag of a submission."""

    PENDING_MATCH = "pending_match"
    TEAM_FORMED = "team_formed"


class ReasonCategory(Enum):
    """Why a participant could not be placed."""

    TEAM_SIZE = "TEAM_SIZE"
    TEAM_PREFERENCE = "TEAM_PREFERENCE"
    COMPATIBILITY = "COMPATIBILITY"
    AVAILABILITY = "AVAILABILITY"
    INSUFFICIENT_CANDIDATES = "INSUFFICIENT_CANDIDATES"
    QUALITY_THRESHOLD = "QUALITY_THRESHOLD"


class Severity(Enum):
    """How hard a reason is to resolve."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class MatchingPhase(Enum):
    """Strategy phase of the matching controller."""

    STRICT = "strict"
    RESHUFFLE = "reshuffle"
    WIDENED = "widened"
    EXHAUSTIVE = "exhaustive"
    DONE = "done"


@dataclass
class Participant:
    """One questionnaire submission.

    ``team_size_preference`` and ``composition`` are ``None`` when the
    submitted value was missing or could not be recognised.
    """

    id: str
    full_name: str
    email: str = ""
    contact_number: str = ""
    institution: str = ""
    study_year: str = ""
    core_strengths: list[str] = field(default_factory=list)
    preferred_roles: list[str] = field(default_factory=list)
    case_preferences: list[str] = field(default_factory=list)
    team_size_preference: int | None = None
    composition: TeamComposition | None = None
    availability: Availability = Availability.MODERATE
    experience: Experience = Experience.NONE
    status: ParticipantStatus = ParticipantStatus.PENDING_MATCH

    @property
    def education_level(self) -> EducationLevel:
        label = self.study_year.lower()
        if any(marker in label for marker in POSTGRADUATE_MARKERS):
            return EducationLevel.POSTGRADUATE
        return EducationLevel.UNDERGRADUATE


@dataclass
class Team:
    """A scored grouping produced by the engine, before persistence."""

    id: str
    members: list[Participant]
    compatibility_score: float
    common_case_types: list[str]
    preferred_team_size_match: float
    average_experience: float
    phase: MatchingPhase
    iteration: int

    @property
    def team_size(self) -> int:
        return len(self.members)


@dataclass
class Reason:
    """A single diagnostic entry explaining a non-assignment."""

    category: ReasonCategory
    severity: Severity
    title: str
    description: str
    details: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


@dataclass
class PotentialMatch:
    """Another unmatched participant and what keeps the pair apart."""

    participant: Participant
    compatibility_score: float
    blocking_issues: list[str] = field(default_factory=list)


@dataclass
class CandidateStatistics:
    """Pool depth seen from one unmatched participant."""

    total_candidates: int
    same_team_size: int
    compatible_composition: int
    eligible: int  # same size and compatible composition
    availability_compatible: int
    high_compatibility: int


@dataclass
class UnmatchedRecord:
    """Structured explanation for a participant left out of every team."""

    participant: Participant
    reasons: list[Reason]
    potential_matches: list[PotentialMatch]
    statistics: CandidateStatistics
    recommendations: list[str] = field(default_factory=list)


@dataclass
class UnmatchedSummary:
    """Roll-up of all unmatched records in a run."""

    total_unmatched: int
    reason_breakdown: dict[str, int]
    common_issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class IterationRecord:
    """Outcome of one controller iteration."""

    iteration: int
    phase: MatchingPhase
    participants_processed: int
    teams_formed: int
    participants_matched: int
    remaining_unmatched: int
    rejected_teams: int
    efficiency: float


@dataclass
class MatchingStatistics:
    """Aggregate metrics for a matching run."""

    total_participants: int
    teams_formed: int
    participants_matched: int
    average_team_size: float
    matching_efficiency: float
    team_size_distribution: dict[int, int]
    case_type_distribution: dict[str, int]
    iterations: int
    constraint_violations: list[str] = field(default_factory=list)


@dataclass
class MatchingResult:
    """Complete result from the engine."""

    teams: list[Team]
    unmatched: list[UnmatchedRecord]
    statistics: MatchingStatistics
    iterations: list[IterationRecord] = field(default_factory=list)
    summary: UnmatchedSummary | None = None
