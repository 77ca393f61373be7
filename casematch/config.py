"""Configuration for the team matching engine."""

import math
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ScoringWeights:
    """Relative weight of each compatibility component.

    Attributes:
        skills: Reward for complementary (non-overlapping) core strengths.
        availability: Reward for identical or adjacent availability tiers.
        case_overlap: Reward for shared case competition interests.
        institution: Bonus for members from different institutions.
        experience: Bonus for a mix of experience tiers.

    Raises:
        ValueError: If a weight is negative or the weights do not sum to 1.
    """

    skills: float = 0.30
    availability: float = 0.25
    case_overlap: float = 0.15
    institution: float = 0.10
    experience: float = 0.20

    def __post_init__(self) -> None:
        values = (
            self.skills,
            self.availability,
            self.case_overlap,
            self.institution,
            self.experience,
        )
        if any(v < 0 for v in values):
            raise ValueError("scoring weights must be non-negative")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-6):
            raise ValueError("scoring weights must sum to 1.0")


@dataclass(frozen=True)
class MatchingConfig:
    """Immutable settings for a matching run.

    Attributes:
        min_team_size: Smallest valid team.
        max_team_size: Largest valid team.
        compatibility_threshold: Minimum whole-team score (0-100) for a team
            to be accepted.
        max_iterations: Upper bound on controller iterations.
        max_potential_matches: Potential matches listed per unmatched participant.
        search_limit: Combinations examined per size bucket in one widened
            builder call.
        search_width: Closest partners (by pair score) a lead combines in the
            widened phase.
        exhaustive_limit: Candidate combinations allowed per size bucket in
            the exhaustive phase; larger buckets are skipped.
        weights: Scoring weights.

    Raises:
        ValueError: If any bound is inconsistent.
    """

    min_team_size: int = 2
    max_team_size: int = 4
    compatibility_threshold: float = 70.0
    max_iterations: int = 30
    max_potential_matches: int = 5
    search_limit: int = 2000
    search_width: int = 8
    exhaustive_limit: int = 10000
    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self) -> None:
        if self.min_team_size < 2:
            raise ValueError("min_team_size must be at least 2")
        if self.max_team_size < self.min_team_size:
            raise ValueError("max_team_size must be >= min_team_size")
        if not 0 <= self.compatibility_threshold <= 100:
            raise ValueError("compatibility_threshold must be between 0 and 100")
        if self.max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        if self.max_potential_matches < 0:
            raise ValueError("max_potential_matches must be non-negative")
        if self.search_limit < 1 or self.search_width < 1 or self.exhaustive_limit < 1:
            raise ValueError("search limits must be positive")

    def is_valid_size(self, size: int | None) -> bool:
        """Whether a requested team size can ever be honoured."""
        return size is not None and self.min_team_size <= size <= self.max_team_size
