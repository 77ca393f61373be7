"""Compatibility scoring for candidate teams."""

from collections.abc import Sequence
from itertools import combinations

from casematch.config import ScoringWeights
from casematch.types import Participant

# Alignment by absolute distance between availability tiers
AVAILABILITY_ALIGNMENT = {0: 1.0, 1: 0.75, 2: 0.25, 3: 0.0}

SAME_EXPERIENCE_BALANCE = 0.4


def skill_complementarity(members: Sequence[Participant]) -> float:
    """Distinct core strengths over total strength mentions."""
    mentions = sum(len(set(m.core_strengths)) for m in members)
    if mentions == 0:
        return 0.5
    distinct = len({s for m in members for s in m.core_strengths})
    return distinct / mentions


def availability_alignment(members: Sequence[Participant]) -> float:
    """Mean pairwise alignment of availability tiers."""
    n = len(members)
    if n < 2:
        return 0.0
    total = sum(
        AVAILABILITY_ALIGNMENT[abs(a.availability - b.availability)]
        for a, b in combinations(members, 2)
    )
    return total / (n * (n - 1) // 2)


def case_overlap(members: Sequence[Participant]) -> float:
    """Share of members holding the most common case type."""
    counts: dict[str, int] = {}
    for member in members:
        for case in set(member.case_preferences):
            counts[case] = counts.get(case, 0) + 1
    if not counts:
        return 0.0
    return max(counts.values()) / len(members)


def institutional_diversity(members: Sequence[Participant]) -> float:
    """Distinct institutions over team size; blank names count as distinct."""
    if not members:
        return 0.0
    named = [m.institution.strip().lower() for m in members if m.institution.strip()]
    blanks = len(members) - len(named)
    return (len(set(named)) + blanks) / len(members)


def experience_balance(members: Sequence[Participant]) -> float:
    """Reward a spread of experience tiers over an all-novice or all-expert team."""
    if len(members) < 2:
        return 0.0
    distinct = len({m.experience for m in members})
    if distinct == 1:
        return SAME_EXPERIENCE_BALANCE
    span = min(len(members), 4) - 1
    return 0.6 + 0.4 * (distinct - 1) / span


class CompatibilityScorer:
    """
    Weighted 0-100 compatibility score for a group of participants.

    Scores are memoised by member ids, so a scorer must only see one batch of
    participants at a time; ``clear_cache`` starts a new batch.

    Attributes:
        weights: Relative weight of each component
    """

    def __init__(self, weights: ScoringWeights | None = None):
        self.weights = weights or ScoringWeights()
        self._cache: dict[tuple[str, ...], float] = {}

    def clear_cache(self) -> None:
        self._cache.clear()

    def breakdown(self, members: Sequence[Participant]) -> dict[str, float]:
        """Per-component values in [0, 1]."""
        return {
            "skills": skill_complementarity(members),
            "availability": availability_alignment(members),
            "case_overlap": case_overlap(members),
            "institution": institutional_diversity(members),
            "experience": experience_balance(members),
        }

    def team_score(self, members: Sequence[Participant]) -> float:
        """Score a whole team; fewer than two members score 0."""
        if len(members) < 2:
            return 0.0
        key = tuple(sorted(m.id for m in members))
        score = self._cache.get(key)
        if score is None:
            score = self._cache[key] = self._weighted_score(members)
        return score

    def pair_score(self, a: Participant, b: Participant) -> float:
        key = (a.id, b.id) if a.id <= b.id else (b.id, a.id)
        score = self._cache.get(key)
        if score is None:
            score = self._cache[key] = self._weighted_score([a, b])
        return score

    def affinity(self, candidate: Participant, team: Sequence[Participant]) -> float:
        """Mean pair score of a candidate against the team so far."""
        if not team:
            return 0.0
        return sum(self.pair_score(candidate, m) for m in team) / len(team)

    def _weighted_score(self, members: Sequence[Participant]) -> float:
        parts = self.breakdown(members)
        w = self.weights
        weighted = (
            w.skills * parts["skills"]
            + w.availability * parts["availability"]
            + w.case_overlap * parts["case_overlap"]
            + w.institution * parts["institution"]
            + w.experience * parts["experience"]
        )
        return round(min(100.0, max(0.0, weighted * 100)), 2)
