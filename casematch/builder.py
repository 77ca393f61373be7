"""Greedy team builder: partitions a pool into teams of each requested size."""

import logging
from dataclasses import dataclass, field
from itertools import combinations, islice

from casematch.composition import CompositionKey, composition_key, keys_compatible
from casematch.config import MatchingConfig
from casematch.scoring import CompatibilityScorer
from casematch.types import Participant

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildStrategy:
    """
    Attempt-order variations for one builder pass.

    None of these loosen the hard constraints.

    Attributes:
        lead_rotation: Rotate each size bucket by this many places before
            picking leads
        reverse_partners: Scan candidate teammates in reverse pool order,
            changing which candidate wins a tie
        widened_search: Search combinations of teammates instead of adding
            the single best candidate at each step
    """

    lead_rotation: int = 0
    reverse_partners: bool = False
    widened_search: bool = False


@dataclass
class CandidateTeam:
    """A scored group that cleared the acceptance threshold."""

    members: list[Participant]
    score: float


@dataclass
class BuildOutcome:
    """Teams formed by one builder call and the participants left over."""

    teams: list[CandidateTeam] = field(default_factory=list)
    remaining: list[Participant] = field(default_factory=list)
    rejected: int = 0


class GreedyTeamBuilder:
    """
    Lead-by-lead greedy grouping with exact team sizes.

    Participants are only grouped with others who requested the same size, and
    every group must satisfy all members' composition preferences. Completed
    groups below the compatibility threshold are disbanded.
    """

    def __init__(self, config: MatchingConfig, scorer: CompatibilityScorer):
        self.config = config
        self.scorer = scorer

    def build(self, pool: list[Participant], strategy: BuildStrategy) -> BuildOutcome:
        """
        Form as many teams as possible from the pool.

        Parameters:
            pool: Valid participants in submission order
            strategy: Attempt-order variation for this pass

        Returns:
            BuildOutcome with accepted teams, leftover participants and the
            number of completed groups rejected by the threshold
        """
        outcome = BuildOutcome()
        sizes = sorted({p.team_size_preference for p in pool})

        for size in sizes:
            bucket = [p for p in pool if p.team_size_preference == size]
            log.debug("Bucket size %d: %d candidates", size, len(bucket))
            teams, rejected = self._fill_bucket(bucket, size, strategy)
            outcome.teams.extend(teams)
            outcome.rejected += rejected

        matched = {m.id for team in outcome.teams for m in team.members}
        outcome.remaining = [p for p in pool if p.id not in matched]
        return outcome

    def _fill_bucket(
        self, bucket: list[Participant], size: int, strategy: BuildStrategy
    ) -> tuple[list[CandidateTeam], int]:
        keys = {p.id: composition_key(p) for p in bucket}
        teams: list[CandidateTeam] = []
        rejected: set[tuple[str, ...]] = set()
        search_budget = self.config.search_limit
        available = list(bucket)

        while len(available) >= size:
            taken: set[str] = set()
            formed_this_pass = 0
            for lead in self._lead_order(available, strategy):
                if lead.id in taken:
                    continue
                candidates = [p for p in available if p.id not in taken]
                if len(candidates) < size:
                    break
                if strategy.widened_search:
                    members, examined = self._search_best(
                        lead, candidates, size, strategy, keys, search_budget
                    )
                    search_budget -= examined
                else:
                    members = self._assemble_greedy(lead, candidates, size, strategy, keys)
                if members is None:
                    continue

                score = self.scorer.team_score(members)
                if score < self.config.compatibility_threshold:
                    group = tuple(sorted(m.id for m in members))
                    if group not in rejected:
                        rejected.add(group)
                        log.debug(
                            "Disbanded %d-member group led by %s (score %.2f)",
                            size,
                            lead.id,
                            score,
                        )
                    continue

                teams.append(CandidateTeam(members=members, score=score))
                taken.update(m.id for m in members)
                formed_this_pass += 1

            available = [p for p in available if p.id not in taken]
            if formed_this_pass == 0:
                break

        return teams, len(rejected)

    def _lead_order(
        self, available: list[Participant], strategy: BuildStrategy
    ) -> list[Participant]:
        if not available:
            return []
        k = strategy.lead_rotation % len(available)
        return available[k:] + available[:k]

    def _partner_order(
        self,
        lead: Participant,
        available: list[Participant],
        strategy: BuildStrategy,
        keys: dict[str, CompositionKey],
    ) -> list[Participant]:
        """Bucket mates the lead may team up with, in scan order."""
        lead_key = keys[lead.id]
        partners = [
            p for p in available if p is not lead and keys_compatible(lead_key, keys[p.id])
        ]
        if strategy.reverse_partners:
            partners.reverse()
        return partners

    def _assemble_greedy(
        self,
        lead: Participant,
        available: list[Participant],
        size: int,
        strategy: BuildStrategy,
        keys: dict[str, CompositionKey],
    ) -> list[Participant] | None:
        team = [lead]
        partners = self._partner_order(lead, available, strategy, keys)
        # Sum of pair scores against the team so far; ranks like the mean
        affinity = {p.id: self.scorer.pair_score(p, lead) for p in partners}

        while len(team) < size:
            best: Participant | None = None
            best_score = -1.0
            for candidate in partners:
                # Strict comparison keeps the first candidate on ties
                if affinity[candidate.id] > best_score:
                    best, best_score = candidate, affinity[candidate.id]
            if best is None:
                return None
            team.append(best)
            if len(team) == size:
                break
            best_key = keys[best.id]
            partners = [
                p for p in partners if p is not best and keys_compatible(best_key, keys[p.id])
            ]
            for p in partners:
                affinity[p.id] += self.scorer.pair_score(p, best)

        return team

    def _search_best(
        self,
        lead: Participant,
        available: list[Participant],
        size: int,
        strategy: BuildStrategy,
        keys: dict[str, CompositionKey],
        budget: int,
    ) -> tuple[list[Participant] | None, int]:
        """
        Highest-scoring acceptable team around a lead.

        Only the lead's ``search_width`` closest partners are combined, and at
        most ``budget`` combinations are scored.

        Returns:
            Tuple of (members or None, combinations examined)
        """
        if budget <= 0:
            return None, 0
        # sorted is stable, so equal pair scores keep scan order
        partners = sorted(
            self._partner_order(lead, available, strategy, keys),
            key=lambda p: self.scorer.pair_score(lead, p),
            reverse=True,
        )[: self.config.search_width]

        best: list[Participant] | None = None
        best_score = -1.0
        examined = 0
        for combo in islice(combinations(partners, size - 1), budget):
            examined += 1
            if not all(keys_compatible(keys[a.id], keys[b.id]) for a, b in combinations(combo, 2)):
                continue
            members = [lead, *combo]
            score = self.scorer.team_score(members)
            if score >= self.config.compatibility_threshold and score > best_score:
                best, best_score = members, score
        return best, examined
