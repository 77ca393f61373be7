"""Exhaustive final pass: set packing over every valid team in the residual pool."""

import logging
from itertools import combinations
from math import comb

from pulp import PULP_CBC_CMD, LpMaximize, LpProblem, LpVariable, lpSum, value
from pulp.constants import LpStatusOptimal

from casematch.builder import CandidateTeam
from casematch.composition import composition_allows
from casematch.config import MatchingConfig
from casematch.scoring import CompatibilityScorer
from casematch.types import Participant

log = logging.getLogger(__name__)

# Covering one more participant always outweighs any score difference
COVERAGE_WEIGHT = 1000


def enumerate_candidate_teams(
    pool: list[Participant], config: MatchingConfig, scorer: CompatibilityScorer
) -> list[CandidateTeam]:
    """
    List every acceptable team in the pool.

    A team is acceptable when all members requested its size, the group
    satisfies every composition preference, and it clears the threshold.
    Buckets with more than ``config.exhaustive_limit`` combinations are skipped.
    """
    candidates: list[CandidateTeam] = []
    for size in sorted({p.team_size_preference for p in pool}):
        bucket = [p for p in pool if p.team_size_preference == size]
        if len(bucket) < size:
            continue
        count = comb(len(bucket), size)
        if count > config.exhaustive_limit:
            log.warning(
                "Skipping exhaustive search for size %d: %d combinations exceeds limit %d",
                size,
                count,
                config.exhaustive_limit,
            )
            continue
        for combo in combinations(bucket, size):
            members = list(combo)
            if not composition_allows(members):
                continue
            score = scorer.team_score(members)
            if score >= config.compatibility_threshold:
                candidates.append(CandidateTeam(members=members, score=score))
    return candidates


class ResidualTeamSolver:
    """
    ILP that picks a disjoint set of candidate teams from the residual pool.

    Objective: maximise matched participants first, total team score second.
    """

    def __init__(self, config: MatchingConfig, scorer: CompatibilityScorer):
        self.config = config
        self.scorer = scorer

    def solve(self, pool: list[Participant]) -> list[CandidateTeam]:
        candidates = enumerate_candidate_teams(pool, self.config, self.scorer)
        if not candidates:
            return []

        model = LpProblem("Residual-Team-Packing", LpMaximize)
        x = {
            idx: LpVariable(f"team_{idx}", cat="Binary")
            for idx in range(len(candidates))
        }
        model += lpSum(
            x[idx] * (COVERAGE_WEIGHT * len(team.members) + team.score)
            for idx, team in enumerate(candidates)
        )

        # Each participant joins at most one team
        membership: dict[str, list[int]] = {}
        for idx, team in enumerate(candidates):
            for member in team.members:
                membership.setdefault(member.id, []).append(idx)
        for indices in membership.values():
            model += lpSum(x[idx] for idx in indices) <= 1

        status_code = model.solve(PULP_CBC_CMD(msg=False))
        if status_code != LpStatusOptimal:
            log.warning("Residual packing did not reach an optimal solution")
            return []

        selected = []
        for idx, team in enumerate(candidates):
            var_value = value(x[idx])
            if var_value is not None and round(var_value) == 1:
                selected.append(team)
        return selected
