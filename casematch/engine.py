"""Team formation engine: phase-driven matching over a batch of submissions."""

import logging
from collections import Counter

from casematch.analysis import analyze_unmatched
from casematch.builder import BuildStrategy, CandidateTeam, GreedyTeamBuilder
from casematch.composition import composition_allows
from casematch.config import MatchingConfig
from casematch.exhaustive import ResidualTeamSolver
from casematch.scoring import CompatibilityScorer
from casematch.types import (
    IterationRecord,
    MatchingPhase,
    MatchingResult,
    MatchingStatistics,
    Participant,
    Team,
)
from casematch.validation import validate_participant

log = logging.getLogger(__name__)

_PHASE_ORDER = [
    MatchingPhase.STRICT,
    MatchingPhase.RESHUFFLE,
    MatchingPhase.WIDENED,
    MatchingPhase.EXHAUSTIVE,
    MatchingPhase.DONE,
]


def phase_budget(phase: MatchingPhase, max_iterations: int) -> int:
    """Iterations a phase may use before the controller moves on."""
    if phase in (MatchingPhase.STRICT, MatchingPhase.RESHUFFLE):
        return max(1, max_iterations // 3)
    if phase == MatchingPhase.EXHAUSTIVE:
        return 1
    return max_iterations


def next_phase(
    phase: MatchingPhase,
    teams_formed: int,
    phase_iterations: int,
    iterations_left: int,
    max_iterations: int,
) -> MatchingPhase:
    """
    Transition function of the matching controller.

    A phase repeats while it keeps forming teams and has budget left. A pass
    that forms no team, or an exhausted budget, advances to the next phase.
    The final remaining iteration always belongs to the exhaustive phase, and
    nothing follows it.
    """
    if phase in (MatchingPhase.EXHAUSTIVE, MatchingPhase.DONE):
        return MatchingPhase.DONE
    if iterations_left <= 0:
        return MatchingPhase.DONE
    if iterations_left == 1:
        return MatchingPhase.EXHAUSTIVE
    if teams_formed == 0 or phase_iterations >= phase_budget(phase, max_iterations):
        return _PHASE_ORDER[_PHASE_ORDER.index(phase) + 1]
    return phase


class TeamFormationEngine:
    """
    Partition participants into teams plus an explained unmatched residue.

    The engine is a pure function of its input: it performs no I/O, keeps no
    state between runs and never relaxes team size or composition.

    Attributes:
        config: Matching settings
        scorer: Compatibility scorer built from the configured weights
    """

    def __init__(self, config: MatchingConfig | None = None):
        self.config = config or MatchingConfig()
        self.scorer = CompatibilityScorer(self.config.weights)
        self._builder = GreedyTeamBuilder(self.config, self.scorer)
        self._residual_solver = ResidualTeamSolver(self.config, self.scorer)

    def run(self, participants: list[Participant]) -> MatchingResult:
        """
        Form teams from a batch of participants.

        Raises:
            ValueError: If two participants share an id
        """
        seen: set[str] = set()
        for p in participants:
            if p.id in seen:
                raise ValueError(f"Duplicate participant id '{p.id}'")
            seen.add(p.id)

        log.info("Starting team formation for %d participants", len(participants))
        self.scorer.clear_cache()

        pool = []
        for p in participants:
            problems = validate_participant(p, self.config)
            if problems:
                log.info("Excluding %s: %s", p.id, problems[0].title)
            else:
                pool.append(p)

        accepted, history = self._run_phases(pool)

        teams = [
            self._to_team(f"team-{idx}", candidate, phase, iteration)
            for idx, (candidate, phase, iteration) in enumerate(accepted, start=1)
        ]
        matched = {m.id for team in teams for m in team.members}
        unmatched = [p for p in participants if p.id not in matched]

        records, summary = analyze_unmatched(unmatched, teams, self.config, self.scorer)
        statistics = self._calculate_statistics(participants, teams, len(history))
        self.scorer.clear_cache()

        log.info(
            "Team formation complete: %d teams, %d/%d matched, %d unmatched",
            len(teams),
            statistics.participants_matched,
            len(participants),
            len(unmatched),
        )
        return MatchingResult(
            teams=teams,
            unmatched=records,
            statistics=statistics,
            iterations=history,
            summary=summary,
        )

    def _run_phases(
        self, pool: list[Participant]
    ) -> tuple[list[tuple[CandidateTeam, MatchingPhase, int]], list[IterationRecord]]:
        accepted: list[tuple[CandidateTeam, MatchingPhase, int]] = []
        history: list[IterationRecord] = []
        remaining = list(pool)
        max_iterations = self.config.max_iterations

        phase = MatchingPhase.STRICT if max_iterations > 1 else MatchingPhase.EXHAUSTIVE
        phase_iterations = 0
        iteration = 0

        while phase != MatchingPhase.DONE and len(remaining) >= self.config.min_team_size:
            iteration += 1
            phase_iterations += 1
            processed = len(remaining)

            if phase == MatchingPhase.EXHAUSTIVE:
                formed = self._residual_solver.solve(remaining)
                rejected = 0
            else:
                outcome = self._builder.build(
                    remaining, self._strategy(phase, phase_iterations)
                )
                formed, rejected = outcome.teams, outcome.rejected

            matched_ids = {m.id for team in formed for m in team.members}
            remaining = [p for p in remaining if p.id not in matched_ids]
            accepted.extend((team, phase, iteration) for team in formed)

            history.append(
                IterationRecord(
                    iteration=iteration,
                    phase=phase,
                    participants_processed=processed,
                    teams_formed=len(formed),
                    participants_matched=len(matched_ids),
                    remaining_unmatched=len(remaining),
                    rejected_teams=rejected,
                    efficiency=len(matched_ids) / processed * 100 if processed else 0.0,
                )
            )
            log.info(
                "Iteration %d (%s): %d teams formed, %d matched, %d remaining",
                iteration,
                phase.value,
                len(formed),
                len(matched_ids),
                len(remaining),
            )

            new_phase = next_phase(
                phase,
                len(formed),
                phase_iterations,
                max_iterations - iteration,
                max_iterations,
            )
            if new_phase != phase:
                phase, phase_iterations = new_phase, 0

        return accepted, history

    def _strategy(self, phase: MatchingPhase, phase_iteration: int) -> BuildStrategy:
        if phase == MatchingPhase.RESHUFFLE:
            return BuildStrategy(
                lead_rotation=phase_iteration,
                reverse_partners=phase_iteration % 2 == 1,
            )
        if phase == MatchingPhase.WIDENED:
            return BuildStrategy(widened_search=True)
        return BuildStrategy()

    def _to_team(
        self,
        team_id: str,
        candidate: CandidateTeam,
        phase: MatchingPhase,
        iteration: int,
    ) -> Team:
        members = candidate.members
        size = len(members)

        counts: Counter[str] = Counter()
        for member in members:
            counts.update(set(member.case_preferences))
        shared = [case for case, count in counts.most_common() if count == size]
        common = shared or [case for case, count in counts.most_common() if count >= 2]

        size_matches = sum(1 for m in members if m.team_size_preference == size)
        return Team(
            id=team_id,
            members=members,
            compatibility_score=candidate.score,
            common_case_types=common,
            preferred_team_size_match=size_matches / size * 100,
            average_experience=sum(int(m.experience) for m in members) / size,
            phase=phase,
            iteration=iteration,
        )

    def _calculate_statistics(
        self, participants: list[Participant], teams: list[Team], iterations: int
    ) -> MatchingStatistics:
        """Calculate run metrics and re-check the team invariants."""
        matched = sum(team.team_size for team in teams)
        total = len(participants)

        case_distribution: Counter[str] = Counter()
        for team in teams:
            case_distribution.update(team.common_case_types)

        violations = []
        for team in teams:
            size = team.team_size
            if not self.config.min_team_size <= size <= self.config.max_team_size:
                violations.append(f"Team {team.id} has {size} members")
            if not composition_allows(team.members):
                violations.append(f"Team {team.id} breaks a composition preference")
            if any(m.team_size_preference != size for m in team.members):
                violations.append(f"Team {team.id} ignores a team size preference")
            if team.compatibility_score < self.config.compatibility_threshold:
                violations.append(
                    f"Team {team.id} scores {team.compatibility_score} below the threshold"
                )

        return MatchingStatistics(
            total_participants=total,
            teams_formed=len(teams),
            participants_matched=matched,
            average_team_size=matched / len(teams) if teams else 0.0,
            matching_efficiency=matched / total * 100 if total else 0.0,
            team_size_distribution=dict(sorted(Counter(t.team_size for t in teams).items())),
            case_type_distribution=dict(case_distribution),
            iterations=iterations,
            constraint_violations=violations,
        )


def form_teams(
    participants: list[Participant], config: MatchingConfig | None = None
) -> MatchingResult:
    """
    Form case competition teams from questionnaire submissions.

    This is a convenience wrapper around TeamFormationEngine.

    Parameters:
        participants: Submissions not yet linked to a team, in submission order
        config: Matching settings (defaults: sizes 2-4, threshold 70,
                30 iterations)

    Returns:
        MatchingResult with teams, unmatched records and statistics
    """
    return TeamFormationEngine(config).run(participants)
