"""
Unmatched participant analysis.

Explains, for every participant left out of the final teams, why no team
could be formed and who they came closest to matching with. Everything here
is derived from the final state of a run and has no side effects, so it can be
recomputed at any time.
"""

from collections import Counter

from casematch.composition import availability_compatible, composition_allows
from casematch.config import MatchingConfig
from casematch.scoring import CompatibilityScorer
from casematch.types import (
    Availability,
    CandidateStatistics,
    Participant,
    PotentialMatch,
    Reason,
    ReasonCategory,
    Severity,
    Team,
    TeamComposition,
    UnmatchedRecord,
    UnmatchedSummary,
)
from casematch.validation import validate_participant


def analyze_unmatched(
    unmatched: list[Participant],
    teams: list[Team],
    config: MatchingConfig,
    scorer: CompatibilityScorer | None = None,
) -> tuple[list[UnmatchedRecord], UnmatchedSummary]:
    """
    Build one record per unmatched participant plus a run-level summary.

    Parameters:
        unmatched: Participants left out of every team, in submission order
        teams: Teams formed in the run
        config: Settings the run used
        scorer: Scorer to reuse (and its cached pair scores); a fresh one
                is built from ``config.weights`` when omitted

    Returns:
        Tuple of (records, summary)
    """
    analyzer = UnmatchedAnalyzer(config, scorer)
    valid = [p for p in unmatched if not validate_participant(p, config)]
    records = [
        analyzer.analyze(participant, unmatched, teams, valid) for participant in unmatched
    ]
    return records, summarize(records)


class UnmatchedAnalyzer:
    """Classifies the reasons a single participant was left unmatched."""

    def __init__(self, config: MatchingConfig, scorer: CompatibilityScorer | None = None):
        self.config = config
        self.scorer = scorer or CompatibilityScorer(config.weights)

    def analyze(
        self,
        participant: Participant,
        unmatched: list[Participant],
        teams: list[Team],
        valid: list[Participant] | None = None,
    ) -> UnmatchedRecord:
        """
        Explain why one participant is unmatched.

        ``valid`` is the subset of ``unmatched`` that passes input validation;
        it is recomputed when omitted.
        """
        if valid is None:
            valid = [p for p in unmatched if not validate_participant(p, self.config)]
        others = [p for p in unmatched if p.id != participant.id]
        valid_others = [p for p in valid if p.id != participant.id]

        statistics = self.candidate_statistics(participant, valid_others)

        potential = [
            PotentialMatch(
                participant=other,
                compatibility_score=self.scorer.pair_score(participant, other),
            )
            for other in others
        ]
        # sort is stable, so ties keep submission order
        potential.sort(key=lambda m: m.compatibility_score, reverse=True)
        listed = potential[: self.config.max_potential_matches]
        for match in listed:
            match.blocking_issues = self.blocking_issues(participant, match.participant)

        reasons = validate_participant(participant, self.config)
        if not reasons:
            reasons = self._pool_reasons(participant, statistics, potential, teams)

        return UnmatchedRecord(
            participant=participant,
            reasons=reasons,
            potential_matches=listed,
            statistics=statistics,
            recommendations=self._recommendations(participant, reasons, statistics, potential),
        )

    def candidate_statistics(
        self, participant: Participant, candidates: list[Participant]
    ) -> CandidateStatistics:
        """Count how many candidates clear each matching requirement."""
        same_size = 0
        compatible = 0
        eligible = 0
        available = 0
        high = 0
        for other in candidates:
            size_ok = other.team_size_preference == participant.team_size_preference
            composition_ok = composition_allows([participant, other])
            same_size += size_ok
            compatible += composition_ok
            if size_ok and composition_ok:
                eligible += 1
                if availability_compatible(participant, other):
                    available += 1
                if self.scorer.pair_score(participant, other) >= self.config.compatibility_threshold:
                    high += 1
        return CandidateStatistics(
            total_candidates=len(candidates),
            same_team_size=same_size,
            compatible_composition=compatible,
            eligible=eligible,
            availability_compatible=available,
            high_compatibility=high,
        )

    def blocking_issues(self, participant: Participant, other: Participant) -> list[str]:
        issues = []
        if not self.config.is_valid_size(other.team_size_preference):
            issues.append(f"Invalid team size preference ({other.team_size_preference})")
        if participant.team_size_preference != other.team_size_preference:
            issues.append(
                f"Team size mismatch ({participant.team_size_preference} vs "
                f"{other.team_size_preference})"
            )
        if not composition_allows([participant, other]):
            issues.append(
                f"Team composition incompatible ({_composition_label(participant)} vs "
                f"{_composition_label(other)})"
            )
        if not availability_compatible(participant, other):
            issues.append(
                f"Availability mismatch ({participant.availability.name} vs "
                f"{other.availability.name})"
            )
        if not set(participant.case_preferences) & set(other.case_preferences):
            issues.append("No overlapping case type interests")
        return issues

    def _pool_reasons(
        self,
        participant: Participant,
        stats: CandidateStatistics,
        potential: list[PotentialMatch],
        teams: list[Team],
    ) -> list[Reason]:
        size = participant.team_size_preference
        needed = size - 1
        threshold = self.config.compatibility_threshold
        reasons: list[Reason] = []

        if stats.same_team_size < needed:
            reasons.append(
                Reason(
                    category=ReasonCategory.TEAM_SIZE,
                    severity=Severity.CRITICAL,
                    title=f"Insufficient candidates for team size {size}",
                    description=(
                        f"Only {stats.same_team_size} other unmatched participants "
                        f"prefer team size {size}"
                    ),
                    details=[
                        f"Participant prefers team size: {size}",
                        f"Needs {needed} teammates with the same preference",
                        f"Found: {stats.same_team_size}",
                        f"Shortfall: {needed - stats.same_team_size} participants",
                    ],
                    suggestions=[
                        f"Consider changing team size preference to {_most_popular_size(teams)}",
                        "Wait for more participants with the same team size preference",
                    ],
                )
            )

        if stats.total_candidates > 0 and stats.compatible_composition == 0:
            reasons.append(
                Reason(
                    category=ReasonCategory.TEAM_PREFERENCE,
                    severity=Severity.CRITICAL,
                    title="Team composition preference conflict",
                    description=(
                        f'No remaining participant is compatible with "{_composition_label(participant)}"'
                    ),
                    details=[
                        f"Participant wants: {_composition_label(participant)}",
                        f"Education level: {participant.education_level.value}",
                        "Compatible participants found: 0",
                        "Team composition preferences are strictly enforced",
                    ],
                    suggestions=[
                        'Consider changing team preference to "Either UG or PG"',
                        "Wait for more participants with compatible preferences",
                    ],
                )
            )
        elif stats.same_team_size >= needed and stats.eligible < needed:
            reasons.append(
                Reason(
                    category=ReasonCategory.TEAM_PREFERENCE,
                    severity=Severity.HIGH,
                    title="Too few candidates share both team size and composition",
                    description=(
                        f"{stats.eligible} of {stats.same_team_size} same-size candidates "
                        f"accept this team composition"
                    ),
                    details=[
                        f"Participant wants: {_composition_label(participant)}",
                        f"Eligible candidates: {stats.eligible}",
                        f"Needed: {needed}",
                    ],
                    suggestions=['Consider changing team preference to "Either UG or PG"'],
                )
            )

        if participant.availability == Availability.NOT_AVAILABLE:
            reasons.append(
                Reason(
                    category=ReasonCategory.AVAILABILITY,
                    severity=Severity.MEDIUM,
                    title="Not currently available",
                    description="Participant reported no availability for the coming weeks",
                    details=[f"Availability: {participant.availability.name}"],
                    suggestions=["Update availability once there is time for a competition"],
                )
            )
        elif stats.eligible >= needed and stats.availability_compatible < needed:
            reasons.append(
                Reason(
                    category=ReasonCategory.AVAILABILITY,
                    severity=Severity.MEDIUM,
                    title="Availability conflicts with eligible candidates",
                    description=(
                        f"Only {stats.availability_compatible} of {stats.eligible} eligible "
                        f"candidates have a compatible availability"
                    ),
                    details=[f"Availability: {participant.availability.name}"],
                    suggestions=["Consider committing more hours if possible"],
                )
            )

        if stats.eligible >= needed:
            best = next(
                (m for m in potential if not _is_structurally_blocked(participant, m.participant)),
                None,
            )
            best_detail = (
                f"Best eligible pairing: {best.participant.full_name} "
                f"({best.compatibility_score:.1f}%)"
                if best
                else "No eligible pairing found"
            )
            reasons.append(
                Reason(
                    category=ReasonCategory.QUALITY_THRESHOLD,
                    severity=Severity.HIGH,
                    title=f"Below {threshold:g}% compatibility threshold",
                    description=(
                        f"No team of {size} with eligible candidates reached "
                        f"{threshold:g}% compatibility"
                    ),
                    details=[
                        f"Quality threshold: {threshold:g}% minimum compatibility required",
                        best_detail,
                        "High-quality teams are prioritised over matching everyone",
                    ],
                    suggestions=[
                        "Review case type preferences for more overlap",
                        "Wait for more compatible participants",
                    ],
                )
            )
            if stats.high_compatibility < needed:
                reasons.append(
                    Reason(
                        category=ReasonCategory.COMPATIBILITY,
                        severity=Severity.MEDIUM,
                        title="Few highly compatible candidates",
                        description=(
                            f"{stats.high_compatibility} eligible candidates reach "
                            f"{threshold:g}% pairwise compatibility"
                        ),
                        details=[f"Needed: {needed}"],
                        suggestions=["Consider broadening case type interests"],
                    )
                )

        if stats.total_candidates < needed:
            reasons.append(
                Reason(
                    category=ReasonCategory.INSUFFICIENT_CANDIDATES,
                    severity=Severity.CRITICAL,
                    title="Insufficient total candidates",
                    description=(
                        f"Only {stats.total_candidates} other participants remain for matching"
                    ),
                    details=[
                        f"Needs {needed} teammates",
                        f"Available candidates: {stats.total_candidates}",
                        f"Shortfall: {needed - stats.total_candidates} participants",
                    ],
                    suggestions=[
                        "Join the next matching session with more participants",
                        "Consider a smaller team size preference",
                    ],
                )
            )

        if not reasons:
            reasons.append(
                Reason(
                    category=ReasonCategory.COMPATIBILITY,
                    severity=Severity.LOW,
                    title="No team could be completed in this run",
                    description="Candidates were available but were grouped with others first",
                    suggestions=["Wait for the next matching session"],
                )
            )
        return reasons

    def _recommendations(
        self,
        participant: Participant,
        reasons: list[Reason],
        stats: CandidateStatistics,
        potential: list[PotentialMatch],
    ) -> list[str]:
        categories = {r.category for r in reasons}
        recommendations = []

        if ReasonCategory.TEAM_SIZE in categories:
            if stats.same_team_size == 0 and self.config.is_valid_size(
                participant.team_size_preference
            ):
                recommendations.append(
                    f"Your requested team size ({participant.team_size_preference}) "
                    f"has no other takers"
                )
            else:
                recommendations.append(
                    f"Consider changing team size preference from "
                    f"{participant.team_size_preference} to a more popular size"
                )

        if (
            ReasonCategory.TEAM_PREFERENCE in categories
            and participant.composition != TeamComposition.EITHER
        ):
            recommendations.append(
                'Consider relaxing team composition preference to "Either UG or PG"'
            )

        if potential:
            best = potential[0]
            recommendations.append(
                f"Consider reaching out to {best.participant.full_name} "
                f"({best.compatibility_score:.1f}% compatibility) for future matching"
            )

        recommendations.append("Wait for the next matching session with more participants")
        return recommendations


def summarize(records: list[UnmatchedRecord]) -> UnmatchedSummary:
    """Roll unmatched records up into common issues and system-level advice."""
    counts: Counter[str] = Counter()
    for record in records:
        counts.update({r.category.value for r in record.reasons})

    common_issues = [
        f"{category.replace('_', ' ').lower()}: {count} participants affected"
        for category, count in counts.most_common()
        if count > 1
    ]

    recommendations = []
    if counts[ReasonCategory.TEAM_SIZE.value] > 2:
        recommendations.append("Consider promoting more flexible team size preferences")
    if counts[ReasonCategory.TEAM_PREFERENCE.value] > 2:
        recommendations.append('Encourage "Either UG or PG" preference for better matching')
    if counts[ReasonCategory.QUALITY_THRESHOLD.value] > 2:
        recommendations.append("Review the compatibility threshold against recent cohorts")

    return UnmatchedSummary(
        total_unmatched=len(records),
        reason_breakdown=dict(counts),
        common_issues=common_issues,
        recommendations=recommendations,
    )


def _is_structurally_blocked(participant: Participant, other: Participant) -> bool:
    return (
        participant.team_size_preference != other.team_size_preference
        or not composition_allows([participant, other])
    )


def _composition_label(participant: Participant) -> str:
    return participant.composition.value if participant.composition else "unspecified"


def _most_popular_size(teams: list[Team]) -> int:
    sizes = Counter(team.team_size for team in teams)
    if not sizes:
        return 4
    return sizes.most_common(1)[0][0]
