"""Boundary checks that decide whether a submission can enter matching."""

from casematch.composition import is_self_consistent
from casematch.config import MatchingConfig
from casematch.types import Participant, Reason, ReasonCategory, Severity


def validate_participant(participant: Participant, config: MatchingConfig) -> list[Reason]:
    """
    Return CRITICAL reasons for a malformed submission.

    An empty list means the record may be matched. Any entry means the record
    is set aside and reported as unmatched.
    """
    problems: list[Reason] = []
    size = participant.team_size_preference
    size_range = f"{config.min_team_size}-{config.max_team_size}"

    if size is None:
        problems.append(
            Reason(
                category=ReasonCategory.TEAM_SIZE,
                severity=Severity.CRITICAL,
                title="Missing team size preference",
                description="The submission does not state a usable team size",
                details=[f"Valid team sizes: {size_range}"],
                suggestions=[f"Resubmit with a team size between {size_range}"],
            )
        )
    elif not config.is_valid_size(size):
        problems.append(
            Reason(
                category=ReasonCategory.TEAM_SIZE,
                severity=Severity.CRITICAL,
                title="Invalid team size preference",
                description=f"Team size {size} is outside the supported range {size_range}",
                details=[
                    f"Requested team size: {size}",
                    f"Valid team sizes: {size_range}",
                ],
                suggestions=[f"Choose a team size between {size_range}"],
            )
        )

    if participant.composition is None:
        problems.append(
            Reason(
                category=ReasonCategory.TEAM_PREFERENCE,
                severity=Severity.CRITICAL,
                title="Missing team composition preference",
                description="The submission does not say who the participant wants on their team",
                details=["Expected one of: Undergrads only, Postgrads only, Either UG or PG"],
                suggestions=['Resubmit with a composition preference, e.g. "Either UG or PG"'],
            )
        )
    elif not is_self_consistent(participant):
        level = participant.education_level.value
        problems.append(
            Reason(
                category=ReasonCategory.TEAM_PREFERENCE,
                severity=Severity.CRITICAL,
                title="Team composition preference excludes the participant",
                description=(
                    f'{level} participant asked for "{participant.composition.value}"'
                ),
                details=[
                    f"Education level: {level}",
                    f"Participant wants: {participant.composition.value}",
                    "Team composition preferences are strictly enforced",
                ],
                suggestions=[
                    'Change the team preference to "Either UG or PG"',
                    "Check that the current year of study is recorded correctly",
                ],
            )
        )

    return problems
