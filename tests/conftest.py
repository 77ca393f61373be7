"""Shared participant fixtures."""

import pytest

from casematch.types import Availability, Experience, Participant, TeamComposition

# Four complementary profiles; together they score 90.83
PROFILES = {
    "A": dict(
        core_strengths=["Research", "Modeling", "Pitching"],
        availability=Availability.FULL,
        experience=Experience.PARTICIPATED_3_PLUS,
        case_preferences=["Consulting", "Finance"],
        institution="MIT",
    ),
    "B": dict(
        core_strengths=["Design", "Pitching", "Coordination"],
        availability=Availability.MODERATE,
        experience=Experience.PARTICIPATED_1_2,
        case_preferences=["Marketing", "Consulting"],
        institution="Stanford",
    ),
    "C": dict(
        core_strengths=["Coordination", "Storytelling", "Markets"],
        availability=Availability.FULL,
        experience=Experience.FINALIST_WINNER,
        case_preferences=["Consulting", "Social Impact"],
        institution="Harvard",
    ),
    "D": dict(
        core_strengths=["Technical", "Product", "Ideation"],
        availability=Availability.MODERATE,
        experience=Experience.NONE,
        case_preferences=["Consulting", "Finance"],
        institution="Berkeley",
    ),
}


@pytest.fixture
def make_participant():
    """Build a participant from a named profile with field overrides."""

    def _make(pid: str, profile: str = "A", **overrides) -> Participant:
        fields = dict(
            full_name=f"Participant {pid}",
            email=f"{pid}@example.com",
            study_year="3rd Year",
            team_size_preference=4,
            composition=TeamComposition.EITHER,
        )
        fields.update(PROFILES[profile])
        fields.update(overrides)
        return Participant(id=pid, **fields)

    return _make


@pytest.fixture
def quartet(make_participant):
    """Four undergraduates wanting an undergrads-only team of four."""
    return [
        make_participant(
            f"ug{i}",
            profile,
            composition=TeamComposition.UNDERGRADS_ONLY,
        )
        for i, profile in enumerate("ABCD", start=1)
    ]
