"""Tests for the team formation engine and its phase controller."""

import time

import pytest

from casematch.composition import composition_allows
from casematch.config import MatchingConfig
from casematch.engine import TeamFormationEngine, form_teams, next_phase, phase_budget
from casematch.types import (
    Availability,
    MatchingPhase,
    ReasonCategory,
    Severity,
    TeamComposition,
)


def _assert_invariants(result, participants, config=MatchingConfig()):
    matched = [m.id for team in result.teams for m in team.members]
    unmatched = [record.participant.id for record in result.unmatched]
    assert len(matched) == len(set(matched))
    assert sorted(matched + unmatched) == sorted(p.id for p in participants)
    for team in result.teams:
        assert config.min_team_size <= team.team_size <= config.max_team_size
        assert all(m.team_size_preference == team.team_size for m in team.members)
        assert composition_allows(team.members)
        assert team.compatibility_score >= config.compatibility_threshold
    assert result.statistics.constraint_violations == []


class TestScenarios:
    """End-to-end matching scenarios."""

    def test_four_undergraduates_form_one_team(self, quartet):
        """Test that four undergrads-only undergraduates form one team of four."""
        result = form_teams(quartet)
        assert len(result.teams) == 1
        assert result.teams[0].team_size == 4
        assert result.teams[0].compatibility_score == 90.83
        assert result.unmatched == []
        _assert_invariants(result, quartet)

    def test_undergrad_and_postgrad_trios_stay_separate(self, make_participant):
        """Test that exclusive undergrad and postgrad trios never mix."""
        undergrads = [
            make_participant(f"ug{i}", profile, team_size_preference=3,
                             composition=TeamComposition.UNDERGRADS_ONLY)
            for i, profile in enumerate("ABC", start=1)
        ]
        postgrads = [
            make_participant(f"pg{i}", profile, team_size_preference=3,
                             study_year="MBA 1st Year",
                             composition=TeamComposition.POSTGRADS_ONLY)
            for i, profile in enumerate("ABC", start=1)
        ]
        participants = [undergrads[0], postgrads[0], undergrads[1],
                        postgrads[1], undergrads[2], postgrads[2]]
        result = form_teams(participants)

        assert len(result.teams) == 2
        assert result.unmatched == []
        for team in result.teams:
            assert team.team_size == 3
            assert len({m.education_level for m in team.members}) == 1
        _assert_invariants(result, participants)

    def test_invalid_team_size_is_critical(self, quartet, make_participant):
        """Test that an out-of-range team size is reported as CRITICAL."""
        oversized = make_participant("big", team_size_preference=6)
        result = form_teams(quartet + [oversized])

        assert len(result.teams) == 1
        assert [r.participant.id for r in result.unmatched] == ["big"]
        reason = result.unmatched[0].reasons[0]
        assert reason.category == ReasonCategory.TEAM_SIZE
        assert reason.severity == Severity.CRITICAL
        assert reason.title == "Invalid team size preference"

    def test_self_excluding_composition_is_never_grouped(self, make_participant):
        """Test that an undergraduate asking for postgrads only is set aside."""
        mislabelled = make_participant("ug", team_size_preference=2,
                                       composition=TeamComposition.POSTGRADS_ONLY)
        postgrad = make_participant("pg", team_size_preference=2, study_year="MBA 1st Year",
                                    composition=TeamComposition.POSTGRADS_ONLY)
        result = form_teams([mislabelled, postgrad])

        assert result.teams == []
        assert len(result.unmatched) == 2
        record = next(r for r in result.unmatched if r.participant.id == "ug")
        assert any(
            r.category == ReasonCategory.TEAM_PREFERENCE and r.severity == Severity.CRITICAL
            for r in record.reasons
        )

    def test_different_sizes_are_both_unmatched(self, make_participant):
        """Test that a size-2 and a size-4 request both stay unmatched."""
        pair = make_participant("a", "A", team_size_preference=2)
        quad = make_participant("b", "B", team_size_preference=4)
        result = form_teams([pair, quad])

        assert result.teams == []
        titles = {r.participant.id: [x.title for x in r.reasons] for r in result.unmatched}
        assert "Insufficient candidates for team size 2" in titles["a"]
        assert "Insufficient candidates for team size 4" in titles["b"]

    def test_empty_input(self):
        """Test that an empty batch returns an empty result."""
        result = form_teams([])
        assert result.teams == []
        assert result.unmatched == []
        assert result.statistics.total_participants == 0
        assert result.iterations == []


class TestEngineBehaviour:
    """Tests for engine validation, statistics and limits."""

    def test_duplicate_ids_raise(self, make_participant):
        """Test that duplicate participant ids are rejected."""
        with pytest.raises(ValueError, match="Duplicate participant id 'a'"):
            form_teams([make_participant("a"), make_participant("a")])

    def test_missing_preferences_are_reported(self, quartet, make_participant):
        """Test that missing size and composition produce CRITICAL reasons."""
        incomplete = make_participant("x", team_size_preference=None, composition=None)
        result = form_teams(quartet + [incomplete])
        titles = [r.title for r in result.unmatched[0].reasons]
        assert titles == [
            "Missing team size preference",
            "Missing team composition preference",
        ]

    def test_below_threshold_pair_is_left_unmatched(self, make_participant):
        """Test that a pair below the threshold is reported, not grouped."""
        a = make_participant("a", team_size_preference=2, availability=Availability.FULL,
                             case_preferences=["Consulting"], institution="MIT")
        b = make_participant("b", team_size_preference=2,
                             availability=Availability.NOT_AVAILABLE,
                             case_preferences=["Finance"], institution="MIT")
        result = form_teams([a, b])

        assert result.teams == []
        for record in result.unmatched:
            categories = {r.category for r in record.reasons}
            assert ReasonCategory.QUALITY_THRESHOLD in categories
        assert result.iterations[0].rejected_teams == 1

    def test_is_deterministic(self, make_participant):
        """Test that repeated runs give identical teams and unmatched lists."""
        participants = [
            make_participant(f"p{i}", profile, team_size_preference=size)
            for i, (profile, size) in enumerate(
                zip("ABCDABCDABCD", [2, 3, 4, 2, 3, 4, 2, 3, 4, 4, 3, 2]), start=1
            )
        ]
        first = form_teams(participants)
        second = form_teams(participants)
        assert [[m.id for m in t.members] for t in first.teams] == [
            [m.id for m in t.members] for t in second.teams
        ]
        assert [r.participant.id for r in first.unmatched] == [
            r.participant.id for r in second.unmatched
        ]
        _assert_invariants(first, participants)

    def test_engine_reuse_does_not_leak_scores(self, make_participant):
        """Test that one engine scores a new batch afresh when ids repeat."""
        engine = TeamFormationEngine()
        good = [
            make_participant("a", "A", team_size_preference=2),
            make_participant("b", "B", team_size_preference=2),
        ]
        assert len(engine.run(good).teams) == 1

        clashing = [
            make_participant("a", team_size_preference=2, availability=Availability.FULL,
                             case_preferences=["Consulting"], institution="MIT"),
            make_participant("b", team_size_preference=2,
                             availability=Availability.NOT_AVAILABLE,
                             case_preferences=["Finance"], institution="MIT"),
        ]
        assert engine.run(clashing).teams == []

    def test_team_metadata(self, quartet):
        """Test the derived fields of a formed team."""
        team = form_teams(quartet).teams[0]
        assert team.id == "team-1"
        assert team.common_case_types == ["Consulting"]
        assert team.preferred_team_size_match == 100.0
        assert team.average_experience == 1.5
        assert team.phase == MatchingPhase.STRICT
        assert team.iteration == 1

    def test_statistics(self, quartet, make_participant):
        """Test the run statistics."""
        result = form_teams(quartet + [make_participant("solo", team_size_preference=2)])
        stats = result.statistics
        assert stats.total_participants == 5
        assert stats.teams_formed == 1
        assert stats.participants_matched == 4
        assert stats.matching_efficiency == pytest.approx(80.0)
        assert stats.team_size_distribution == {4: 1}
        assert stats.case_type_distribution == {"Consulting": 1}

    def test_single_iteration_runs_exhaustive_phase(self, quartet):
        """Test that a one-iteration budget goes straight to the exhaustive phase."""
        engine = TeamFormationEngine(MatchingConfig(max_iterations=1))
        result = engine.run(quartet)
        assert len(result.teams) == 1
        assert result.teams[0].phase == MatchingPhase.EXHAUSTIVE
        assert len(result.iterations) == 1

    def test_iterations_stay_within_limit(self, make_participant):
        """Test that the controller never exceeds max_iterations."""
        config = MatchingConfig(max_iterations=3)
        participants = [
            make_participant(f"p{i}", profile, team_size_preference=2,
                             availability=Availability.NOT_AVAILABLE if i % 2 else Availability.FULL,
                             institution="MIT", case_preferences=[f"Case {i}"],
                             core_strengths=["Research"])
            for i, profile in enumerate("AAAAAA", start=1)
        ]
        result = TeamFormationEngine(config).run(participants)
        assert len(result.iterations) <= 3

    def test_invalid_config_raises(self):
        """Test that inconsistent settings are rejected."""
        with pytest.raises(ValueError, match="max_team_size must be >= min_team_size"):
            MatchingConfig(min_team_size=4, max_team_size=3)
        with pytest.raises(ValueError, match="compatibility_threshold must be between 0 and 100"):
            MatchingConfig(compatibility_threshold=120)
        with pytest.raises(ValueError, match="search limits must be positive"):
            MatchingConfig(search_width=0)


class TestPerformance:
    """Tests that realistic batches finish quickly."""

    def test_large_low_compatibility_bucket(self, make_participant):
        """Test that 120 poorly matched participants in one bucket finish within a second."""
        participants = [
            make_participant(
                f"p{i:03d}",
                team_size_preference=4,
                institution="MIT",
                availability=Availability.FULL if i % 2 else Availability.NOT_AVAILABLE,
            )
            for i in range(120)
        ]

        start = time.perf_counter()
        result = form_teams(participants)
        elapsed = time.perf_counter() - start

        assert elapsed < 1.0
        assert result.teams == []
        assert len(result.unmatched) == 120
        _assert_invariants(result, participants)


class TestPhaseController:
    """Tests for the phase transition function."""

    def test_phase_repeats_while_forming_teams(self):
        """Test that a productive phase keeps running."""
        assert next_phase(MatchingPhase.STRICT, 2, 1, 20, 30) == MatchingPhase.STRICT

    def test_no_progress_advances_phase(self):
        """Test that a pass forming no team moves to the next phase."""
        assert next_phase(MatchingPhase.STRICT, 0, 1, 20, 30) == MatchingPhase.RESHUFFLE
        assert next_phase(MatchingPhase.RESHUFFLE, 0, 1, 20, 30) == MatchingPhase.WIDENED
        assert next_phase(MatchingPhase.WIDENED, 0, 1, 20, 30) == MatchingPhase.EXHAUSTIVE

    def test_exhausted_budget_advances_phase(self):
        """Test that a phase moves on once its iteration budget is spent."""
        assert phase_budget(MatchingPhase.STRICT, 30) == 10
        assert next_phase(MatchingPhase.STRICT, 1, 10, 20, 30) == MatchingPhase.RESHUFFLE

    def test_last_iteration_is_exhaustive(self):
        """Test that the final iteration is reserved for the exhaustive phase."""
        assert next_phase(MatchingPhase.STRICT, 3, 1, 1, 30) == MatchingPhase.EXHAUSTIVE

    def test_exhaustive_is_terminal(self):
        """Test that nothing follows the exhaustive phase."""
        assert next_phase(MatchingPhase.EXHAUSTIVE, 5, 1, 10, 30) == MatchingPhase.DONE
        assert next_phase(MatchingPhase.STRICT, 1, 1, 0, 30) == MatchingPhase.DONE
