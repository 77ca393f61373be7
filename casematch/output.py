"""Output formatting and export for matching results."""

import csv
from pathlib import Path

from casematch.types import MatchingResult, ParticipantStatus


def print_matching_summary(result: MatchingResult) -> None:
    """Pretty-print matching results."""
    s = result.statistics
    print(f"\n=== Teams Formed: {s.teams_formed} ===\n")
    print(f"Participants Matched: {s.participants_matched}/{s.total_participants}")
    print(f"Matching Efficiency: {s.matching_efficiency:.1f}%")
    print(f"Average Team Size: {s.average_team_size:.2f}")
    print(f"Iterations: {s.iterations}")

    if s.team_size_distribution:
        print("\nTeam Size Distribution:")
        for size, count in s.team_size_distribution.items():
            print(f"  {size}: {count}")

    if s.constraint_violations:
        print("\n⚠️  Constraint Violations:")
        for v in s.constraint_violations:
            print(f"  - {v}")

    if result.iterations:
        print("\n=== Iterations ===")
        for it in result.iterations:
            print(
                f"{it.iteration:>3} {it.phase.value:<10} teams={it.teams_formed} "
                f"matched={it.participants_matched} remaining={it.remaining_unmatched} "
                f"rejected={it.rejected_teams}"
            )

    print("\n=== Teams ===")
    for team in result.teams:
        names = ", ".join(m.full_name for m in team.members)
        cases = ", ".join(team.common_case_types) or "-"
        print(f"{team.id} ({team.compatibility_score:.2f}): {names} [{cases}]")

    if result.unmatched:
        print("\n=== Unmatched ===")
        for record in result.unmatched:
            print(f"{record.participant.full_name} ({record.participant.id})")
            for reason in record.reasons:
                print(f"  [{reason.severity.value}] {reason.title}")

    if result.summary and result.summary.recommendations:
        print("\nRecommendations:")
        for rec in result.summary.recommendations:
            print(f"  - {rec}")


def export_results_to_csv(result: MatchingResult, filepath: Path | str) -> None:
    """Export one row per participant: team members first, then unmatched."""
    try:
        with open(filepath, "w", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(
                [
                    "participant_id",
                    "full_name",
                    "team_id",
                    "team_size",
                    "compatibility_score",
                    "status",
                    "reasons",
                ]
            )
            for team in result.teams:
                for member in team.members:
                    writer.writerow([
                        member.id,
                        member.full_name,
                        team.id,
                        team.team_size,
                        team.compatibility_score,
                        ParticipantStatus.TEAM_FORMED.value,
                        "",
                    ])
            for record in result.unmatched:
                writer.writerow([
                    record.participant.id,
                    record.participant.full_name,
                    "",
                    "",
                    "",
                    ParticipantStatus.PENDING_MATCH.value,
                    "; ".join(reason.title for reason in record.reasons),
                ])
    except OSError as e:
        raise OSError(f"Failed to write results to '{filepath}': {e}") from e
