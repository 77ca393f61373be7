"""Tests for the CLI entry point."""

import csv
from pathlib import Path

import pytest
from typer.testing import CliRunner

from casematch.analytics import pool_breakdown
from casematch.engine import form_teams
from casematch.main import app
from casematch.output import export_results_to_csv, print_matching_summary
from casematch.types import TeamComposition

runner = CliRunner()

MOCK_CSV = "data/mock_submissions.csv"


class TestCLI:
    """Tests for the CLI commands."""

    def test_cli_runs_with_mock_data(self):
        """Test that CLI runs successfully with mock data."""
        result = runner.invoke(app, [MOCK_CSV])
        assert result.exit_code == 0
        assert "Teams Formed: 3" in result.output
        assert "Participants Matched: 9/12" in result.output

    def test_cli_reports_unmatched(self):
        result = runner.invoke(app, [MOCK_CSV])
        assert "=== Unmatched ===" in result.output
        assert "[CRITICAL] Missing team size preference" in result.output
        assert "[CRITICAL] Invalid team size preference" in result.output

    def test_cli_with_team_sizes(self):
        """Test CLI with custom team size bounds."""
        result = runner.invoke(app, [MOCK_CSV, "-m", "3", "-M", "5"])
        assert result.exit_code == 0
        assert "Teams Formed: 2" in result.output

    def test_cli_with_threshold(self):
        result = runner.invoke(app, [MOCK_CSV, "-t", "95"])
        assert result.exit_code == 0
        assert "Teams Formed: 0" in result.output

    def test_cli_with_seed(self):
        """Test CLI with seed parameter for reproducibility."""
        result1 = runner.invoke(app, [MOCK_CSV, "-s", "42"])
        result2 = runner.invoke(app, [MOCK_CSV, "-s", "42"])
        assert result1.exit_code == 0
        assert result2.exit_code == 0
        assert result1.output == result2.output

    def test_cli_with_shuffle(self):
        """Test CLI with shuffle flag."""
        result = runner.invoke(app, [MOCK_CSV, "--shuffle"])
        assert result.exit_code == 0
        assert "Teams Formed: 3" in result.output

    def test_cli_with_breakdown(self):
        result = runner.invoke(app, [MOCK_CSV, "--breakdown"])
        assert result.exit_code == 0
        assert "Pool Breakdown" in result.output
        assert "Total" in result.output

    def test_cli_csv_export(self, tmp_path: Path):
        """Test that CSV export works."""
        output_path = tmp_path / "results.csv"
        result = runner.invoke(app, [MOCK_CSV, "-o", str(output_path)])
        assert result.exit_code == 0
        assert output_path.exists()
        assert f"Results exported to: {output_path}" in result.output

        with open(output_path) as f:
            reader = csv.reader(f)
            header = next(reader)
            assert header == [
                "participant_id",
                "full_name",
                "team_id",
                "team_size",
                "compatibility_score",
                "status",
                "reasons",
            ]
            rows = list(reader)
            assert len(rows) == 12
            assert sum(1 for row in rows if row[5] == "team_formed") == 9

    def test_cli_file_not_found(self):
        """Test that CLI shows error for non-existent file."""
        result = runner.invoke(app, ["nonexistent_file.csv"])
        assert result.exit_code == 1
        assert "Error: File not found" in result.output

    def test_cli_min_greater_than_max(self):
        result = runner.invoke(app, [MOCK_CSV, "-m", "4", "-M", "3"])
        assert result.exit_code == 1
        assert "cannot be greater than max_team_size" in result.output

    def test_cli_reads_environment(self):
        result = runner.invoke(app, [MOCK_CSV], env={"CASEMATCH_MAX_TEAM_SIZE": "1"})
        assert result.exit_code == 1
        assert "max_team_size (1)" in result.output

    def test_cli_invalid_threshold(self):
        result = runner.invoke(app, [MOCK_CSV, "-t", "150"])
        assert result.exit_code == 1
        assert "Error: compatibility_threshold must be between 0 and 100" in result.output

    def test_cli_empty_file(self, tmp_path: Path):
        empty = tmp_path / "empty.csv"
        empty.write_text("")
        result = runner.invoke(app, [str(empty)])
        assert result.exit_code == 1
        assert "Error: CSV file is empty" in result.output

    def test_cli_help(self):
        """Test that help shows all options."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for option in (
            "--min-team-size",
            "--max-team-size",
            "--threshold",
            "--max-iterations",
            "--seed",
            "--shuffle",
            "--output",
            "--breakdown",
            "--verbose",
        ):
            assert option in result.output


class TestOutput:
    """Tests for the output module."""

    def test_print_matching_summary(self, capsys, quartet, make_participant):
        result = form_teams(quartet + [make_participant("solo", team_size_preference=2)])
        print_matching_summary(result)
        captured = capsys.readouterr()

        assert "Teams Formed: 1" in captured.out
        assert "Participants Matched: 4/5" in captured.out
        assert "team-1 (90.83)" in captured.out
        assert "Participant solo (solo)" in captured.out

    def test_print_matching_summary_with_violations(self, capsys, quartet):
        result = form_teams(quartet)
        result.statistics.constraint_violations.append("Team team-1 has 5 members")
        print_matching_summary(result)
        captured = capsys.readouterr()

        assert "Constraint Violations" in captured.out
        assert "Team team-1 has 5 members" in captured.out

    def test_export_results_to_csv(self, tmp_path: Path, quartet, make_participant):
        result = form_teams(quartet + [make_participant("solo", team_size_preference=6)])
        filepath = tmp_path / "export.csv"
        export_results_to_csv(result, filepath)

        with open(filepath) as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 5
        assert rows[0]["team_id"] == "team-1"
        assert rows[0]["team_size"] == "4"
        assert rows[-1]["participant_id"] == "solo"
        assert rows[-1]["status"] == "pending_match"
        assert rows[-1]["reasons"] == "Invalid team size preference"

    def test_export_results_to_csv_bad_path(self, tmp_path: Path, quartet):
        result = form_teams(quartet)
        with pytest.raises(OSError, match="Failed to write results to"):
            export_results_to_csv(result, tmp_path / "missing" / "export.csv")


class TestPoolBreakdown:
    def test_counts_by_size_and_composition(self, make_participant):
        participants = [
            make_participant("a", team_size_preference=2),
            make_participant("b", team_size_preference=2,
                             composition=TeamComposition.UNDERGRADS_ONLY),
            make_participant("c", team_size_preference=4),
            make_participant("d", team_size_preference=None, composition=None),
        ]
        table = pool_breakdown(participants)
        assert table.loc["2", "Either UG or PG"] == 1
        assert table.loc["2", "Undergrads only"] == 1
        assert table.loc["2", "Total"] == 2
        assert table.loc["4", "Total"] == 1
        assert table.loc["Unknown", "Unknown"] == 1

    def test_empty_pool(self):
        table = pool_breakdown([])
        assert table.empty
