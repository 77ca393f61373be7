"""CLI entry point for the case competition team matcher."""

import logging
import random
from pathlib import Path
from typing import Annotated, Optional

import typer

from casematch.analytics import pool_breakdown
from casematch.config import MatchingConfig
from casematch.data_loader import load_participants_from_csv
from casematch.engine import form_teams
from casematch.output import export_results_to_csv, print_matching_summary

app = typer.Typer(
    help="Form case competition teams from questionnaire submissions"
)


@app.command()
def main(
    csv_file: Annotated[
        Path,
        typer.Argument(help="Path to questionnaire submissions CSV file"),
    ],
    min_team_size: Annotated[
        int,
        typer.Option(
            "-m",
            "--min-team-size",
            envvar="CASEMATCH_MIN_TEAM_SIZE",
            help="Smallest team the engine may form",
        ),
    ] = 2,
    max_team_size: Annotated[
        int,
        typer.Option(
            "-M",
            "--max-team-size",
            envvar="CASEMATCH_MAX_TEAM_SIZE",
            help="Largest team the engine may form",
        ),
    ] = 4,
    threshold: Annotated[
        float,
        typer.Option(
            "-t",
            "--threshold",
            envvar="CASEMATCH_THRESHOLD",
            help="Minimum team compatibility score (0-100)",
        ),
    ] = 70.0,
    max_iterations: Annotated[
        int,
        typer.Option(
            "-i",
            "--max-iterations",
            envvar="CASEMATCH_MAX_ITERATIONS",
            help="Upper bound on matching iterations",
        ),
    ] = 30,
    shuffle: Annotated[
        bool,
        typer.Option(
            "--shuffle",
            help="Shuffle submission order (affects tie-breaking); if --seed is not set, not reproducible",
        ),
    ] = False,
    seed: Annotated[
        Optional[int],
        typer.Option(
            "-s",
            "--seed",
            help="Random seed for reproducible shuffling (implies --shuffle)",
        ),
    ] = None,
    output: Annotated[
        Optional[Path], typer.Option("-o", "--output", help="Export results to CSV")
    ] = None,
    breakdown: Annotated[
        bool,
        typer.Option("--breakdown", help="Print pool counts by team size and composition"),
    ] = False,
    verbose: Annotated[
        int,
        typer.Option("-v", "--verbose", count=True, help="Log progress (-vv for debug)"),
    ] = 0,
) -> None:
    """Run the team matcher."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if not csv_file.exists():
        typer.echo(f"Error: File not found: {csv_file}", err=True)
        raise typer.Exit(1)

    if min_team_size > max_team_size:
        typer.echo(
            f"Error: min_team_size ({min_team_size}) cannot be greater than "
            f"max_team_size ({max_team_size})",
            err=True,
        )
        raise typer.Exit(1)

    try:
        config = MatchingConfig(
            min_team_size=min_team_size,
            max_team_size=max_team_size,
            compatibility_threshold=threshold,
            max_iterations=max_iterations,
        )
        participants = load_participants_from_csv(csv_file)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    # Shuffle submission order if requested (affects tie-breaking)
    if seed is not None or shuffle:
        if seed is not None:
            random.seed(seed)
        participants = participants.copy()
        random.shuffle(participants)

    if breakdown:
        typer.echo("\n=== Pool Breakdown ===")
        typer.echo(pool_breakdown(participants).to_string())

    try:
        result = form_teams(participants, config)
    except ValueError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    print_matching_summary(result)

    if output:
        export_results_to_csv(result, str(output))
        typer.echo(f"\nResults exported to: {output}")


if __name__ == "__main__":
    app()
