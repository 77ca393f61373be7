"""Load questionnaire submissions from CSV exports."""

import logging
import re
from pathlib import Path

import pandas as pd

from casematch.types import Availability, Experience, Participant, TeamComposition

log = logging.getLogger(__name__)

MAX_CORE_STRENGTHS = 3
MAX_PREFERRED_ROLES = 2
MAX_CASE_PREFERENCES = 3

DEFAULT_ROLE = "Flexible with any role"
OPEN_TO_ALL_CASES = ["Consulting", "Product/Tech", "Marketing"]

# Field -> accepted header spellings, most specific first
HEADER_ALIASES: dict[str, list[str]] = {
    "id": ["participant id", "submission id", "id"],
    "full_name": ["full name", "fullname", "name"],
    "email": ["email id", "email address", "email"],
    "contact_number": ["whatsapp number", "whatsapp", "phone", "contact"],
    "institution": ["college name", "college", "institution", "university"],
    "study_year": ["current year of study", "current year", "study year", "year"],
    "core_strengths": ["core strengths", "strengths", "skills"],
    "preferred_roles": ["preferred role", "roles"],
    "availability": ["availability", "available"],
    "experience": ["case comp experience", "case competition experience", "experience"],
    "case_preferences": [
        "case comp preferences",
        "type(s) of case competitions",
        "case preferences",
        "interests",
    ],
    "team_size_preference": ["preferred team size", "team size"],
    "composition": ["who do you want on your team", "team preference", "team composition"],
}

STRENGTH_MAP = {
    "research": "Research",
    "modeling": "Modeling",
    "markets": "Markets",
    "design": "Design",
    "pitching": "Pitching",
    "coordination": "Coordination",
    "ideation": "Ideation",
    "product": "Product",
    "storytelling": "Storytelling",
    "technical": "Technical",
    "strategy & structuring": "Research",
    "data analysis & research": "Research",
    "financial modeling": "Modeling",
    "market research": "Markets",
    "presentation design": "Design",
    "public speaking & pitching": "Pitching",
    "time management & coordination": "Coordination",
    "innovation & ideation": "Ideation",
    "product thinking": "Product",
    "ui/ux": "Product",
    "coding": "Technical",
}

ROLE_MAP = {
    "team lead": "Team Lead",
    "team leader": "Team Lead",
    "leader": "Team Lead",
    "researcher": "Researcher",
    "data analyst": "Data Analyst",
    "analyst": "Data Analyst",
    "designer": "Designer",
    "presenter": "Presenter",
    "coordinator": "Coordinator",
    "flexible with any role": DEFAULT_ROLE,
    "flexible": DEFAULT_ROLE,
    "any role": DEFAULT_ROLE,
}

CASE_MAP = {
    "consulting": "Consulting",
    "product/tech": "Product/Tech",
    "product": "Product/Tech",
    "tech": "Product/Tech",
    "marketing": "Marketing",
    "social impact": "Social Impact",
    "social": "Social Impact",
    "operations/supply chain": "Operations/Supply Chain",
    "operations": "Operations/Supply Chain",
    "supply chain": "Operations/Supply Chain",
    "finance": "Finance",
    "public policy/esg": "Public Policy/ESG",
    "public policy": "Public Policy/ESG",
    "esg": "Public Policy/ESG",
}

SIZE_WORDS = {"two": 2, "pair": 2, "three": 3, "trio": 3, "four": 4, "five": 5, "six": 6}


def _split_multi(value: str) -> list[str]:
    return [part.strip().lower() for part in re.split(r"[;,\n]", value) if part.strip()]


def _map_values(value: str, mapping: dict[str, str], limit: int) -> list[str]:
    """Map free-text choices onto canonical labels, dropping unknowns and repeats."""
    result: list[str] = []
    for part in _split_multi(value):
        label = mapping.get(part)
        if label and label not in result:
            result.append(label)
    return result[:limit]


def parse_core_strengths(value: str) -> list[str]:
    return _map_values(value, STRENGTH_MAP, MAX_CORE_STRENGTHS)


def parse_preferred_roles(value: str) -> list[str]:
    return _map_values(value, ROLE_MAP, MAX_PREFERRED_ROLES) or [DEFAULT_ROLE]


def parse_case_preferences(value: str) -> list[str]:
    """Map case competition interests; "open to all" expands to the common types."""
    if "open to all" in value.lower():
        return list(OPEN_TO_ALL_CASES)
    return _map_values(value, CASE_MAP, MAX_CASE_PREFERENCES)


def parse_team_size(value: str) -> int | None:
    """
    Parse a requested team size.

    Out-of-range numbers are kept so the engine can report them; text with no
    recognisable size returns None.
    """
    normalized = value.strip().lower()
    if not normalized:
        return None
    digits = re.search(r"\d+", normalized)
    if digits:
        return int(digits.group())
    for word, size in SIZE_WORDS.items():
        if word in normalized:
            return size
    return None


def parse_composition(value: str) -> TeamComposition | None:
    normalized = value.strip().lower()
    if not normalized:
        return None
    if "only" in normalized:
        if "undergrad" in normalized or "ug" in normalized.split():
            return TeamComposition.UNDERGRADS_ONLY
        if "postgrad" in normalized or "pg" in normalized.split():
            return TeamComposition.POSTGRADS_ONLY
    if any(word in normalized for word in ("either", "both", "mix", "any", "ug & pg", "ug and pg")):
        return TeamComposition.EITHER
    return None


def parse_availability(value: str) -> Availability:
    normalized = value.strip().lower()
    if "not available" in normalized or "interested later" in normalized:
        return Availability.NOT_AVAILABLE
    if "full" in normalized or "10-15" in normalized or "10–15" in normalized:
        return Availability.FULL
    if "light" in normalized or "1-4" in normalized or "1–4" in normalized or "limited" in normalized:
        return Availability.LIGHT
    return Availability.MODERATE


def parse_experience(value: str) -> Experience:
    normalized = value.strip().lower()
    if any(word in normalized for word in ("finalist", "winner", "won")):
        return Experience.FINALIST_WINNER
    if any(word in normalized for word in ("3+", "3 or more", "more than 3", "multiple")):
        return Experience.PARTICIPATED_3_PLUS
    if any(word in normalized for word in ("1-2", "1–2", "1 to 2", "couple", "few")):
        return Experience.PARTICIPATED_1_2
    return Experience.NONE


def resolve_columns(columns: list[str]) -> dict[str, str]:
    """
    Match CSV headers to participant fields.

    Returns:
        Dict mapping field name -> original column name for every field found
    """
    lowered = {column: column.strip().lower() for column in columns}
    resolved: dict[str, str] = {}
    claimed: set[str] = set()
    for field_name, aliases in HEADER_ALIASES.items():
        for alias in aliases:
            match = next(
                (
                    column
                    for column, header in lowered.items()
                    if column not in claimed
                    and (header == alias or (len(alias) > 2 and alias in header))
                ),
                None,
            )
            if match is not None:
                resolved[field_name] = match
                claimed.add(match)
                break
    return resolved


def load_participants_from_csv(filepath: Path | str) -> list[Participant]:
    """Load questionnaire submissions from a CSV file.

    Args:
        filepath: Path to a questionnaire export. Headers are matched by
            alias, e.g. "Preferred Team Size" or "Who do you want on your team?".

    Returns:
        Participants in file order. Rows without a name or email and rows
        repeating an earlier email are skipped.

    Raises:
        ValueError: If the CSV is empty, malformed, or lacks name/email columns.
    """
    if isinstance(filepath, str):
        filepath = Path(filepath)

    try:
        df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
    except pd.errors.EmptyDataError as e:
        raise ValueError(f"CSV file is empty: {filepath}") from e
    except pd.errors.ParserError as e:
        raise ValueError(f"Failed to parse CSV: {e}") from e

    if df.empty:
        raise ValueError(f"CSV file contains no data rows: {filepath}")

    columns = resolve_columns(df.columns.tolist())
    missing = [name for name in ("full_name", "email") if name not in columns]
    if missing:
        raise ValueError(f"CSV file is missing required columns: {', '.join(missing)}")

    def cell(row: pd.Series, field_name: str) -> str:
        column = columns.get(field_name)
        return str(row[column]).strip() if column is not None else ""

    participants: list[Participant] = []
    seen_emails: set[str] = set()
    for position, (_, row) in enumerate(df.iterrows(), start=1):
        full_name = cell(row, "full_name")
        email = cell(row, "email")
        if not full_name or not email:
            log.warning("Skipping row %d: missing name or email", position)
            continue
        if email.lower() in seen_emails:
            log.warning("Skipping row %d: duplicate email %s", position, email)
            continue
        seen_emails.add(email.lower())

        participants.append(
            Participant(
                id=cell(row, "id") or f"participant_{position:03d}",
                full_name=full_name,
                email=email,
                contact_number=cell(row, "contact_number"),
                institution=cell(row, "institution"),
                study_year=cell(row, "study_year"),
                core_strengths=parse_core_strengths(cell(row, "core_strengths")),
                preferred_roles=parse_preferred_roles(cell(row, "preferred_roles")),
                case_preferences=parse_case_preferences(cell(row, "case_preferences")),
                team_size_preference=parse_team_size(cell(row, "team_size_preference")),
                composition=parse_composition(cell(row, "composition")),
                availability=parse_availability(cell(row, "availability")),
                experience=parse_experience(cell(row, "experience")),
            )
        )

    log.info("Loaded %d participants from %s", len(participants), filepath)
    return participants
