"""Pool analytics: who is waiting for which kind of team."""

import pandas as pd

from casematch.types import Participant

UNKNOWN = "Unknown"


def pool_breakdown(participants: list[Participant]) -> pd.DataFrame:
    """
    Count participants by requested team size and composition preference.

    Returns:
        DataFrame indexed by team size with one column per composition
        preference, plus a Total column. Missing values are shown as "Unknown".
    """
    if not participants:
        return pd.DataFrame(columns=["Total"], dtype=int)

    df = pd.DataFrame(
        {
            "team_size": [
                str(p.team_size_preference) if p.team_size_preference is not None else UNKNOWN
                for p in participants
            ],
            "composition": [
                p.composition.value if p.composition is not None else UNKNOWN
                for p in participants
            ],
        }
    )
    table = pd.crosstab(df["team_size"], df["composition"])
    table["Total"] = table.sum(axis=1)
    table.index.name = "team_size"
    table.columns.name = None
    return table
