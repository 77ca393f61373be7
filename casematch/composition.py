"""Hard composition rules and availability alignment between participants."""

from collections.abc import Iterable

from casematch.types import EducationLevel, Participant, TeamComposition

_REQUIRED_LEVEL = {
    TeamComposition.UNDERGRADS_ONLY: EducationLevel.UNDERGRADUATE,
    TeamComposition.POSTGRADS_ONLY: EducationLevel.POSTGRADUATE,
}


def is_self_consistent(participant: Participant) -> bool:
    """False when a participant's own education level violates their preference."""
    required = _REQUIRED_LEVEL.get(participant.composition)
    return required is None or participant.education_level == required


def composition_allows(members: Iterable[Participant]) -> bool:
    """
    Check that every member's composition preference holds for the group.

    An "Undergrads only" member forbids any postgraduate in the group and a
    "Postgrads only" member forbids any undergraduate. Members without a
    recognised preference never satisfy the check.
    """
    members = list(members)
    levels = {m.education_level for m in members}
    for member in members:
        if member.composition is None:
            return False
        required = _REQUIRED_LEVEL.get(member.composition)
        if required is not None and levels != {required}:
            return False
    return True


def availability_compatible(a: Participant, b: Participant) -> bool:
    """Tiers that are identical or adjacent can work together."""
    return abs(int(a.availability) - int(b.availability)) <= 1


CompositionKey = tuple[EducationLevel, TeamComposition | None]


def composition_key(participant: Participant) -> CompositionKey:
    return participant.education_level, participant.composition


def keys_compatible(a: CompositionKey, b: CompositionKey) -> bool:
    """
    Pairwise form of ``composition_allows``.

    A group of two or more satisfies every composition preference exactly when
    each pair of its members does, so builders can check candidates pair by pair
    against precomputed keys.
    """
    if a[1] is None or b[1] is None:
        return False
    if a[1] is TeamComposition.EITHER and b[1] is TeamComposition.EITHER:
        return True
    levels = {a[0], b[0]}
    for _, composition in (a, b):
        required = _REQUIRED_LEVEL.get(composition)
        if required is not None and levels != {required}:
            return False
    return True
