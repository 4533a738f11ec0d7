"""Fuzzy matching of point-of-sale employee names to internal identities.

Predicates are tried in order. A predicate only counts as a match when it
selects exactly one identity; an ambiguous predicate falls through to the
next, and nothing is returned if every predicate is ambiguous or empty.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

from shiftlead.calculators.types import Identity

NamePredicate = Callable[[list[str], list[str]], bool]

T = TypeVar("T")


def name_tokens(name: str) -> list[str]:
    return name.casefold().split()


def exact_full_name(a: list[str], b: list[str]) -> bool:
    return bool(a) and a == b


def first_name(a: list[str], b: list[str]) -> bool:
    return bool(a) and bool(b) and a[0] == b[0] and len(a[0]) > 2


def short_form(a: list[str], b: list[str]) -> bool:
    """"Kendall M" vs "Kendall Matthews": same first token, second is a prefix."""
    if len(a) < 2 or len(b) < 2 or a[0] != b[0]:
        return False
    return b[1].startswith(a[1]) or a[1].startswith(b[1])


def substring(a: list[str], b: list[str]) -> bool:
    left, right = " ".join(a), " ".join(b)
    if not left or not right:
        return False
    return left in right or right in left


NAME_PREDICATES: tuple[tuple[str, NamePredicate], ...] = (
    ("exact", exact_full_name),
    ("first_name", first_name),
    ("short_form", short_form),
    ("substring", substring),
)


def match_name(
    name: str,
    candidates: Sequence[T],
    key: Callable[[T], str],
    predicates: Sequence[tuple[str, NamePredicate]] = NAME_PREDICATES,
) -> tuple[T, str] | None:
    """Return the uniquely matched candidate and the predicate that matched it."""
    tokens = name_tokens(name)
    if not tokens:
        return None

    candidate_tokens = [(candidate, name_tokens(key(candidate))) for candidate in candidates]
    for label, predicate in predicates:
        hits = [candidate for candidate, other in candidate_tokens if predicate(tokens, other)]
        if len(hits) == 1:
            return hits[0], label
    return None


def match_identity(name: str, identities: Sequence[Identity]) -> Identity | None:
    """Match a point-of-sale display name to a single identity, if any."""
    result = match_name(name, identities, key=lambda identity: identity.name)
    return result[0] if result else None
