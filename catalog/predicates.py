"""
Composite predicate tree handed to the search engine.

Leaves compare a single CourseRecord attribute; And / Or combine children.
Nodes are frozen dataclasses, so two predicates built from the same criteria
compare equal regardless of how they were assembled.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Union

Bound = Union[int, float, datetime, None]


@dataclass(frozen=True)
class MatchAll:
    """Identity filter: every record matches."""


@dataclass(frozen=True)
class Equals:
    field: str
    value: str


@dataclass(frozen=True)
class Range:
    """Inclusive range; a None bound is open."""

    field: str
    gte: Bound = None
    lte: Bound = None


@dataclass(frozen=True)
class Fuzzy:
    field: str
    text: str


@dataclass(frozen=True)
class Contains:
    field: str
    text: str


@dataclass(frozen=True)
class And:
    children: tuple["Predicate", ...]


@dataclass(frozen=True)
class Or:
    children: tuple["Predicate", ...]


Predicate = Union[MatchAll, Equals, Range, Fuzzy, Contains, And, Or]


def all_of(*children: Predicate) -> Predicate:
    """AND the given predicates; a single child is returned unwrapped."""
    if len(children) == 1:
        return children[0]
    return And(tuple(children))


def any_of(*children: Predicate) -> Predicate:
    if len(children) == 1:
        return children[0]
    return Or(tuple(children))
