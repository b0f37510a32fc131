"""
Filter predicate builder.

Turns the structured filters of a SearchCriteria into ONE composite predicate.
Rules are evaluated top to bottom and the first one that applies wins; tiers
are never ANDed together.

    1. category + type (+ fromDate when present)
    2. minAge + maxAge
    3. minPrice + maxPrice
    4. single filters: category, type, minAge, maxAge, minPrice, maxPrice, fromDate
    5. nothing set -> match everything

Combination rules come first so that category+type yields an AND instead of
collapsing to category alone. Criteria carrying minAge+maxAge+category are
answered by the age rule alone, because category on its own is a tier-4 rule.
The order is fixed policy.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime

from catalog.models import SearchCriteria
from catalog.predicates import Equals, MatchAll, Predicate, Range, all_of

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Predicate helpers (shared with catalog.repository)
# ---------------------------------------------------------------------------

def category_is(category: str) -> Predicate:
    return Equals("category", category)


def type_is(course_type: str) -> Predicate:
    return Equals("type", course_type)


def min_age_at_least(min_age: int) -> Predicate:
    return Range("min_age", gte=min_age)


def max_age_at_most(max_age: int) -> Predicate:
    return Range("max_age", lte=max_age)


def price_between(min_price: float | None = None, max_price: float | None = None) -> Predicate:
    return Range("price", gte=min_price, lte=max_price)


def session_from(from_date: datetime) -> Predicate:
    return Range("next_session_date", gte=from_date)


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FilterRule:
    name: str
    applies: Callable[[SearchCriteria], bool]
    build: Callable[[SearchCriteria], Predicate]


RULES: tuple[FilterRule, ...] = (
    # Combinations
    FilterRule(
        "find_by_category_and_type_and_next_session_date_gte",
        lambda c: c.category is not None and c.type is not None and c.from_date is not None,
        lambda c: all_of(category_is(c.category), type_is(c.type), session_from(c.from_date)),
    ),
    FilterRule(
        "find_by_category_and_type",
        lambda c: c.category is not None and c.type is not None,
        lambda c: all_of(category_is(c.category), type_is(c.type)),
    ),
    FilterRule(
        "find_by_age_range",
        lambda c: c.min_age is not None and c.max_age is not None,
        lambda c: all_of(min_age_at_least(c.min_age), max_age_at_most(c.max_age)),
    ),
    FilterRule(
        "find_by_price_range",
        lambda c: c.min_price is not None and c.max_price is not None,
        lambda c: price_between(c.min_price, c.max_price),
    ),
    # Single filters
    FilterRule("find_by_category", lambda c: c.category is not None, lambda c: category_is(c.category)),
    FilterRule("find_by_type", lambda c: c.type is not None, lambda c: type_is(c.type)),
    FilterRule("find_by_min_age_gte", lambda c: c.min_age is not None, lambda c: min_age_at_least(c.min_age)),
    FilterRule("find_by_max_age_lte", lambda c: c.max_age is not None, lambda c: max_age_at_most(c.max_age)),
    FilterRule("find_by_price_gte", lambda c: c.min_price is not None, lambda c: price_between(min_price=c.min_price)),
    FilterRule("find_by_price_lte", lambda c: c.max_price is not None, lambda c: price_between(max_price=c.max_price)),
    FilterRule(
        "find_by_next_session_date_gte",
        lambda c: c.from_date is not None,
        lambda c: session_from(c.from_date),
    ),
    # No filters
    FilterRule("find_all", lambda c: True, lambda c: MatchAll()),
)


class FilterPredicateBuilder:
    def __init__(self, rules: Sequence[FilterRule] = RULES):
        self.rules = tuple(rules)

    def match(self, criteria: SearchCriteria) -> FilterRule:
        """Return the first rule that applies to criteria."""
        for rule in self.rules:
            if rule.applies(criteria):
                return rule
        raise LookupError("no filter rule applies; the rule list must end with a catch-all")

    def build(self, criteria: SearchCriteria) -> Predicate:
        rule = self.match(criteria)
        log.debug("Filter rule selected: %s", rule.name)
        return rule.build(criteria)
