"""
Query strategy selection: full-text search with a filtered fallback.

    query has text  -> TEXT:     fuzzy(title) OR contains(description)
                       if the text result is empty, OR any structured filter
                       is present, the text result is discarded and the
                       request is re-run as FILTERED with the same ordering
    otherwise       -> FILTERED: one predicate from FilterPredicateBuilder

Filters always win over text: a query plus a category returns exactly what
the category alone returns. Text search is a first attempt, not an additive
constraint, so callers cannot combine full-text and filters. This is
surprising behaviour and a candidate for revisiting, but it is relied on.

Engine errors propagate immediately; they never trigger the fallback.

Public API:
    CourseSearchService(engine)
    CourseSearchService.search(criteria)       -> ResultPage[CourseRecord]
    CourseSearchService.suggest(partial, limit) -> list[str]
"""

import logging
from enum import Enum

from catalog.engine import SearchEngine
from catalog.filters import FilterPredicateBuilder
from catalog.models import CourseRecord, ResultPage, SearchCriteria
from catalog.predicates import Contains, Fuzzy, Predicate, any_of
from catalog.results import assemble
from catalog.sorting import OrderingSpec, ordering_for
from catalog.suggest import SuggestionFinder

log = logging.getLogger(__name__)


class SearchStrategy(str, Enum):
    TEXT = "text"
    FILTERED = "filtered"


def text_predicate(query: str) -> Predicate:
    return any_of(Fuzzy("title", query), Contains("description", query))


class CourseSearchService:
    def __init__(self, engine: SearchEngine, filters: FilterPredicateBuilder | None = None):
        self.engine = engine
        self.filters = filters or FilterPredicateBuilder()
        self.suggestions = SuggestionFinder(engine)

    def select_strategy(self, criteria: SearchCriteria) -> SearchStrategy:
        """Strategy the request starts in; TEXT may still fall back to FILTERED."""
        return SearchStrategy.TEXT if criteria.query is not None else SearchStrategy.FILTERED

    def search(self, criteria: SearchCriteria) -> ResultPage[CourseRecord]:
        ordering = ordering_for(criteria)

        if self.select_strategy(criteria) is SearchStrategy.TEXT:
            results = self._text_search(criteria.query, ordering)
            if results.items and not criteria.has_filters():
                return results
            log.debug(
                "Falling back to filtered search (text page hits=%d, filters=%s)",
                len(results.items), criteria.has_filters(),
            )

        return self._filtered_search(criteria, ordering)

    def suggest(self, partial_title: str, limit: int) -> list[str]:
        return self.suggestions.suggest(partial_title, limit)

    def _text_search(self, query: str, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        log.debug("Searching courses with text query: %r", query)
        return self._execute(text_predicate(query), ordering)

    def _filtered_search(self, criteria: SearchCriteria, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        log.debug("Searching courses with filters")
        return self._execute(self.filters.build(criteria), ordering)

    def _execute(self, predicate: Predicate, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        hits, total = self.engine.query(predicate, page=ordering.page, size=ordering.size, order=ordering.order)
        return assemble(hits, total, ordering.page, ordering.size)
