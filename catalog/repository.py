"""
Course repository: named query-by-field operations over the engine.

Each finder builds its predicate with the same helpers the filter rules use,
so `find_by_category_and_type(...)` returns exactly what the
"find_by_category_and_type" filter rule would.
"""

from collections.abc import Iterable
from datetime import datetime

from catalog.engine import CourseIndex
from catalog.filters import (
    category_is,
    max_age_at_most,
    min_age_at_least,
    price_between,
    session_from,
    type_is,
)
from catalog.models import CourseRecord, ResultPage
from catalog.predicates import MatchAll, Predicate, all_of
from catalog.results import assemble
from catalog.sorting import OrderingSpec


class CourseRepository:
    def __init__(self, index: CourseIndex):
        self.index = index

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def count(self) -> int:
        return self.index.count()

    def save_all(self, courses: Iterable[CourseRecord]) -> list[CourseRecord]:
        return self.index.save_all(courses)

    def delete_all(self) -> None:
        self.index.delete_all()

    # ------------------------------------------------------------------
    # Finders
    # ------------------------------------------------------------------

    def find_all(self, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(MatchAll(), ordering)

    def find_by_category(self, category: str, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(category_is(category), ordering)

    def find_by_type(self, course_type: str, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(type_is(course_type), ordering)

    def find_by_min_age_gte(self, min_age: int, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(min_age_at_least(min_age), ordering)

    def find_by_max_age_lte(self, max_age: int, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(max_age_at_most(max_age), ordering)

    def find_by_price_gte(self, min_price: float, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(price_between(min_price=min_price), ordering)

    def find_by_price_lte(self, max_price: float, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(price_between(max_price=max_price), ordering)

    def find_by_next_session_date_gte(self, from_date: datetime, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(session_from(from_date), ordering)

    def find_by_category_and_type(
        self, category: str, course_type: str, ordering: OrderingSpec
    ) -> ResultPage[CourseRecord]:
        return self._find(all_of(category_is(category), type_is(course_type)), ordering)

    def find_by_age_range(self, min_age: int, max_age: int, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        return self._find(all_of(min_age_at_least(min_age), max_age_at_most(max_age)), ordering)

    def find_by_price_range(
        self, min_price: float, max_price: float, ordering: OrderingSpec
    ) -> ResultPage[CourseRecord]:
        return self._find(price_between(min_price, max_price), ordering)

    def find_by_category_and_type_and_next_session_date_gte(
        self, category: str, course_type: str, from_date: datetime, ordering: OrderingSpec
    ) -> ResultPage[CourseRecord]:
        return self._find(
            all_of(category_is(category), type_is(course_type), session_from(from_date)), ordering
        )

    def _find(self, predicate: Predicate, ordering: OrderingSpec) -> ResultPage[CourseRecord]:
        hits, total = self.index.query(predicate, page=ordering.page, size=ordering.size, order=ordering.order)
        return assemble(hits, total, ordering.page, ordering.size)
