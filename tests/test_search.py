import pytest
from pydantic import ValidationError

from catalog.engine import CourseIndex
from catalog.errors import EngineUnavailable, InvalidCriteria
from catalog.filters import FilterPredicateBuilder
from catalog.models import ResultPage, SearchCriteria, build_criteria
from catalog.predicates import And, Contains, Equals, Fuzzy, MatchAll, Or, Range
from catalog.results import assemble
from catalog.search import CourseSearchService, SearchStrategy, text_predicate
from catalog.sorting import DEFAULT_ORDER, SortDirection, SortField, ordering_for, resolve
from catalog.suggest import SuggestionFinder
from conftest import make_course, utc


class RecordingEngine:
    """Wraps an index and records every query it receives."""

    def __init__(self, index: CourseIndex):
        self.index = index
        self.calls = []

    def query(self, predicate, page, size, order=None):
        self.calls.append(predicate)
        return self.index.query(predicate, page, size, order)


class FailingEngine:
    def __init__(self):
        self.calls = 0

    def query(self, predicate, page, size, order=None):
        self.calls += 1
        raise EngineUnavailable("connection refused")


@pytest.fixture
def catalog_index():
    return CourseIndex([
        make_course("1", "Java Basics", description="Start programming in Java.",
                    category="Programming", type="COURSE", price=300.0,
                    next_session_date=utc(2025, 6, 5)),
        make_course("2", "Python Basics", description="Scripts and notebooks.",
                    category="Programming", type="COURSE", price=200.0,
                    next_session_date=utc(2025, 6, 1)),
        make_course("3", "Algebra I", description="Equations and graphs.",
                    category="Math", type="COURSE", price=150.0,
                    next_session_date=utc(2025, 6, 3)),
        make_course("4", "Coffee Tasting", description="Java beans from around the world.",
                    category="Food", type="ONE_TIME", price=40.0,
                    next_session_date=utc(2025, 6, 2)),
    ])


# ---------------------------------------------------------------------------
# Sort policy
# ---------------------------------------------------------------------------

class TestSortPolicy:
    """Sort token resolution."""

    def test_price_ascending(self):
        order = resolve("priceAsc")
        assert order.field is SortField.PRICE
        assert order.direction is SortDirection.ASC

    def test_price_descending(self):
        order = resolve("priceDesc")
        assert order.field is SortField.PRICE
        assert order.direction is SortDirection.DESC

    @pytest.mark.parametrize("token", [None, "", "default", "PRICEASC", "price", "relevance", "priceAsc "])
    def test_unknown_tokens_fall_back_to_next_session_ascending(self, token):
        order = resolve(token)
        assert order == DEFAULT_ORDER
        assert order.field is SortField.NEXT_SESSION_DATE
        assert order.direction is SortDirection.ASC

    def test_ordering_carries_paging(self):
        spec = ordering_for(SearchCriteria(sort="priceDesc", page=2, size=5))
        assert spec.order == resolve("priceDesc")
        assert (spec.page, spec.size, spec.offset) == (2, 5, 10)


# ---------------------------------------------------------------------------
# Filter predicate builder
# ---------------------------------------------------------------------------

class TestFilterPredicateBuilder:
    """Priority-ordered filter rules."""

    @pytest.fixture
    def builder(self):
        return FilterPredicateBuilder()

    def test_category_and_type_are_combined(self, builder):
        predicate = builder.build(SearchCriteria(category="Math", type="COURSE"))
        assert predicate == And((Equals("category", "Math"), Equals("type", "COURSE")))

    def test_category_and_type_independent_of_field_order(self, builder):
        first = builder.build(SearchCriteria(category="Math", type="COURSE"))
        second = builder.build(SearchCriteria(type="COURSE", category="Math"))
        third = builder.build(SearchCriteria.model_validate({"type": "COURSE", "category": "Math"}))
        assert first == second == third

    def test_category_type_and_date(self, builder):
        since = utc(2025, 6, 1)
        criteria = SearchCriteria(category="Math", type="COURSE", from_date=since)
        assert builder.match(criteria).name == "find_by_category_and_type_and_next_session_date_gte"
        assert builder.build(criteria) == And((
            Equals("category", "Math"),
            Equals("type", "COURSE"),
            Range("next_session_date", gte=since),
        ))

    def test_age_range(self, builder):
        predicate = builder.build(SearchCriteria(min_age=18, max_age=65))
        assert predicate == And((Range("min_age", gte=18), Range("max_age", lte=65)))

    def test_price_range(self, builder):
        predicate = builder.build(SearchCriteria(min_price=10.0, max_price=20.0))
        assert predicate == Range("price", gte=10.0, lte=20.0)

    def test_age_combination_beats_single_category(self, builder):
        criteria = SearchCriteria(category="Math", min_age=8, max_age=12)
        assert builder.match(criteria).name == "find_by_age_range"

    def test_category_type_combination_beats_age_combination(self, builder):
        criteria = SearchCriteria(category="Math", type="COURSE", min_age=8, max_age=12)
        assert builder.match(criteria).name == "find_by_category_and_type"

    def test_age_combination_beats_price_combination(self, builder):
        criteria = SearchCriteria(min_age=8, max_age=12, min_price=1, max_price=5)
        assert builder.match(criteria).name == "find_by_age_range"

    @pytest.mark.parametrize("fields, rule", [
        ({"category": "Math", "min_price": 5.0}, "find_by_category"),
        ({"category": "Math", "from_date": utc(2025, 1, 1)}, "find_by_category"),
        ({"type": "CLUB", "min_age": 5}, "find_by_type"),
        ({"min_age": 5, "min_price": 5.0}, "find_by_min_age_gte"),
        ({"max_age": 12, "max_price": 5.0}, "find_by_max_age_lte"),
        ({"min_price": 5.0, "from_date": utc(2025, 1, 1)}, "find_by_price_gte"),
        ({"max_price": 5.0, "from_date": utc(2025, 1, 1)}, "find_by_price_lte"),
        ({"from_date": utc(2025, 1, 1)}, "find_by_next_session_date_gte"),
        ({}, "find_all"),
    ])
    def test_single_filter_priority(self, builder, fields, rule):
        assert builder.match(SearchCriteria(**fields)).name == rule

    def test_single_filters_build_expected_predicates(self, builder):
        assert builder.build(SearchCriteria(min_age=5)) == Range("min_age", gte=5)
        assert builder.build(SearchCriteria(max_age=9)) == Range("max_age", lte=9)
        assert builder.build(SearchCriteria(min_price=5.0)) == Range("price", gte=5.0)
        assert builder.build(SearchCriteria(max_price=7.0)) == Range("price", lte=7.0)

    def test_no_filters_match_everything(self, builder):
        assert builder.build(SearchCriteria(query="anything")) == MatchAll()

    def test_blank_text_filters_are_absent(self, builder):
        criteria = SearchCriteria(category="  ", type="")
        assert criteria.category is None and criteria.type is None
        assert builder.match(criteria).name == "find_all"

    def test_zero_is_a_real_bound(self, builder):
        assert builder.build(SearchCriteria(min_price=0.0)) == Range("price", gte=0.0)


# ---------------------------------------------------------------------------
# Query strategy
# ---------------------------------------------------------------------------

class TestQueryStrategy:
    """Text search with filtered fallback."""

    def test_strategy_selection(self, catalog_index):
        service = CourseSearchService(catalog_index)
        assert service.select_strategy(SearchCriteria(query="Java")) is SearchStrategy.TEXT
        assert service.select_strategy(SearchCriteria(query="   ")) is SearchStrategy.FILTERED
        assert service.select_strategy(SearchCriteria(category="Math")) is SearchStrategy.FILTERED

    def test_text_predicate_shape(self):
        assert text_predicate("Java") == Or((Fuzzy("title", "Java"), Contains("description", "Java")))

    def test_text_search_matches_title_or_description(self, catalog_index):
        engine = RecordingEngine(catalog_index)
        results = CourseSearchService(engine).search(SearchCriteria(query="Java"))

        # Coffee Tasting matches on description; default order is next session ascending
        assert [c.id for c in results.items] == ["4", "1"]
        assert results.total_matches == 2
        assert len(engine.calls) == 1

    def test_fuzzy_title_match(self, catalog_index):
        results = CourseSearchService(catalog_index).search(SearchCriteria(query="Pyhton"))
        assert [c.title for c in results.items] == ["Python Basics"]

    def test_empty_text_result_falls_back_to_filters(self, catalog_index):
        engine = RecordingEngine(catalog_index)
        results = CourseSearchService(engine).search(SearchCriteria(query="zzzzzz"))

        assert len(engine.calls) == 2
        assert engine.calls[1] == MatchAll()
        assert results.total_matches == 4

    def test_filters_win_over_text(self, catalog_index):
        engine = RecordingEngine(catalog_index)
        results = CourseSearchService(engine).search(SearchCriteria(query="Java", category="Math"))

        assert len(engine.calls) == 2
        assert [c.title for c in results.items] == ["Algebra I"]

    def test_fallback_law(self, catalog_index):
        service = CourseSearchService(catalog_index)
        with_text = service.search(SearchCriteria(query="Java", category="Programming"))
        without_text = service.search(SearchCriteria(category="Programming"))

        assert with_text == without_text
        assert [c.id for c in with_text.items] == ["2", "1"]

    def test_search_is_idempotent(self, catalog_index):
        service = CourseSearchService(catalog_index)
        criteria = SearchCriteria(query="Basics", sort="priceDesc")
        assert service.search(criteria) == service.search(criteria)

    def test_sort_applies_to_text_search(self, catalog_index):
        results = CourseSearchService(catalog_index).search(SearchCriteria(query="Basics", sort="priceAsc"))
        assert [c.price for c in results.items] == [200.0, 300.0]

    def test_sort_is_kept_on_fallback(self, catalog_index):
        results = CourseSearchService(catalog_index).search(
            SearchCriteria(query="Java", type="COURSE", sort="priceDesc")
        )
        assert [c.price for c in results.items] == [300.0, 200.0, 150.0]

    def test_engine_error_propagates_without_fallback(self):
        engine = FailingEngine()
        with pytest.raises(EngineUnavailable):
            CourseSearchService(engine).search(SearchCriteria(query="Java", category="Math"))
        assert engine.calls == 1

    def test_engine_error_on_filtered_search(self):
        with pytest.raises(EngineUnavailable):
            CourseSearchService(FailingEngine()).search(SearchCriteria(category="Math"))

    def test_short_final_page_is_not_an_error(self, catalog_index):
        results = CourseSearchService(catalog_index).search(SearchCriteria(page=1, size=3))
        assert len(results.items) == 1
        assert results.total_matches == 4
        assert results.is_last


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------

class TestSuggestionFinder:
    """Autocomplete over suggestion tokens."""

    @pytest.fixture
    def go_index(self):
        return CourseIndex([
            make_course("1", "Intro to Go"),
            make_course("2", "Intro to Go"),
            make_course("3", "Go Advanced"),
            make_course("4", "Algebra I"),
        ])

    def test_duplicates_removed_in_order(self, go_index):
        assert SuggestionFinder(go_index).suggest("Go", 10) == ["Intro to Go", "Go Advanced"]

    def test_empty_input_returns_empty_list(self, go_index):
        engine = RecordingEngine(go_index)
        assert SuggestionFinder(engine).suggest("", 5) == []
        assert SuggestionFinder(engine).suggest("   ", 5) == []
        assert engine.calls == []

    def test_no_match_returns_empty_list(self, go_index):
        assert SuggestionFinder(go_index).suggest("xyz", 10) == []

    def test_case_insensitive(self, go_index):
        assert SuggestionFinder(go_index).suggest("ALGE", 10) == ["Algebra I"]

    def test_limit_bounds_result(self, go_index):
        assert SuggestionFinder(go_index).suggest("o", 1) == ["Intro to Go"]

    def test_pages_past_duplicates_to_fill_limit(self, go_index):
        assert SuggestionFinder(go_index).suggest("go", 2) == ["Intro to Go", "Go Advanced"]

    def test_matches_any_suggestion_token(self):
        index = CourseIndex([make_course("1", "Intro to Python", suggest_tokens=("Intro to Python", "snakes"))])
        assert SuggestionFinder(index).suggest("snak", 3) == ["Intro to Python"]

    def test_non_positive_limit_rejected(self, go_index):
        with pytest.raises(InvalidCriteria):
            SuggestionFinder(go_index).suggest("go", 0)

    def test_service_delegates_to_finder(self, go_index):
        assert CourseSearchService(go_index).suggest("adv", 5) == ["Go Advanced"]


# ---------------------------------------------------------------------------
# Result assembly
# ---------------------------------------------------------------------------

class TestResultAssembler:
    """ResultPage construction."""

    def test_preserves_order(self):
        hits = [make_course("b", "B"), make_course("a", "A")]
        page = assemble(hits, total_matches=7, page=0, size=2)
        assert [c.id for c in page.items] == ["b", "a"]
        assert page.total_matches == 7
        assert page.total_pages == 4
        assert not page.is_last

    def test_rejects_more_items_than_size(self):
        with pytest.raises(ValidationError):
            assemble([make_course("a"), make_course("b")], total_matches=2, page=0, size=1)

    def test_rejects_total_below_item_count(self):
        with pytest.raises(ValidationError):
            assemble([make_course("a"), make_course("b")], total_matches=1, page=0, size=5)

    def test_empty_page(self):
        page = assemble([], total_matches=0, page=0, size=10)
        assert page.items == ()
        assert page.total_pages == 0
        assert page.is_last

    def test_page_is_immutable(self):
        page = assemble([make_course("a")], total_matches=1, page=0, size=1)
        with pytest.raises(ValidationError):
            page.total_matches = 5


# ---------------------------------------------------------------------------
# Criteria
# ---------------------------------------------------------------------------

class TestSearchCriteria:
    """Criteria normalisation and boundary validation."""

    def test_defaults(self):
        criteria = SearchCriteria()
        assert (criteria.page, criteria.size) == (0, 10)
        assert not criteria.has_filters()

    def test_camel_case_aliases(self):
        criteria = SearchCriteria.model_validate({"minAge": 3, "fromDate": "2025-06-01T00:00:00Z"})
        assert criteria.min_age == 3
        assert criteria.from_date == utc(2025, 6, 1)
        assert criteria.has_filters()

    def test_naive_dates_are_utc(self):
        criteria = SearchCriteria(from_date="2025-06-01T00:00:00")
        assert criteria.from_date == utc(2025, 6, 1)

    @pytest.mark.parametrize("fields", [{"page": -1}, {"size": 0}, {"min_age": "old"}])
    def test_build_criteria_rejects_malformed_input(self, fields):
        with pytest.raises(InvalidCriteria):
            build_criteria(**fields)

    def test_criteria_are_immutable(self):
        criteria = SearchCriteria(category="Math")
        with pytest.raises(ValidationError):
            criteria.category = "Art"


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------

class TestSearchEndToEnd:
    """Full search path against seeded indexes."""

    def test_age_range_counts_only_matching_records(self):
        index = CourseIndex([
            make_course("m1", "Adult Pottery", min_age=18, max_age=65),
            make_course("m2", "Evening Chess", min_age=20, max_age=60),
            make_course("m3", "Book Club", min_age=30, max_age=40),
            make_course("n1", "Teen Coding", min_age=16, max_age=65),
            make_course("n2", "Senior Walks", min_age=18, max_age=70),
        ])
        service = CourseSearchService(index)

        results = service.search(SearchCriteria(min_age=18, max_age=65, size=10))
        assert results.total_matches == 3
        assert {c.id for c in results.items} == {"m1", "m2", "m3"}

        results = service.search(SearchCriteria(min_age=18, max_age=65, size=2))
        assert results.total_matches == 3
        assert len(results.items) == 2

    def test_text_query_paginates(self):
        index = CourseIndex([make_course(str(i), f"Course {i}") for i in range(1, 11)])
        results = CourseSearchService(index).search(SearchCriteria(query="Course", page=0, size=5))

        assert len(results.items) == 5
        assert results.total_matches == 10
        assert isinstance(results, ResultPage)

    def test_misspelled_query_against_sample_data(self, sample_index):
        results = CourseSearchService(sample_index).search(SearchCriteria(query="Corse"))
        assert results.total_matches > 0
        assert "Course" in results.items[0].title

    def test_category_filter_against_sample_data(self, sample_index):
        results = CourseSearchService(sample_index).search(SearchCriteria(category="Math", size=50))
        assert results.total_matches == 5
        assert all(c.category == "Math" for c in results.items)
