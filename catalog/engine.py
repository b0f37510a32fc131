"""
In-process course search engine.

Holds CourseRecord documents in insertion order and answers composite
predicate queries with numpy boolean masks over per-field columns. Sorting is
stable, so insertion order breaks ties; documents missing the sort field go
last in either direction.

Text semantics:
    Equals    case-insensitive exact match
    Contains  case-insensitive substring (any element for list fields)
    Fuzzy     any query term within automatic Levenshtein fuzziness of any
              field token: 0 edits for 1-2 chars, 1 for 3-5, 2 beyond

Public API:
    CourseIndex(courses)
    CourseIndex.query(predicate, page, size, order) -> (hits, total)
    CourseIndex.save_all() / delete_all() / count() / close()
    CourseIndex.save(path) / CourseIndex.load(path)
"""

import json
import logging
import re
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

import numpy as np
from rapidfuzz.distance import Levenshtein

from catalog.config import INDEX_FILE
from catalog.errors import EngineUnavailable
from catalog.models import CourseRecord, as_utc
from catalog.predicates import And, Contains, Equals, Fuzzy, MatchAll, Or, Predicate, Range
from catalog.sorting import SortDirection, SortField, SortOrder

log = logging.getLogger(__name__)

SORT_ATTRS = {
    SortField.NEXT_SESSION_DATE: "next_session_date",
    SortField.PRICE:             "price",
}


class SearchEngine(Protocol):
    def query(
        self,
        predicate: Predicate,
        page: int,
        size: int,
        order: SortOrder | None = None,
    ) -> tuple[list[CourseRecord], int]:
        ...


def _tokenise(text: str) -> list[str]:
    return re.findall(r"\w+", text.lower())


def _fuzziness(term: str) -> int:
    if len(term) <= 2:
        return 0
    if len(term) <= 5:
        return 1
    return 2


def fuzzy_match(text: str | None, query: str) -> bool:
    if not text:
        return False
    tokens = _tokenise(text)
    for term in _tokenise(query):
        max_edits = _fuzziness(term)
        for token in tokens:
            if Levenshtein.distance(term, token, score_cutoff=max_edits) <= max_edits:
                return True
    return False


def contains_match(value: Any, text: str) -> bool:
    needle = text.lower()
    if isinstance(value, (list, tuple)):
        return any(needle in str(v).lower() for v in value)
    return value is not None and needle in str(value).lower()


def _as_number(value: Any) -> float:
    if value is None:
        return np.nan
    if isinstance(value, datetime):
        return as_utc(value).timestamp()
    return float(value)


class CourseIndex:
    def __init__(self, courses: Iterable[CourseRecord] = ()):
        self.courses: list[CourseRecord] = list(courses)
        self._columns: dict[str, np.ndarray] = {}
        self._closed = False

    def __len__(self) -> int:
        return len(self.courses)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def count(self) -> int:
        self._ensure_open()
        return len(self.courses)

    def save_all(self, courses: Iterable[CourseRecord]) -> list[CourseRecord]:
        """Insert documents; a document whose id already exists replaces it in place."""
        self._ensure_open()
        positions = {c.id: i for i, c in enumerate(self.courses)}
        saved = []
        for course in courses:
            if course.id in positions:
                self.courses[positions[course.id]] = course
            else:
                positions[course.id] = len(self.courses)
                self.courses.append(course)
            saved.append(course)
        self._columns.clear()
        return saved

    def delete_all(self) -> None:
        self._ensure_open()
        self.courses.clear()
        self._columns.clear()

    def close(self) -> None:
        self._closed = True

    def _ensure_open(self) -> None:
        if self._closed:
            raise EngineUnavailable("index is closed")

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def query(
        self,
        predicate: Predicate,
        page: int,
        size: int,
        order: SortOrder | None = None,
    ) -> tuple[list[CourseRecord], int]:
        """
        Return (hits for the requested page, total number of matches).

        Without an order, hits come back in insertion order.
        """
        self._ensure_open()
        matched = np.flatnonzero(self._mask(predicate))
        if order is not None and matched.size:
            keys = self._sort_keys(order)[matched]
            matched = matched[np.argsort(keys, kind="stable")]

        start = page * size
        hits = [self.courses[i] for i in matched[start:start + size]]
        return hits, int(matched.size)

    def _mask(self, predicate: Predicate) -> np.ndarray:
        n = len(self.courses)
        if isinstance(predicate, MatchAll):
            return np.ones(n, dtype=bool)
        if isinstance(predicate, And):
            mask = np.ones(n, dtype=bool)
            for child in predicate.children:
                mask &= self._mask(child)
            return mask
        if isinstance(predicate, Or):
            mask = np.zeros(n, dtype=bool)
            for child in predicate.children:
                mask |= self._mask(child)
            return mask
        if isinstance(predicate, Range):
            col = self._numeric(predicate.field)
            mask = ~np.isnan(col)
            if predicate.gte is not None:
                mask &= col >= _as_number(predicate.gte)
            if predicate.lte is not None:
                mask &= col <= _as_number(predicate.lte)
            return mask
        if isinstance(predicate, Equals):
            target = predicate.value.strip().lower()
            return self._text_mask(predicate.field, lambda v: v is not None and str(v).strip().lower() == target)
        if isinstance(predicate, Contains):
            return self._text_mask(predicate.field, lambda v: contains_match(v, predicate.text))
        if isinstance(predicate, Fuzzy):
            return self._text_mask(predicate.field, lambda v: fuzzy_match(v, predicate.text))
        raise TypeError(f"Unsupported predicate: {predicate!r}")

    def _text_mask(self, field: str, test) -> np.ndarray:
        return np.array([test(getattr(c, field)) for c in self.courses], dtype=bool)

    def _numeric(self, field: str) -> np.ndarray:
        if field not in self._columns:
            self._columns[field] = np.array(
                [_as_number(getattr(c, field)) for c in self.courses], dtype=np.float64
            )
        return self._columns[field]

    def _sort_keys(self, order: SortOrder) -> np.ndarray:
        col = self._numeric(SORT_ATTRS[order.field])
        keys = col if order.direction is SortDirection.ASC else -col
        return np.where(np.isnan(col), np.inf, keys)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def save(self, path: Path = INDEX_FILE) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        docs = [c.model_dump(mode="json", by_alias=True) for c in self.courses]
        path.write_text(json.dumps(docs, ensure_ascii=False), encoding="utf-8")

    @classmethod
    def load(cls, path: Path = INDEX_FILE) -> "CourseIndex":
        try:
            docs = json.loads(path.read_text(encoding="utf-8"))
            courses = [CourseRecord.model_validate(d) for d in docs]
        except (OSError, ValueError, TypeError) as exc:
            raise EngineUnavailable(f"cannot read index snapshot {path}", {"path": str(path)}) from exc
        log.info("Loaded %d courses from %s", len(courses), path)
        return cls(courses)
