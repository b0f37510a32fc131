"""
Autocomplete suggestions.

The lower-cased input is contains-matched against every record's suggestion
tokens. Titles are deduplicated in engine order (no sort is applied) and the
first `limit` distinct titles are returned. The engine is paged until enough
distinct titles are collected or the matches run out.
"""

import logging

from catalog.engine import SearchEngine
from catalog.errors import InvalidCriteria
from catalog.predicates import Contains

log = logging.getLogger(__name__)

SUGGEST_FIELD = "suggest_tokens"


class SuggestionFinder:
    def __init__(self, engine: SearchEngine):
        self.engine = engine

    def suggest(self, partial_title: str, limit: int) -> list[str]:
        if limit <= 0:
            raise InvalidCriteria("suggestion limit must be positive", {"limit": limit})
        if not partial_title or not partial_title.strip():
            return []

        log.debug("Getting autocomplete suggestions for: %r", partial_title)
        predicate = Contains(SUGGEST_FIELD, partial_title.lower())

        titles: list[str] = []
        seen: set[str] = set()
        page = 0
        while len(titles) < limit:
            hits, total = self.engine.query(predicate, page=page, size=limit)
            for course in hits:
                if course.title not in seen:
                    seen.add(course.title)
                    titles.append(course.title)
                    if len(titles) == limit:
                        break
            page += 1
            if not hits or page * limit >= total:
                break

        log.debug("Found %d suggestions", len(titles))
        return titles
