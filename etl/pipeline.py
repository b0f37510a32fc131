"""
Bootstrap loader: reads data/sample_courses.json and seeds the course index.

Load strategy:
  - If the index already holds courses, nothing is loaded (no duplicates)
  - Each document becomes a CourseRecord; camelCase keys as in the JSON file
  - Suggestion tokens come from "suggest" (a list, or {"input": [...]});
    documents without them get their title as the only token
  - A missing or malformed file raises CatalogLoadError
"""

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from catalog.config import COURSES_FILE
from catalog.errors import CatalogLoadError
from catalog.models import CourseRecord
from catalog.repository import CourseRepository

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def load(path: Path) -> list[dict[str, Any]]:
    """Load a JSON array of course documents from disk."""
    try:
        docs = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CatalogLoadError(str(path), str(exc)) from exc
    if not isinstance(docs, list):
        raise CatalogLoadError(str(path), "expected a JSON array of courses")
    return docs


def suggest_tokens(doc: dict[str, Any]) -> list[str]:
    """Pull suggestion inputs out of a document, defaulting to its title."""
    suggest = doc.get("suggest") or doc.get("suggestTokens")
    if isinstance(suggest, dict):
        suggest = suggest.get("input")
    if isinstance(suggest, str):
        suggest = [suggest]
    tokens = [t for t in (suggest or []) if t]
    if not tokens and doc.get("title"):
        tokens = [doc["title"]]
    return tokens


def to_record(doc: dict[str, Any]) -> CourseRecord:
    fields = {k: v for k, v in doc.items() if k not in ("suggest", "suggestTokens")}
    return CourseRecord.model_validate({**fields, "suggestTokens": suggest_tokens(doc)})


def to_records(docs: list[dict[str, Any]], source: str = "<memory>") -> list[CourseRecord]:
    try:
        return [to_record(doc) for doc in docs]
    except ValidationError as exc:
        raise CatalogLoadError(source, str(exc)) from exc


# ---------------------------------------------------------------------------
# Entry point (importable, not a CLI)
# ---------------------------------------------------------------------------

def run(repository: CourseRepository, path: Path = COURSES_FILE) -> int:
    """Seed the repository from path unless it already holds courses. Returns the number saved."""
    log.info("Starting data loading process…")

    if repository.count() > 0:
        log.info("Courses already exist in the index — skipping data loading.")
        return 0

    courses = to_records(load(path), str(path))
    log.info("Loaded %d courses from %s", len(courses), path.name)

    saved = repository.save_all(courses)
    log.info("Saved %d courses to the index", len(saved))
    return len(saved)
