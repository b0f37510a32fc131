from datetime import datetime, timezone

import pytest

from catalog.config import COURSES_FILE
from catalog.engine import CourseIndex
from catalog.models import CourseRecord
from etl.pipeline import load, to_records


def make_course(course_id: str, title: str = "", **fields) -> CourseRecord:
    """Build a CourseRecord; suggestion tokens default to the title."""
    fields.setdefault("suggest_tokens", (title,) if title else ())
    return CourseRecord(id=course_id, title=title, **fields)


def utc(year: int, month: int, day: int, hour: int = 0) -> datetime:
    return datetime(year, month, day, hour, tzinfo=timezone.utc)


@pytest.fixture
def sample_index():
    """Index seeded with the bundled data/sample_courses.json (20 courses)."""
    return CourseIndex(to_records(load(COURSES_FILE), str(COURSES_FILE)))
