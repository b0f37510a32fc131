"""
FastAPI application — HTTP front of the course search service.

Run as a script to build the index if needed, then serve:
    python app/app.py

Or run as a module:
    uvicorn app.app:app --reload

Startup (lifespan):
    1. data/course_index.json exists  → load the index snapshot
    2. otherwise                      → seed from data/sample_courses.json
                                        and write the snapshot

Endpoints:
    GET /api/search
        params: q, category, type, minAge, maxAge, minPrice, maxPrice,
                startDate, sort (priceAsc | priceDesc), page, size
        returns: {"total": int, "courses": [...]}
    GET /api/search/suggest
        params: q, size
        returns: ["title", ...]
    GET /health

Logs each search and wall-clock response time to stdout and logs/app.log
(rotating, 5 MB max, 3 backups).
"""

import asyncio
import logging
import logging.handlers
import sys
import time
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

# Ensure project root is on sys.path when running as a script (python app/app.py)
sys.path.insert(0, str(Path(__file__).parent.parent))

load_dotenv()

from catalog.config import (
    API_HOST,
    API_PORT,
    COURSES_FILE,
    DEFAULT_PAGE_SIZE,
    DEFAULT_SUGGEST_SIZE,
    INDEX_FILE,
    LOG_DIR,
    LOG_LEVEL,
)
from catalog.engine import CourseIndex
from catalog.errors import CatalogSearchError, EngineUnavailable, InvalidCriteria
from catalog.models import DATE_FORMAT, CourseRecord, build_criteria
from catalog.repository import CourseRepository
from catalog.search import CourseSearchService
from etl.pipeline import run as run_pipeline

LOG_FILE = LOG_DIR / "app.log"

def _setup_logging() -> None:
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    fmt = logging.Formatter("%(asctime)s  %(levelname)s  %(name)s  %(message)s")

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(fmt)

    # Rotate at 5 MB, keep 3 backups
    rotating = logging.handlers.RotatingFileHandler(
        LOG_FILE, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
    )
    rotating.setFormatter(fmt)

    root = logging.getLogger()
    root.setLevel(LOG_LEVEL)
    root.addHandler(stream)
    root.addHandler(rotating)

_setup_logging()
log = logging.getLogger("api")


# ---------------------------------------------------------------------------
# Index bootstrap
# ---------------------------------------------------------------------------

def _build_index(index_file: Path = INDEX_FILE, courses_file: Path = COURSES_FILE) -> CourseIndex:
    """Load the index snapshot, or seed a fresh index and snapshot it."""
    if index_file.exists():
        log.info("Index snapshot found — loading %s…", index_file.name)
        return CourseIndex.load(index_file)

    log.info("Index snapshot missing — seeding from %s…", courses_file.name)
    index = CourseIndex()
    run_pipeline(CourseRepository(index), courses_file)
    index.save(index_file)
    log.info("  Index snapshot saved → %s", index_file.name)
    return index


# ---------------------------------------------------------------------------
# App + lifespan
# ---------------------------------------------------------------------------

_index: CourseIndex | None = None


@asynccontextmanager
async def lifespan(_: FastAPI):
    global _index

    _index = _build_index()
    log.info("  %d courses indexed. Ready.", len(_index))

    yield  # server runs here

    _index.close()


app = FastAPI(title="Course Catalog Search", lifespan=lifespan)


def get_index() -> CourseIndex:
    if _index is None:
        raise EngineUnavailable("index not initialised")
    return _index


def get_service(index: CourseIndex = Depends(get_index)) -> CourseSearchService:
    return CourseSearchService(index)


# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

class CourseInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    category: str | None = None
    price: float | None = None
    next_session_date: str | None = Field(None, alias="nextSessionDate")

    @classmethod
    def from_course(cls, course: CourseRecord) -> "CourseInfo":
        session = course.next_session_date
        return cls(
            id=course.id,
            title=course.title,
            category=course.category,
            price=course.price,
            next_session_date=session.strftime(DATE_FORMAT) if session else None,
        )


class SearchResponse(BaseModel):
    total: int
    courses: list[CourseInfo]


class HealthResponse(BaseModel):
    status: str
    courses: int


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

_STATUS = {
    EngineUnavailable: 503,
    InvalidCriteria:   400,
}


@app.exception_handler(CatalogSearchError)
async def _catalog_error(_: Request, exc: CatalogSearchError) -> JSONResponse:
    status = _STATUS.get(type(exc), 500)
    log.warning("%s → %d", exc, status)
    return JSONResponse(status_code=status, content={"error_code": exc.error_code, "detail": exc.message})


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/search", response_model=SearchResponse)
def search(
    q: str | None = None,
    category: str | None = None,
    type: str | None = None,
    min_age: int | None = Query(None, alias="minAge"),
    max_age: int | None = Query(None, alias="maxAge"),
    min_price: float | None = Query(None, alias="minPrice"),
    max_price: float | None = Query(None, alias="maxPrice"),
    start_date: datetime | None = Query(None, alias="startDate"),
    sort: str | None = None,
    page: int = 0,
    size: int = DEFAULT_PAGE_SIZE,
    service: CourseSearchService = Depends(get_service),
) -> SearchResponse:
    t0 = time.perf_counter()

    criteria = build_criteria(
        query=q, category=category, type=type,
        min_age=min_age, max_age=max_age,
        min_price=min_price, max_price=max_price,
        from_date=start_date, sort=sort, page=page, size=size,
    )
    log.info("Searching: %s", criteria.model_dump(exclude_none=True))

    results = service.search(criteria)

    elapsed = time.perf_counter() - t0
    log.info("q=%r  hits=%d  total=%d  %.3fs", q, len(results.items), results.total_matches, elapsed)

    return SearchResponse(
        total=results.total_matches,
        courses=[CourseInfo.from_course(c) for c in results.items],
    )


@app.get("/api/search/suggest", response_model=list[str])
def suggest(
    q: str = "",
    size: int = DEFAULT_SUGGEST_SIZE,
    service: CourseSearchService = Depends(get_service),
) -> list[str]:
    suggestions = service.suggest(q, size)
    log.info("suggest q=%r  size=%d  found=%d", q, size, len(suggestions))
    return suggestions


@app.get("/health", response_model=HealthResponse)
def health(index: CourseIndex = Depends(get_index)) -> HealthResponse:
    return HealthResponse(status="ok", courses=index.count())


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def _launch_server() -> None:
    config = uvicorn.Config(app, host=API_HOST, port=API_PORT, reload=False)
    server = uvicorn.Server(config)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        uvicorn.run(app, host=API_HOST, port=API_PORT, reload=False)
        return

    log.warning(
        "Detected an existing asyncio event loop; serving with create_task() instead of asyncio.run()."
    )
    asyncio.create_task(server.serve())


if __name__ == "__main__":
    log.info("=== Course Catalog Search — starting up ===")
    _launch_server()
