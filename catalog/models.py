"""
Value types shared by the search core, the engine and the HTTP layer.

    CourseRecord    one indexed course document (camelCase JSON aliases)
    SearchCriteria  immutable, normalised search request
    ResultPage      read-only page of hits plus pagination metadata

Absent fields mean "unconstrained". Blank strings are normalised to None so
that an empty ?category= parameter never filters anything.
"""

import math
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_serializer, field_validator, model_validator

from catalog.config import DEFAULT_PAGE_SIZE
from catalog.errors import InvalidCriteria

T = TypeVar("T")

DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def as_utc(value: datetime | None) -> datetime | None:
    """Naive timestamps are taken to be UTC; aware ones are converted."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CourseRecord(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str = ""
    description: str = ""
    category: str | None = None
    type: str | None = None
    grade_range: str | None = Field(None, alias="gradeRange")
    min_age: int | None = Field(None, alias="minAge")
    max_age: int | None = Field(None, alias="maxAge")
    price: float | None = None
    next_session_date: datetime | None = Field(None, alias="nextSessionDate")
    suggest_tokens: tuple[str, ...] = Field((), alias="suggestTokens")

    @field_validator("next_session_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @field_serializer("next_session_date")
    def _format_date(self, value: datetime | None) -> str | None:
        return value.strftime(DATE_FORMAT) if value else None


class SearchCriteria(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    query: str | None = None
    category: str | None = None
    type: str | None = None
    min_age: int | None = Field(None, alias="minAge")
    max_age: int | None = Field(None, alias="maxAge")
    min_price: float | None = Field(None, alias="minPrice")
    max_price: float | None = Field(None, alias="maxPrice")
    from_date: datetime | None = Field(None, alias="fromDate")
    sort: str | None = None
    page: int = Field(0, ge=0)
    size: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    @field_validator("query", "category", "type", "sort", mode="before")
    @classmethod
    def _blank_is_absent(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("from_date")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    def has_filters(self) -> bool:
        """True when any structured filter (anything but query/sort/paging) is set."""
        return any(
            value is not None
            for value in (
                self.category, self.type,
                self.min_age, self.max_age,
                self.min_price, self.max_price,
                self.from_date,
            )
        )


def build_criteria(**params: Any) -> SearchCriteria:
    """Construct SearchCriteria, turning validation failures into InvalidCriteria."""
    try:
        return SearchCriteria(**params)
    except ValidationError as exc:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in exc.errors()})
        raise InvalidCriteria(", ".join(fields) or "malformed request", {"fields": fields}) from exc


class ResultPage(BaseModel, Generic[T]):
    model_config = ConfigDict(frozen=True)

    items: tuple[T, ...] = ()
    total_matches: int = Field(0, ge=0)
    page: int = Field(0, ge=0)
    size: int = Field(DEFAULT_PAGE_SIZE, ge=1)

    @model_validator(mode="after")
    def _check_bounds(self) -> "ResultPage[T]":
        if len(self.items) > self.size:
            raise ValueError(f"page holds {len(self.items)} items but size is {self.size}")
        if self.total_matches < len(self.items):
            raise ValueError(f"total_matches {self.total_matches} is below item count {len(self.items)}")
        return self

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_matches / self.size)

    @property
    def is_last(self) -> bool:
        return self.page + 1 >= self.total_pages
