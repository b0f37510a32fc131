"""
Sort policy: sort token -> field + direction, plus paging bounds.

    priceAsc   -> price ascending
    priceDesc  -> price descending
    anything else (including None) -> nextSessionDate ascending

Unknown tokens are not an error; they silently get the default ordering.
"""

from dataclasses import dataclass
from enum import Enum

from catalog.models import SearchCriteria


class SortField(str, Enum):
    NEXT_SESSION_DATE = "nextSessionDate"
    PRICE = "price"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortOrder:
    field: SortField
    direction: SortDirection


@dataclass(frozen=True)
class OrderingSpec:
    order: SortOrder
    page: int
    size: int

    @property
    def offset(self) -> int:
        return self.page * self.size


DEFAULT_ORDER = SortOrder(SortField.NEXT_SESSION_DATE, SortDirection.ASC)

_ORDERS: dict[str, SortOrder] = {
    "priceAsc":  SortOrder(SortField.PRICE, SortDirection.ASC),
    "priceDesc": SortOrder(SortField.PRICE, SortDirection.DESC),
}


def resolve(sort_token: str | None) -> SortOrder:
    if sort_token is None:
        return DEFAULT_ORDER
    return _ORDERS.get(sort_token, DEFAULT_ORDER)


def ordering_for(criteria: SearchCriteria) -> OrderingSpec:
    return OrderingSpec(resolve(criteria.sort), criteria.page, criteria.size)
