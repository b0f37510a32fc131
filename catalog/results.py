"""Result assembly: engine hits + paging metadata -> ResultPage."""

from collections.abc import Sequence
from typing import TypeVar

from catalog.models import ResultPage

T = TypeVar("T")


def assemble(hits: Sequence[T], total_matches: int, page: int, size: int) -> ResultPage[T]:
    """Wrap hits without filtering or reordering them."""
    return ResultPage(items=tuple(hits), total_matches=total_matches, page=page, size=size)
