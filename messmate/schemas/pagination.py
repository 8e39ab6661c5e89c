import math
from typing import Callable, Generic, List, Sequence, TypeVar

from messmate.schemas.reservation import CamelModel

S = TypeVar("S")
T = TypeVar("T")


class Page(CamelModel, Generic[T]):
    """One zero-indexed page of results."""
    content: List[T]
    page_number: int
    page_size: int
    total_elements: int
    total_pages: int
    last_page: bool


def paginate(
    items: Sequence[S],
    total: int,
    page: int,
    size: int,
    mapper: Callable[[S], T]
) -> Page[T]:
    """
    Build a Page from one already-fetched slice of records.

    - items: the records on this page (already skipped/limited)
    - total: number of records across all pages
    - mapper: converts each record to its response shape
    """
    total_pages = math.ceil(total / size) if size > 0 else 0
    return Page(
        content=[mapper(item) for item in items],
        page_number=page,
        page_size=size,
        total_elements=total,
        total_pages=total_pages,
        last_page=page >= total_pages - 1
    )
