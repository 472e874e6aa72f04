"""
Page/per_page handling shared by every list endpoint.
"""
import math
from dataclasses import dataclass

from fastapi import Query, Response

from config import get_pagination_defaults

DEFAULT_PER_PAGE, MAX_PER_PAGE = get_pagination_defaults()


@dataclass
class Pagination:
    page: int
    per_page: int

    @property
    def offset(self):
        return (self.page - 1) * self.per_page


def pagination_params(
    page: int = Query(1, ge=1, description="1-based page number"),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE, description="Items per page"),
) -> Pagination:
    return Pagination(page=page, per_page=per_page)


def paginated(response: Response, items, total, pagination: Pagination):
    """Wrap a page of items and set the X-Total / X-Total-Pages headers"""
    total_pages = math.ceil(total / pagination.per_page) if total else 0
    response.headers["X-Total"] = str(total)
    response.headers["X-Total-Pages"] = str(total_pages)
    return {
        "total": total,
        "total_pages": total_pages,
        "page": pagination.page,
        "per_page": pagination.per_page,
        "items": items,
    }


def paginate_list(response: Response, items, pagination: Pagination):
    """Paginate a fully computed list in memory"""
    page_items = items[pagination.offset:pagination.offset + pagination.per_page]
    return paginated(response, page_items, len(items), pagination)
