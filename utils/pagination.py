import math
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query


def page_info(total: int, page: int, limit: int) -> Dict[str, int]:
    """Pagination fields shared by every list response."""
    return {
        "total_pages": math.ceil(total / limit) if limit else 0,
        "current_page": page,
        "total": total,
    }


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, int]]:
    """
    Apply offset/limit to an ordered query.

    Args:
        query: SQLAlchemy query, already filtered and ordered
        page: 1-based page number
        limit: Page size

    Returns:
        (items on the page, pagination fields)
    """
    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    return items, page_info(total, page, limit)
