"""
Page/limit pagination over SQLAlchemy queries
"""
import math
from typing import Any, Dict, List, Tuple
from sqlalchemy.orm import Query

MAX_LIMIT = 100


def paginate(query: Query, page: int = 1, limit: int = 10) -> Tuple[List[Any], Dict[str, int]]:
    """Return (rows, meta) for a 1-based page of an ordered query"""
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_LIMIT)

    total = query.count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    meta = {
        "page": page,
        "limit": limit,
        "total": total,
        "total_pages": math.ceil(total / limit) if total else 0,
    }
    return rows, meta
