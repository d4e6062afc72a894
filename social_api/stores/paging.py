"""
Keyset pagination shared by every cursor-paged read.

Rows are ordered by (created_at DESC, id DESC). A cursor is the id of the last
row handed out; the next page is everything strictly after that row in the
same order. A cursor is only issued when a page comes back full, so a caller
whose last page is exactly ``limit`` long makes one extra, empty request.
"""
from datetime import datetime
from typing import Callable, Optional, Sequence, TypeVar

from sqlalchemy import and_, or_

T = TypeVar("T")


def after_anchor(created_col, id_col, anchor_created: datetime, anchor_id: str):
    """WHERE clause selecting rows that sort after the anchor row."""
    return or_(
        created_col < anchor_created,
        and_(created_col == anchor_created, id_col < anchor_id),
    )


def next_cursor(rows: Sequence[T], limit: int, key: Callable[[T], str]) -> Optional[str]:
    if rows and len(rows) == limit:
        return key(rows[-1])
    return None
