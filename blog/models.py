"""
blog/models.py -- Domain dataclasses for blog content.

Pure data containers with zero logic. Ownership rules live in
blog/service.py, SQL lives in blog/store.py.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class Post:
    """A post owned by exactly one user.

    user_id is stamped from the authenticated principal at creation time,
    never taken from the request body.

    id is None before the record is written to the database.
    """

    title: str
    body: str
    user_id: int
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
