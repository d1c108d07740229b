"""
blog/store.py -- SQLAlchemy-backed persistence layer for posts.

Uses SQLAlchemy Core (not ORM) so the dataclasses in blog/models.py remain
the authoritative domain representation.

Pattern: Repository + Data Mapper. PostStore is the repository; _row_to_post
is the mapper. Services never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

user_id is not a foreign key: the users table lives in auth/store.py with
its own metadata. Deleting a user through the API removes their posts first
(see api/routes/v1/auth.py).

Usage:
    store = PostStore("sqlite:///inkwell.db")
    post = store.save(Post(title="First", body="Hello", user_id=1))
    store.find_all_by_user(1)
    store.close()
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text
from sqlalchemy.engine import Engine

from auth.store import make_engine
from blog.models import Post

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_posts = Table(
    "posts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(255), nullable=False),
    Column("body", Text, nullable=False),
    Column("user_id", Integer, nullable=False, index=True),
    Column("created_at", String(32), nullable=False),
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class PostStore:
    def __init__(self, db_url: str) -> None:
        self.engine: Engine = make_engine(db_url)
        _metadata.create_all(self.engine)

    def save(self, post: Post) -> Post:
        """Insert a new post (id is None) or update title/body of an existing one."""
        with self.engine.connect() as conn:
            if post.id is None:
                result = conn.execute(
                    _posts.insert().values(
                        title=post.title,
                        body=post.body,
                        user_id=post.user_id,
                        created_at=_now_iso(),
                    )
                )
                post_id = result.inserted_primary_key[0]
            else:
                conn.execute(_posts.update().where(_posts.c.id == post.id).values(title=post.title, body=post.body))
                post_id = post.id
            conn.commit()
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row)

    def find_by_id(self, post_id: int) -> Optional[Post]:
        with self.engine.connect() as conn:
            row = conn.execute(_posts.select().where(_posts.c.id == post_id)).fetchone()
        return _row_to_post(row) if row is not None else None

    def find_all_by_user(self, user_id: int) -> list[Post]:
        """Return a user's posts oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _posts.select().where(_posts.c.user_id == user_id).order_by(_posts.c.id)
            ).fetchall()
        return [_row_to_post(r) for r in rows]

    def delete(self, post_id: int) -> bool:
        with self.engine.connect() as conn:
            result = conn.execute(_posts.delete().where(_posts.c.id == post_id))
            conn.commit()
        return result.rowcount > 0

    def delete_all_by_user(self, user_id: int) -> int:
        """Delete every post owned by user_id. Returns the number removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_posts.delete().where(_posts.c.user_id == user_id))
            conn.commit()
        return result.rowcount

    def delete_all(self) -> None:
        with self.engine.connect() as conn:
            conn.execute(_posts.delete())
            conn.commit()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_post(row) -> Post:
    return Post(
        id=row.id,
        title=row.title,
        body=row.body,
        user_id=row.user_id,
        created_at=row.created_at,
    )
