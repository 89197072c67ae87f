"""
Blog post persistence.
This module is where post-related SQL lives.
"""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import asyncpg

from core.db import Database
from core.errors import NotFoundError, StorageError

from .schemas import UNKNOWN_PRIORITY_RANK, NewPost, Post, Priority

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS blog_posts (
    id bigserial PRIMARY KEY,
    title text NOT NULL,
    meta_description text NOT NULL DEFAULT '',
    focus_keyword text NOT NULL DEFAULT '',
    url_keyword text NOT NULL,
    image text,
    tags jsonb NOT NULL DEFAULT '[]'::jsonb,
    topic text NOT NULL DEFAULT '',
    service text NOT NULL DEFAULT '',
    industry text NOT NULL DEFAULT '',
    priority text NOT NULL DEFAULT 'normal',
    description text NOT NULL,
    created_at timestamptz NOT NULL DEFAULT now(),
    updated_at timestamptz NOT NULL DEFAULT now()
);
CREATE UNIQUE INDEX IF NOT EXISTS idx_blog_posts_url_keyword ON blog_posts (url_keyword);
CREATE INDEX IF NOT EXISTS idx_blog_posts_priority ON blog_posts (priority);
"""

POST_COLUMNS = """
    id, title, meta_description, focus_keyword, url_keyword, image, tags::text AS tags,
    topic, service, industry, priority, description, created_at, updated_at
"""

PRIORITY_ORDER = (
    "CASE priority "
    + " ".join(f"WHEN '{p.value}' THEN {p.rank}" for p in Priority)
    + f" ELSE {UNKNOWN_PRIORITY_RANK} END"
)

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)


def _tags_arg(tags: list[str]) -> str:
    """
    asyncpg does not automatically encode Python lists for jsonb parameters.
    We pass JSON as a string and cast to jsonb in SQL.
    """
    return json.dumps(tags, ensure_ascii=False)


def _decode_tags(raw: Any) -> list[str]:
    if raw is None or raw == "":
        return []
    tags = json.loads(raw) if isinstance(raw, str) else raw
    if not isinstance(tags, list) or not all(isinstance(t, str) for t in tags):
        raise ValueError(f"tags column is not a list of strings: {raw!r}")
    return tags


def row_to_post(row: dict[str, Any]) -> Post:
    data = dict(row)
    data["tags"] = _decode_tags(data.get("tags"))
    for key in ("meta_description", "focus_keyword", "topic", "service", "industry"):
        data[key] = data.get(key) or ""
    return Post.model_validate(data)


class PostStore:
    """
    Owns the `blog_posts` table.

    Driver failures are logged here and re-raised as `StorageError`, so
    callers never see asyncpg exceptions.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    @asynccontextmanager
    async def _storage_errors(self, operation: str, message: str | None = None) -> AsyncIterator[None]:
        try:
            yield
        except _DRIVER_ERRORS as exc:
            logger.exception("storage_failed operation=%s", operation)
            raise StorageError(message) from exc

    async def ensure_schema(self) -> None:
        async with self._storage_errors("ensure_schema"):
            await self.db.execute(SCHEMA_SQL)

    async def insert(self, post: NewPost) -> int:
        """
        Insert a post in a single transaction and return its id.

        `created_at`/`updated_at` come from the column defaults. A duplicate
        `url_keyword` that slipped past validation fails on the unique index.
        """
        async with self._storage_errors("insert", "Failed to create blog post"):
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO blog_posts (
                        title, meta_description, focus_keyword, url_keyword,
                        image, tags, topic, service, industry, priority, description
                    )
                    VALUES ($1, $2, $3, $4, $5, $6::jsonb, $7, $8, $9, $10, $11)
                    RETURNING id
                    """,
                    post.title,
                    post.meta_description,
                    post.focus_keyword,
                    post.url_keyword,
                    post.image,
                    _tags_arg(post.tags),
                    post.topic,
                    post.service,
                    post.industry,
                    post.priority.value,
                    post.description,
                )
                if row is None or "id" not in row:
                    raise StorageError("Failed to create blog post")
                return int(row["id"])

    async def url_keyword_exists(self, url_keyword: str) -> bool:
        async with self._storage_errors("url_keyword_exists"):
            exists = await self.db.fetch_value(
                "SELECT EXISTS (SELECT 1 FROM blog_posts WHERE url_keyword = $1)",
                url_keyword,
            )
        return bool(exists)

    async def get_by_url_keyword(self, url_keyword: str) -> Post:
        async with self._storage_errors("get_by_url_keyword"):
            row = await self.db.fetch_one(
                f"SELECT {POST_COLUMNS} FROM blog_posts WHERE url_keyword = $1",
                url_keyword,
            )
        if row is None:
            raise NotFoundError("Blog post not found")
        try:
            return row_to_post(row)
        except ValueError as exc:
            logger.error("post_decode_failed url_keyword=%s error=%s", url_keyword, exc)
            raise StorageError() from exc

    async def count(self) -> int:
        async with self._storage_errors("count", "Could not count blog posts"):
            total = await self.db.fetch_value("SELECT count(*) FROM blog_posts")
        return int(total or 0)

    async def list(self, *, limit: int, offset: int, sort_by_priority: bool = False) -> list[Post]:
        """
        Return one page of posts in insertion order, or by priority rank.

        Rows that cannot be decoded are logged and skipped.
        """
        order_by = f"{PRIORITY_ORDER}, id" if sort_by_priority else "id"
        async with self._storage_errors("list", "Could not fetch blog posts"):
            rows = await self.db.fetch_all(
                f"""
                SELECT {POST_COLUMNS}
                FROM blog_posts
                ORDER BY {order_by}
                LIMIT $1
                OFFSET $2
                """,
                limit,
                offset,
            )

        posts: list[Post] = []
        for row in rows:
            try:
                posts.append(row_to_post(row))
            except ValueError as exc:
                logger.warning("post_row_skipped id=%s error=%s", row.get("id"), exc)
        return posts

    async def list_url_keywords_and_priorities(self) -> list[tuple[str, str]]:
        async with self._storage_errors("list_url_keywords_and_priorities", "Could not generate sitemap"):
            rows = await self.db.fetch_all(
                "SELECT url_keyword, priority FROM blog_posts ORDER BY id"
            )
        return [
            (str(row["url_keyword"]), str(row["priority"] or ""))
            for row in rows
            if row.get("url_keyword")
        ]
