"""PostStore against a stub Database: decoding, ordering SQL and error mapping."""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

import asyncpg
import pytest

from core.errors import NotFoundError, StorageError
from posts.repository import PRIORITY_ORDER, PostStore, row_to_post
from posts.schemas import UNKNOWN_PRIORITY_RANK, NewPost, Priority
from posts.service import list_posts

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _row(**overrides):
    row = {
        "id": 1,
        "title": "Hello",
        "meta_description": "",
        "focus_keyword": "",
        "url_keyword": "hello-world",
        "image": None,
        "tags": '["a", "b"]',
        "topic": "",
        "service": "",
        "industry": "",
        "priority": "normal",
        "description": "World",
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


class StubConnection:
    def __init__(self, db):
        self.db = db

    async def fetchrow(self, sql, *args):
        self.db.calls.append(("fetchrow", sql, args))
        if self.db.error:
            raise self.db.error
        return {"id": 42}


class StubDatabase:
    def __init__(self):
        self.calls = []
        self.one = None
        self.many = []
        self.value = None
        self.error = None
        self.transactions = 0

    async def _record(self, kind, sql, args):
        self.calls.append((kind, sql, args))
        if self.error:
            raise self.error

    async def fetch_one(self, sql, *args):
        await self._record("fetch_one", sql, args)
        return self.one

    async def fetch_all(self, sql, *args):
        await self._record("fetch_all", sql, args)
        return self.many

    async def fetch_value(self, sql, *args):
        await self._record("fetch_value", sql, args)
        return self.value

    async def execute(self, sql, *args):
        await self._record("execute", sql, args)

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield StubConnection(self)


@pytest.fixture
def db():
    return StubDatabase()


@pytest.fixture
def post_store(db):
    return PostStore(db)


def test_row_to_post_decodes_tags_and_nulls():
    post = row_to_post(_row(meta_description=None, topic=None))

    assert post.tags == ["a", "b"]
    assert post.meta_description == ""
    assert post.topic == ""


def test_row_to_post_treats_missing_tags_as_empty():
    assert row_to_post(_row(tags=None)).tags == []
    assert row_to_post(_row(tags="")).tags == []


@pytest.mark.parametrize("tags", ["{not json", '{"a": 1}', "[1, 2]"])
def test_row_to_post_rejects_malformed_tags(tags):
    with pytest.raises(ValueError):
        row_to_post(_row(tags=tags))


async def test_insert_runs_in_one_transaction(post_store, db):
    post = NewPost(
        title="Hello",
        description="World",
        url_keyword="hello-world",
        priority=Priority.HIGH,
        tags=["a", "b"],
        image="uploads/abc-photo.png",
    )

    assert await post_store.insert(post) == 42

    assert db.transactions == 1
    kind, sql, args = db.calls[0]
    assert kind == "fetchrow"
    assert "INSERT INTO blog_posts" in sql
    assert "hello-world" in args
    assert "high" in args
    assert '["a", "b"]' in args
    assert "uploads/abc-photo.png" in args


async def test_insert_maps_unique_violation_to_storage_error(post_store, db):
    db.error = asyncpg.exceptions.UniqueViolationError("duplicate key value")

    with pytest.raises(StorageError) as exc_info:
        await post_store.insert(NewPost(title="t", description="d", url_keyword="k"))

    assert exc_info.value.message == "Failed to create blog post"
    assert "duplicate" not in exc_info.value.message


async def test_url_keyword_exists(post_store, db):
    db.value = True
    assert await post_store.url_keyword_exists("hello-world") is True
    db.value = False
    assert await post_store.url_keyword_exists("other") is False
    assert db.calls[-1][2] == ("other",)


async def test_get_by_url_keyword(post_store, db):
    db.one = _row()

    post = await post_store.get_by_url_keyword("hello-world")

    assert post.id == 1
    assert post.tags == ["a", "b"]
    assert db.calls[0][2] == ("hello-world",)


async def test_get_by_url_keyword_not_found_is_distinct(post_store, db):
    db.one = None
    with pytest.raises(NotFoundError):
        await post_store.get_by_url_keyword("missing")


async def test_get_by_url_keyword_driver_failure(post_store, db):
    db.error = ConnectionRefusedError("db down")
    with pytest.raises(StorageError) as exc_info:
        await post_store.get_by_url_keyword("hello-world")
    assert exc_info.value.message == "Database error"


async def test_count(post_store, db):
    db.value = 7
    assert await post_store.count() == 7


async def test_list_skips_malformed_rows(post_store, db):
    db.many = [_row(id=1), _row(id=2, tags="{broken"), _row(id=3, url_keyword="third")]

    posts = await post_store.list(limit=10, offset=0)

    assert [p.id for p in posts] == [1, 3]


async def test_list_passes_limit_and_offset(post_store, db):
    await post_store.list(limit=5, offset=10)

    kind, sql, args = db.calls[0]
    assert args == (5, 10)
    assert "ORDER BY id" in sql
    assert "CASE priority" not in sql


async def test_list_priority_order(post_store, db):
    await post_store.list(limit=5, offset=0, sort_by_priority=True)

    sql = db.calls[0][1]
    assert "CASE priority" in sql
    assert sql.index("'maximum' THEN 1") < sql.index("'high' THEN 2") < sql.index("'normal' THEN 3")
    assert "ELSE 4" in sql


async def test_list_driver_failure(post_store, db):
    db.error = asyncpg.InterfaceError("pool is closed")
    with pytest.raises(StorageError):
        await post_store.list(limit=5, offset=0)


async def test_sitemap_projection(post_store, db):
    db.many = [
        {"url_keyword": "a", "priority": "high"},
        {"url_keyword": "b", "priority": None},
    ]

    assert await post_store.list_url_keywords_and_priorities() == [("a", "high"), ("b", "")]


async def test_ensure_schema_creates_table_and_indexes(post_store, db):
    await post_store.ensure_schema()

    sql = db.calls[0][1]
    assert "CREATE TABLE IF NOT EXISTS blog_posts" in sql
    assert "CREATE UNIQUE INDEX IF NOT EXISTS idx_blog_posts_url_keyword" in sql
    assert "idx_blog_posts_priority" in sql


def test_priority_order_follows_enum_ranks():
    for p in Priority:
        assert f"WHEN '{p.value}' THEN {p.rank}" in PRIORITY_ORDER
    assert f"ELSE {UNKNOWN_PRIORITY_RANK}" in PRIORITY_ORDER


@pytest.mark.parametrize(
    ("page", "page_size"),
    [("9999999999999999999", "10"), ("2", "9999999999999999999"), ("1", "9999999999999999999")],
)
async def test_listing_binds_stay_inside_bigint(post_store, db, page, page_size):
    db.value = 3

    body = await list_posts(post_store, page=page, page_size=page_size)

    assert body["totalPosts"] == 3
    for kind, sql, args in db.calls:
        assert all(-(2**63) <= a < 2**63 for a in args if isinstance(a, int))
