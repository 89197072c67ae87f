"""Shared fixtures: an in-memory post store and an HTTP client wired to it.

The ASGI transport does not run the app lifespan, so no database pool is
opened. Routes get the fake store through a dependency override.
"""

from datetime import datetime, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from core.errors import NotFoundError, StorageError
from main import app
from posts.dependencies import get_post_store
from posts.schemas import NewPost, Post, Priority
from uploads.router import get_upload_dir


class FakePostStore:
    """Same interface as PostStore, backed by a list."""

    def __init__(self):
        self.posts: list[Post] = []
        self.fail = False
        self.fail_insert = False
        self.exists_calls = 0

    def _check(self):
        if self.fail:
            raise StorageError()

    async def url_keyword_exists(self, url_keyword):
        self._check()
        self.exists_calls += 1
        return any(p.url_keyword == url_keyword for p in self.posts)

    async def insert(self, post: NewPost) -> int:
        self._check()
        if self.fail_insert:
            raise StorageError("Failed to create blog post")
        if any(p.url_keyword == post.url_keyword for p in self.posts):
            raise StorageError("Failed to create blog post")
        now = datetime.now(timezone.utc)
        data = post.model_dump()
        data["priority"] = post.priority.value
        stored = Post(id=len(self.posts) + 1, created_at=now, updated_at=now, **data)
        self.posts.append(stored)
        return stored.id

    async def get_by_url_keyword(self, url_keyword):
        self._check()
        for p in self.posts:
            if p.url_keyword == url_keyword:
                return p
        raise NotFoundError("Blog post not found")

    async def count(self):
        self._check()
        return len(self.posts)

    async def list(self, *, limit, offset, sort_by_priority=False):
        self._check()
        rows = list(self.posts)
        if sort_by_priority:
            rows.sort(key=lambda p: (Priority.rank_of(p.priority), p.id))
        return rows[offset:offset + limit]

    async def list_url_keywords_and_priorities(self):
        self._check()
        return [(p.url_keyword, p.priority) for p in self.posts]


@pytest.fixture
def store():
    return FakePostStore()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    monkeypatch.setenv("UPLOAD_DIR", str(path))
    monkeypatch.delenv("MAX_UPLOAD_BYTES", raising=False)
    monkeypatch.delenv("PUBLIC_BASE_URL", raising=False)
    return path


@pytest.fixture
async def client(store, upload_dir):
    app.dependency_overrides[get_post_store] = lambda: store
    app.dependency_overrides[get_upload_dir] = lambda: upload_dir

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
