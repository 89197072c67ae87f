"""
Blog post business logic.

Scope:
- create: validate -> store optional image -> insert (with compensating delete)
- read one post together with its SEO metadata
- paginated listing
- sitemap generation
"""

from __future__ import annotations

import logging
import math
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from core import settings
from uploads import service as uploads_service

from .repository import PostStore
from .schemas import Post, SEOData
from .validation import PostFields, validate_post

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10
# Keeps LIMIT and OFFSET inside the bigint range the driver binds.
MAX_PAGE_PARAM = 2**31 - 1

SITEMAP_NAMESPACE = "http://www.sitemaps.org/schemas/sitemap/0.9"
SITEMAP_CHANGEFREQ = "weekly"

logger = logging.getLogger(__name__)


def post_url(url_keyword: str) -> str:
    return f"{settings.public_base_url()}/blog/{url_keyword}"


async def create_post(
    store: PostStore,
    fields: PostFields,
    image: UploadFile | None,
    *,
    upload_dir: Path,
    max_upload_bytes: int,
) -> dict[str, Any]:
    post = await validate_post(fields, store)

    post.image = await uploads_service.save_upload(image, upload_dir, max_bytes=max_upload_bytes)
    try:
        post_id = await store.insert(post)
    except BaseException:
        # Compensate on any exit, cancellation included: the row never committed.
        await run_in_threadpool(uploads_service.remove_upload, post.image, upload_dir)
        raise

    logger.info("post_created id=%s url_keyword=%s", post_id, post.url_keyword)
    return {
        "message": "Blog post created successfully",
        "url": post_url(post.url_keyword),
        "id": post_id,
        "image": post.image,
        "tags": post.tags,
    }


def build_seo_data(post: Post, canonical: str) -> SEOData:
    return SEOData(
        headline=post.title,
        keywords=post.focus_keyword,
        image=post.image,
        url=canonical,
    )


async def get_post(store: PostStore, url_keyword: str) -> dict[str, Any]:
    post = await store.get_by_url_keyword(url_keyword)
    canonical = post_url(post.url_keyword)
    return {
        "blog": post.model_dump(mode="json"),
        "seoData": build_seo_data(post, canonical).model_dump(mode="json", by_alias=True),
        "canonical": canonical,
    }


def _positive_int(raw: str | None, default: int) -> int:
    """
    Lenient query parsing: anything missing, unparsable or < 1 falls back,
    anything above MAX_PAGE_PARAM is clamped.
    """
    try:
        value = int((raw or "").strip())
    except ValueError:
        return default
    if value < 1:
        return default
    return min(value, MAX_PAGE_PARAM)


def total_pages(total_posts: int, page_size: int) -> int:
    return math.ceil(total_posts / page_size)


async def list_posts(
    store: PostStore,
    *,
    page: str | None = None,
    page_size: str | None = None,
    sort: str | None = None,
) -> dict[str, Any]:
    page_num = _positive_int(page, DEFAULT_PAGE)
    size = _positive_int(page_size, DEFAULT_PAGE_SIZE)
    sort_by_priority = (sort or "").strip() == "priority"

    total = await store.count()
    offset = (page_num - 1) * size
    posts = []
    if offset < total:
        posts = await store.list(limit=size, offset=offset, sort_by_priority=sort_by_priority)
    return {
        "posts": [p.model_dump(mode="json") for p in posts],
        "totalPosts": total,
        "page": page_num,
        "pageSize": size,
        "totalPages": total_pages(total, size),
    }


def render_sitemap(entries: list[tuple[str, str]]) -> bytes:
    urlset = ET.Element("urlset", xmlns=SITEMAP_NAMESPACE)
    for url_keyword, priority in entries:
        url = ET.SubElement(urlset, "url")
        ET.SubElement(url, "loc").text = post_url(url_keyword)
        ET.SubElement(url, "changefreq").text = SITEMAP_CHANGEFREQ
        ET.SubElement(url, "priority").text = priority
    return ET.tostring(urlset, encoding="utf-8", xml_declaration=True)


async def build_sitemap(store: PostStore) -> bytes:
    entries = await store.list_url_keywords_and_priorities()
    return render_sitemap(entries)
