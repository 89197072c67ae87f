"""
FastAPI router for blog post endpoints.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status

from core import settings
from uploads.router import get_upload_dir

from . import service
from .dependencies import get_post_store
from .repository import PostStore
from .validation import PostFields

router = APIRouter()


@router.post("/blog", status_code=status.HTTP_201_CREATED)
async def create_blog_post(
    title: str = Form(default=""),
    description: str = Form(default=""),
    url_keyword: str = Form(default=""),
    meta_description: str = Form(default=""),
    focus_keyword: str = Form(default=""),
    tags: list[str] = Form(default=[]),
    topic: str = Form(default=""),
    service_name: str = Form(default="", alias="service"),
    industry: str = Form(default=""),
    priority: str = Form(default=""),
    image: UploadFile | None = File(default=None),
    store: PostStore = Depends(get_post_store),
    upload_dir: Path = Depends(get_upload_dir),
) -> dict:
    """
    Create a blog post with metadata and an optional image upload.

    `tags` accepts comma-separated values, repeated fields, or both.
    """
    fields = PostFields(
        title=title,
        description=description,
        url_keyword=url_keyword,
        meta_description=meta_description,
        focus_keyword=focus_keyword,
        topic=topic,
        service=service_name,
        industry=industry,
        priority=priority,
        tags=tags,
    )
    return await service.create_post(
        store,
        fields,
        image,
        upload_dir=upload_dir,
        max_upload_bytes=settings.max_upload_bytes(),
    )


@router.get("/blog/{url_keyword}")
async def get_blog_post(
    url_keyword: str,
    store: PostStore = Depends(get_post_store),
) -> dict:
    """
    Retrieve a blog post by its URL keyword, with SEO metadata.
    """
    return await service.get_post(store, url_keyword)


@router.get("/blogs")
async def list_blog_posts(
    page: str | None = Query(default=None),
    page_size: str | None = Query(default=None, alias="pageSize"),
    sort: str | None = Query(default=None),
    store: PostStore = Depends(get_post_store),
) -> dict:
    """
    Paginated list of blog posts; `sort=priority` orders by priority rank.
    """
    return await service.list_posts(store, page=page, page_size=page_size, sort=sort)


@router.get("/sitemap.xml", response_class=Response)
async def sitemap(store: PostStore = Depends(get_post_store)) -> Response:
    body = await service.build_sitemap(store)
    return Response(content=body, media_type="application/xml")
