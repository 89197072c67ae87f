"""
Turn raw submitted form fields into a validated `NewPost`.

Rules run in a fixed order and the first violation wins, so clients always
get one specific message back.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Protocol

from core.errors import ValidationError

from .schemas import NewPost, Priority

URL_KEYWORD_RE = re.compile(r"[a-zA-Z0-9-]+")

MAX_TITLE_CHARS = 100
MAX_META_DESCRIPTION_CHARS = 160
MAX_TAG_CHARS = 50


class UrlKeywordLookup(Protocol):
    async def url_keyword_exists(self, url_keyword: str) -> bool: ...


@dataclass(frozen=True)
class PostFields:
    """
    Raw form values as submitted. `tags` holds every `tags` field, unsplit.
    """

    title: str = ""
    description: str = ""
    url_keyword: str = ""
    meta_description: str = ""
    focus_keyword: str = ""
    topic: str = ""
    service: str = ""
    industry: str = ""
    priority: str = ""
    tags: list[str] = field(default_factory=list)


def parse_priority(raw: str) -> Priority:
    value = (raw or "").strip()
    if not value:
        return Priority.NORMAL
    try:
        return Priority(value)
    except ValueError:
        raise ValidationError("invalid priority value: must be maximum, high, or normal") from None


def parse_tags(raw_fields: list[str]) -> list[str]:
    """
    Split each field on commas and flatten, keeping order and dropping blanks.
    """
    tags: list[str] = []
    for raw in raw_fields:
        for tag in (raw or "").split(","):
            tag = tag.strip()
            if not tag:
                continue
            if len(tag) > MAX_TAG_CHARS:
                raise ValidationError(f"tag length cannot exceed {MAX_TAG_CHARS} characters: {tag}")
            tags.append(tag)
    return tags


async def validate_post(fields: PostFields, store: UrlKeywordLookup) -> NewPost:
    title = fields.title.strip()
    if not title:
        raise ValidationError("title is required")

    description = fields.description.strip()
    if not description:
        raise ValidationError("description is required")

    url_keyword = fields.url_keyword.strip()
    if not url_keyword:
        raise ValidationError("url_keyword is required")
    if not URL_KEYWORD_RE.fullmatch(url_keyword):
        raise ValidationError("url_keyword must contain only letters, numbers, and hyphens")

    priority = parse_priority(fields.priority)
    tags = parse_tags(fields.tags)

    meta_description = fields.meta_description.strip()
    if len(meta_description) > MAX_META_DESCRIPTION_CHARS:
        raise ValidationError(
            f"meta description cannot exceed {MAX_META_DESCRIPTION_CHARS} characters"
        )

    if len(title) > MAX_TITLE_CHARS:
        raise ValidationError(f"title cannot exceed {MAX_TITLE_CHARS} characters")

    # Storage failures here propagate as StorageError, not a rejection.
    if await store.url_keyword_exists(url_keyword):
        raise ValidationError("url_keyword already exists")

    return NewPost(
        title=title,
        description=description,
        url_keyword=url_keyword,
        meta_description=meta_description,
        focus_keyword=fields.focus_keyword.strip(),
        topic=fields.topic.strip(),
        service=fields.service.strip(),
        industry=fields.industry.strip(),
        priority=priority,
        tags=tags,
    )
