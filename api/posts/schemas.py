"""
Pydantic models for blog posts.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_PRIORITY_RANK = 4


class Priority(str, Enum):
    MAXIMUM = "maximum"
    HIGH = "high"
    NORMAL = "normal"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANKS[self]

    @classmethod
    def rank_of(cls, value: str) -> int:
        """
        Sort rank for a stored priority string; unknown values sort last.
        """
        try:
            return cls(value).rank
        except ValueError:
            return UNKNOWN_PRIORITY_RANK


_PRIORITY_RANKS = {
    Priority.MAXIMUM: 1,
    Priority.HIGH: 2,
    Priority.NORMAL: 3,
}


class NewPost(BaseModel):
    """
    A validated submission, not yet persisted.
    """

    title: str
    description: str
    url_keyword: str
    meta_description: str = ""
    focus_keyword: str = ""
    topic: str = ""
    service: str = ""
    industry: str = ""
    priority: Priority = Priority.NORMAL
    tags: list[str] = Field(default_factory=list)
    image: str | None = None


class Post(BaseModel):
    id: int
    title: str
    meta_description: str = ""
    focus_keyword: str = ""
    url_keyword: str
    image: str | None = None
    tags: list[str] = Field(default_factory=list)
    topic: str = ""
    service: str = ""
    industry: str = ""
    # Plain string: rows written before validation existed may hold anything.
    priority: str = Priority.NORMAL.value
    description: str
    created_at: datetime
    updated_at: datetime


class SEOData(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    context: str = Field(default="https://schema.org", alias="@context")
    type: str = Field(default="BlogPosting", alias="@type")
    headline: str
    keywords: str
    image: str | None = None
    url: str
