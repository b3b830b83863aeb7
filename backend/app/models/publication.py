from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class IssueCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200, description='e.g. "Volume 1, Issue 2"')
    volume: int = Field(..., ge=1)
    issue_number: int = Field(..., ge=1)
    publication_date: str = Field(..., min_length=1, max_length=100, description='ISO date or "April-June 2026"')

    @field_validator("title", "publication_date")
    @classmethod
    def _strip(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("field must not be blank")
        return trimmed


class IssuePublishRequest(BaseModel):
    is_published: bool


class PromoteRequest(BaseModel):
    """
    将已接收稿件投影为公开文章。

    中文注释:
    - advance=True 时同时推进状态（accepted -> pre_publication -> published）；
    - 否则仅创建未上架的文章，稿件发布时自动上架。
    """

    issue_id: UUID
    page_range: Optional[str] = Field(None, max_length=50)
    doi: Optional[str] = Field(None, max_length=200)
    advance: bool = False
    note: Optional[str] = Field(None, max_length=5000)


class Article(BaseModel):
    id: UUID
    submission_id: UUID
    issue_id: UUID
    title: str
    authors: list[str] = Field(default_factory=list)
    page_range: Optional[str] = None
    doi: Optional[str] = None
    publish_date: datetime
    slug: str
    views: int = 0
    downloads: int = 0
    is_listed: bool = False
