from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.config import ConfigDict

from app.models.manuscript import ManuscriptStatus

# === 投稿核心实体模型 (Pydantic v2) ===


class CorrespondingAuthor(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    address: str = Field(..., min_length=1, max_length=500)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=50)

    @field_validator("name", "address", "phone")
    @classmethod
    def _strip(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("field must not be blank")
        return trimmed


class ResearchAuthor(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    affiliation: str = Field("", max_length=500)

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("author name must not be blank")
        return trimmed


class SubmissionCreate(BaseModel):
    """投稿请求体（文件需先上传到 Storage，这里只带引用）"""

    title: str = Field(..., min_length=5, max_length=500, description="稿件标题")
    abstract: str = Field(..., min_length=30, max_length=5000, description="稿件摘要")
    article_type: str = Field(..., min_length=1, max_length=100)
    corresponding_author: CorrespondingAuthor
    research_authors: List[ResearchAuthor] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list, max_length=20)
    manuscript_file_id: str = Field(..., min_length=1, max_length=1000, description="Supabase Storage 路径")
    copyright_file_id: str = Field(..., min_length=1, max_length=1000, description="Supabase Storage 路径")

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: str) -> str:
        # 中文注释: 标题必须有意义，避免空白或过短提交
        trimmed = value.strip()
        if len(trimmed) < 5:
            raise ValueError("title must be at least 5 characters")
        return trimmed

    @field_validator("abstract")
    @classmethod
    def validate_abstract(cls, value: str) -> str:
        trimmed = value.strip()
        if len(trimmed) < 30:
            raise ValueError("abstract must be at least 30 characters")
        return trimmed

    @field_validator("keywords")
    @classmethod
    def normalize_keywords(cls, value: List[str]) -> List[str]:
        # 去空、去重保持顺序
        cleaned = [str(k).strip() for k in value or [] if str(k).strip()]
        return list(dict.fromkeys(cleaned))


class Submission(BaseModel):
    """数据库中的完整稿件模型"""

    id: UUID
    title: str
    abstract: str
    article_type: str
    author_id: UUID
    corresponding_author: CorrespondingAuthor
    research_authors: List[ResearchAuthor] = Field(default_factory=list)
    keywords: List[str] = Field(default_factory=list)
    manuscript_file_id: str
    copyright_file_id: str
    status: ManuscriptStatus
    version: int = 1
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransitionRequest(BaseModel):
    """
    状态流转请求。

    中文注释:
    - status 在边界处校验为枚举值，未知字面值直接 422。
    - issue_id / page_range / doi 仅在流转到 published 且稿件尚无文章时需要。
    """

    status: ManuscriptStatus
    note: str = Field("", max_length=5000)
    attachment_storage_id: Optional[str] = Field(None, max_length=1000)
    issue_id: Optional[UUID] = None
    page_range: Optional[str] = Field(None, max_length=50)
    doi: Optional[str] = Field(None, max_length=200)

    @field_validator("attachment_storage_id", "page_range", "doi", mode="before")
    @classmethod
    def normalize_optional_strings(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            return value.strip() or None
        return value


class StatusHistoryRecord(BaseModel):
    """manuscript_status_history 一行（只追加，不更新不删除）"""

    id: UUID
    manuscript_id: UUID
    previous_status: Optional[ManuscriptStatus] = None
    new_status: ManuscriptStatus
    changed_by_user_id: UUID
    changed_by_role: str
    note: str
    attachment_storage_id: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
