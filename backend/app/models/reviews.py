from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from app.models.manuscript import ReviewVerdict


class ReviewCreate(BaseModel):
    """编辑对稿件给出的一条审稿意见"""

    verdict: ReviewVerdict
    comments: str = Field(..., max_length=20000)

    @field_validator("comments")
    @classmethod
    def _require_comments(cls, value: str) -> str:
        trimmed = value.strip()
        if not trimmed:
            raise ValueError("comments must not be empty")
        return trimmed


class Review(BaseModel):
    id: UUID
    submission_id: UUID
    reviewer_id: UUID
    verdict: ReviewVerdict
    comments: str
    created_at: datetime
    reviewer_name: Optional[str] = None
