from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# === 排版稿件结构化内容（papers.rendered_data，camelCase JSON） ===


class PaperStatus(str, Enum):
    DRAFT = "draft"
    FINAL = "final"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PaperMeta(_CamelModel):
    doi: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    received_date: Optional[str] = None
    accepted_date: Optional[str] = None
    published_date: Optional[str] = None
    article_type: Optional[str] = None


class PaperAuthor(_CamelModel):
    name: str
    affiliation: str = ""
    email: Optional[str] = None
    is_corresponding: bool = False


class PaperSection(_CamelModel):
    heading: str = ""
    content: str = ""  # HTML
    columns: bool = True
    subsections: list[PaperSection] = Field(default_factory=list)


class PaperTable(_CamelModel):
    number: int
    caption: str = ""
    headers: list[str] = Field(default_factory=list)
    rows: list[list[str]] = Field(default_factory=list)
    notes: Optional[str] = None


class PaperReference(_CamelModel):
    number: int
    text: str


class ContributorParticular(_CamelModel):
    number: int
    designation: str


class CorrespondingAuthorInfo(_CamelModel):
    name: str = ""
    address: str = ""
    email: str = ""


class AuthorDeclaration(_CamelModel):
    competing_interests: str = "None"
    ethics_approval: str = ""
    informed_consent: str = ""


class PlagiarismCheckEntry(_CamelModel):
    method: str
    date: str


class PlagiarismCheck(_CamelModel):
    checker_entries: list[PlagiarismCheckEntry] = Field(default_factory=list)
    image_consent: Optional[str] = None


class PaperEndMatter(_CamelModel):
    contributor_particulars: list[ContributorParticular] = Field(default_factory=list)
    corresponding_author: CorrespondingAuthorInfo = Field(default_factory=CorrespondingAuthorInfo)
    author_declaration: AuthorDeclaration = Field(default_factory=AuthorDeclaration)
    plagiarism_checking: PlagiarismCheck = Field(default_factory=PlagiarismCheck)
    pharmacology: Optional[str] = None
    emendations: Optional[str] = None
    date_of_submission: Optional[str] = None
    date_of_peer_review: Optional[str] = None
    date_of_acceptance: Optional[str] = None
    date_of_publishing: Optional[str] = None


class StructuredPaperData(_CamelModel):
    meta: PaperMeta = Field(default_factory=PaperMeta)
    title: str = ""
    authors: list[PaperAuthor] = Field(default_factory=list)
    abstract: str = ""  # HTML
    keywords: list[str] = Field(default_factory=list)
    body: list[PaperSection] = Field(default_factory=list)
    tables: list[PaperTable] = Field(default_factory=list)
    references: list[PaperReference] = Field(default_factory=list)
    end_matter: Optional[PaperEndMatter] = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


# === 请求体 ===


class PaperGenerate(BaseModel):
    submission_id: UUID
    template_id: UUID
    rendered_data: Optional[StructuredPaperData] = None


class PaperUpdate(BaseModel):
    rendered_data: Optional[StructuredPaperData] = None
    template_id: Optional[UUID] = None


class PaperStatusUpdate(BaseModel):
    status: PaperStatus


class Paper(BaseModel):
    id: UUID
    submission_id: UUID
    template_id: UUID
    rendered_data: dict[str, Any]
    created_by: UUID
    status: PaperStatus = PaperStatus.DRAFT
    created_at: datetime
    updated_at: datetime
