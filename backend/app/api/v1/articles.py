from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.roles import require_permission
from app.models.publication import PromoteRequest
from app.services.publication_service import PublicationService

router = APIRouter(tags=["Articles"])


def _service() -> PublicationService:
    return PublicationService()


@router.get("/articles/latest")
async def list_latest_articles(limit: Optional[int] = Query(None, ge=1, le=50)):
    return {"success": True, "data": _service().list_latest_articles(limit)}


@router.get("/articles/search")
async def search_articles(q: str = Query("", max_length=200), issue_id: Optional[str] = None):
    """
    标题全文检索；空查询返回空列表。
    """
    return {"success": True, "data": _service().search_articles(q, issue_id=issue_id)}


@router.get("/articles/{id_or_slug}")
async def get_article(id_or_slug: str):
    return {"success": True, "data": _service().get_article(id_or_slug)}


@router.post("/articles/{article_id}/views")
async def track_article_view(article_id: str):
    _service().track_view(article_id)
    return {"success": True}


@router.post("/articles/{article_id}/downloads")
async def track_article_download(article_id: str):
    _service().track_download(article_id)
    return {"success": True}


@router.delete("/articles/{article_id}")
async def remove_article(article_id: str, profile: dict = Depends(require_permission("article:remove"))):
    return {"success": True, "data": _service().remove_article(actor=profile, article_id=article_id)}


@router.post("/manuscripts/{manuscript_id}/promote", status_code=201)
async def promote_to_article(
    manuscript_id: str,
    payload: PromoteRequest,
    profile: dict = Depends(require_permission("article:publish")),
):
    """
    accepted / pre_publication 稿件 -> 公开文章（仅管理员）。
    """
    result = _service().promote_to_article(
        submission_id=manuscript_id,
        issue_id=str(payload.issue_id),
        actor=profile,
        page_range=payload.page_range,
        doi=payload.doi,
        advance=payload.advance,
        note=payload.note,
    )
    return {"success": True, "data": result}


@router.get("/manuscripts/{manuscript_id}/articles")
async def list_submission_articles(
    manuscript_id: str,
    _profile: dict = Depends(require_permission("submission:view_all")),
):
    return {"success": True, "data": _service().list_articles_by_submission(manuscript_id)}
