from fastapi import APIRouter, Depends

from app.core.roles import require_permission
from app.models.publication import IssueCreate, IssuePublishRequest
from app.services.publication_service import PublicationService

router = APIRouter(prefix="/issues", tags=["Issues"])


def _service() -> PublicationService:
    return PublicationService()


@router.get("")
async def list_issues():
    return {"success": True, "data": _service().list_issues()}


@router.post("", status_code=201)
async def create_issue(payload: IssueCreate, profile: dict = Depends(require_permission("issue:create"))):
    return {"success": True, "data": _service().create_issue(actor=profile, payload=payload)}


@router.get("/{issue_id}")
async def get_issue(issue_id: str):
    return {"success": True, "data": _service().get_issue(issue_id)}


@router.put("/{issue_id}/published")
async def set_issue_published(
    issue_id: str,
    payload: IssuePublishRequest,
    profile: dict = Depends(require_permission("issue:publish")),
):
    """
    发布/撤下整期（仅管理员）。未发布的期次不会出现在公开文章列表里。
    """
    updated = _service().set_issue_published(actor=profile, issue_id=issue_id, is_published=payload.is_published)
    return {"success": True, "data": updated}


@router.get("/{issue_id}/articles")
async def list_issue_articles(issue_id: str):
    return {"success": True, "data": _service().list_articles_by_issue(issue_id)}
