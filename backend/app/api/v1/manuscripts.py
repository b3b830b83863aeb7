from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.core.errors import NotFoundError
from app.core.roles import get_current_profile, require_permission
from app.models.schemas import SubmissionCreate, TransitionRequest
from app.services.editorial_service import EditorialService
from app.services.status_history_service import StatusHistoryService
from app.services.submission_service import SubmissionService

router = APIRouter(prefix="/manuscripts", tags=["Manuscripts"])


def _submissions() -> SubmissionService:
    return SubmissionService()


def _editorial() -> EditorialService:
    return EditorialService()


def _history() -> StatusHistoryService:
    return StatusHistoryService()


@router.post("", status_code=201)
async def create_submission(
    payload: SubmissionCreate,
    profile: dict = Depends(require_permission("submission:create")),
):
    """
    投稿：稿件 + 首条审计记录同事务写入；可选自动进入待审队列。
    """
    created = _submissions().create(actor=profile, payload=payload)
    return {"success": True, "data": created}


@router.get("/mine")
async def list_my_submissions(profile: dict = Depends(get_current_profile)):
    return {"success": True, "data": _submissions().list_by_author(str(profile["id"]))}


@router.get("")
async def list_submissions(
    status: Optional[str] = Query(None, description="按状态过滤"),
    profile: dict = Depends(require_permission("submission:view_all")),
):
    """
    编辑工作台列表（编辑/管理员）。
    """
    return {"success": True, "data": _submissions().list_all(viewer=profile, status=status)}


@router.get("/{manuscript_id}")
async def get_submission(manuscript_id: str, profile: dict = Depends(get_current_profile)):
    data = _submissions().get_for_viewer(submission_id=manuscript_id, viewer=profile)
    return {"success": True, "data": data}


@router.get("/{manuscript_id}/transitions")
async def list_available_transitions(manuscript_id: str, profile: dict = Depends(get_current_profile)):
    """
    当前用户可执行的目标状态（前端据此渲染操作按钮）。
    """
    _ensure_viewable(manuscript_id, profile)
    targets = _editorial().available_transitions(
        manuscript_id=manuscript_id,
        actor_id=str(profile["id"]),
        actor_role=str(profile.get("role")),
    )
    return {"success": True, "data": targets}


@router.post("/{manuscript_id}/transitions")
async def transition_submission(
    manuscript_id: str,
    payload: TransitionRequest,
    profile: dict = Depends(get_current_profile),
):
    """
    状态流转：权限、合法性、备注校验全部在 EditorialService 内完成。
    """
    updated = _editorial().transition(
        manuscript_id=manuscript_id,
        target_status=payload.status,
        actor_id=str(profile["id"]),
        actor_role=str(profile.get("role")),
        note=payload.note,
        attachment_storage_id=payload.attachment_storage_id,
        issue_id=str(payload.issue_id) if payload.issue_id else None,
        page_range=payload.page_range,
        doi=payload.doi,
    )
    return {"success": True, "data": updated}


@router.get("/{manuscript_id}/history")
async def get_status_history(manuscript_id: str, profile: dict = Depends(get_current_profile)):
    _ensure_viewable(manuscript_id, profile)
    return {"success": True, "data": _history().list_by_manuscript(manuscript_id)}


@router.get("/{manuscript_id}/history/latest")
async def get_latest_status_change(manuscript_id: str, profile: dict = Depends(get_current_profile)):
    _ensure_viewable(manuscript_id, profile)
    return {"success": True, "data": _history().latest_by_manuscript(manuscript_id)}


def _ensure_viewable(manuscript_id: str, profile: dict) -> None:
    svc = _submissions()
    submission = svc.get_by_id(manuscript_id)
    if not submission:
        raise NotFoundError("Submission not found")
    svc.ensure_can_view(submission, profile)
