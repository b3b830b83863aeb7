from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse

from app.core.roles import require_permission
from app.models.paper import PaperGenerate, PaperStatusUpdate, PaperUpdate
from app.services.paper_service import PaperService

router = APIRouter(prefix="/papers", tags=["Papers"])

_manage = require_permission("paper:manage")


def _service() -> PaperService:
    return PaperService()


@router.get("")
async def list_papers(submission_id: Optional[str] = Query(None), profile: dict = Depends(_manage)):
    svc = _service()
    if submission_id:
        data = svc.list_by_submission(actor=profile, submission_id=submission_id)
    else:
        data = svc.list(actor=profile)
    return {"success": True, "data": data}


@router.post("", status_code=201)
async def generate_paper(payload: PaperGenerate, profile: dict = Depends(_manage)):
    """
    生成排版稿（draft）；未传 rendered_data 时从稿件预填。
    """
    created = _service().generate(
        actor=profile,
        submission_id=str(payload.submission_id),
        template_id=str(payload.template_id),
        rendered_data=payload.rendered_data,
    )
    return {"success": True, "data": created}


@router.get("/{paper_id}")
async def get_paper(paper_id: str, profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().get(actor=profile, paper_id=paper_id)}


@router.patch("/{paper_id}")
async def update_paper(paper_id: str, payload: PaperUpdate, profile: dict = Depends(_manage)):
    updated = _service().update(
        actor=profile,
        paper_id=paper_id,
        rendered_data=payload.rendered_data,
        template_id=str(payload.template_id) if payload.template_id else None,
    )
    return {"success": True, "data": updated}


@router.put("/{paper_id}/status")
async def set_paper_status(paper_id: str, payload: PaperStatusUpdate, profile: dict = Depends(_manage)):
    return {"success": True, "data": _service().set_status(actor=profile, paper_id=paper_id, status=payload.status)}


@router.get("/{paper_id}/html", response_class=HTMLResponse)
async def render_paper(paper_id: str, profile: dict = Depends(_manage)):
    return HTMLResponse(_service().render_html(actor=profile, paper_id=paper_id))
