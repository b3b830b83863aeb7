from fastapi import APIRouter, Depends

from app.core.roles import get_current_profile, require_permission
from app.models.reviews import ReviewCreate
from app.services.review_service import ReviewService

router = APIRouter(prefix="/manuscripts/{manuscript_id}/reviews", tags=["Reviews"])


def _service() -> ReviewService:
    return ReviewService()


@router.post("", status_code=201)
async def record_review(
    manuscript_id: str,
    payload: ReviewCreate,
    profile: dict = Depends(require_permission("review:record")),
):
    review = _service().record_review(
        submission_id=manuscript_id,
        reviewer=profile,
        verdict=payload.verdict,
        comments=payload.comments,
    )
    return {"success": True, "data": review}


@router.get("")
async def list_reviews(manuscript_id: str, profile: dict = Depends(get_current_profile)):
    """
    审稿意见列表：编辑/管理员，或稿件作者本人。
    """
    return {"success": True, "data": _service().list_reviews(submission_id=manuscript_id, viewer=profile)}
