from fastapi import APIRouter, Depends

from app.core.role_matrix import list_allowed_actions
from app.core.roles import get_current_profile
from app.models.user import ProfileUpdateRequest
from app.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])


def _service() -> UserService:
    return UserService()


@router.get("/me")
async def get_me(profile: dict = Depends(get_current_profile)):
    """
    当前用户 profile（首次访问自动建档）+ 该角色可执行的动作列表。
    """
    return {
        "success": True,
        "data": {**profile, "allowed_actions": sorted(list_allowed_actions(profile.get("role")))},
    }


@router.patch("/me")
async def update_me(payload: ProfileUpdateRequest, profile: dict = Depends(get_current_profile)):
    updated = _service().update_profile(
        user_id=str(profile["id"]),
        patch=payload.model_dump(exclude_unset=True),
    )
    return {"success": True, "data": updated}


@router.get("/{user_id}/public")
async def get_author_page(user_id: str):
    """
    公开作者页（无需登录）：展示字段 + 已发表稿件。
    """
    svc = _service()
    author = svc.get_author(user_id)
    return {
        "success": True,
        "data": {**author, "publications": svc.list_author_publications(user_id)},
    }
