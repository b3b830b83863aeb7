from fastapi import APIRouter, Depends

from app.core.roles import require_permission
from app.models.user import UpdateRoleRequest
from app.services.user_service import UserService

router = APIRouter(prefix="/admin/users", tags=["Admin User Management"])


def get_user_service() -> UserService:
    return UserService()


@router.get("")
async def list_users(profile: dict = Depends(require_permission("user:list"))):
    users = get_user_service().list_users(actor_role=profile.get("role"))
    return {"success": True, "data": users}


@router.put("/{user_id}/role")
async def update_user_role(
    user_id: str,
    payload: UpdateRoleRequest,
    profile: dict = Depends(require_permission("user:change_role")),
):
    """
    修改用户角色（仅管理员）。
    """
    updated = get_user_service().set_role(actor=profile, user_id=user_id, role=payload.role.value)
    return {"success": True, "data": updated}
