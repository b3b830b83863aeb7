from typing import Callable

from fastapi import Depends

from app.core.auth_utils import get_current_user
from app.core.errors import ForbiddenError
from app.core.role_matrix import can_perform_action
from app.services.user_service import UserService


def _user_service() -> UserService:
    return UserService()


async def get_current_profile(current_user: dict = Depends(get_current_user)) -> dict:
    """
    获取当前用户的 profile（含 role）。

    中文注释:
    1) 首次访问时自动创建 user_profiles 记录（ensure_user_profile RPC）。
    2) 表为空时第一个用户为 admin，之后默认 author；判定在数据库事务内完成。
    3) 存储异常直接向上抛出，由中间件统一返回 500，不做“假 profile”降级。
    """
    return _user_service().ensure_user(
        subject=current_user["id"],
        email=current_user.get("email"),
        name=current_user.get("name"),
    )


def require_permission(action: str) -> Callable[[dict], dict]:
    """
    路由级权限依赖：统一走 role_matrix。
    """

    async def _dep(profile: dict = Depends(get_current_profile)) -> dict:
        if not can_perform_action(action=action, role=profile.get("role")):
            raise ForbiddenError(f"Not allowed to perform '{action}'")
        return profile

    return _dep
