from __future__ import annotations

from app.core.errors import ForbiddenError
from app.models.user import UserRole

# 中文注释：
# - 这里集中定义“角色 -> 动作”权限矩阵，路由依赖与服务层都只调用本模块判定。
# - 角色只有 admin / editor / author 三种；admin 不走通配，权限逐项列出，便于审计。

ALL_ROLES = frozenset({UserRole.ADMIN.value, UserRole.EDITOR.value, UserRole.AUTHOR.value})
STAFF_ROLES = frozenset({UserRole.ADMIN.value, UserRole.EDITOR.value})
ADMIN_ONLY = frozenset({UserRole.ADMIN.value})

ACTION_ROLES: dict[str, frozenset[str]] = {
    "submission:create": ALL_ROLES,
    "submission:view_all": STAFF_ROLES,
    "review:record": STAFF_ROLES,
    "manuscript:transition": STAFF_ROLES,
    # 所有者校验由 EditorialService 完成（只有稿件作者本人可提交修改稿）
    "manuscript:resubmit_correction": ALL_ROLES,
    "article:publish": ADMIN_ONLY,
    "article:unpublish": ADMIN_ONLY,
    "article:remove": ADMIN_ONLY,
    "issue:create": STAFF_ROLES,
    "issue:publish": ADMIN_ONLY,
    "user:list": ADMIN_ONLY,
    "user:change_role": ADMIN_ONLY,
    "template:manage": STAFF_ROLES,
    "paper:manage": STAFF_ROLES,
}


def normalize_role(role: str | UserRole | None) -> str | None:
    if role is None:
        return None
    if isinstance(role, UserRole):
        return role.value
    value = str(role).strip().lower()
    return value if value in ALL_ROLES else None


def can_perform_action(*, action: str, role: str | UserRole | None) -> bool:
    """
    判定角色是否可执行某动作。未知动作、未知角色一律拒绝。
    """
    normalized = normalize_role(role)
    if normalized is None:
        return False
    return normalized in ACTION_ROLES.get(action, frozenset())


def require_action(*, action: str, role: str | UserRole | None) -> None:
    if not can_perform_action(action=action, role=role):
        raise ForbiddenError(f"Role '{normalize_role(role) or role}' is not allowed to perform '{action}'")


def list_allowed_actions(role: str | UserRole | None) -> set[str]:
    """
    返回当前角色可执行动作集合（用于前端 capability 输出）。
    """
    normalized = normalize_role(role)
    if normalized is None:
        return set()
    return {action for action, roles in ACTION_ROLES.items() if normalized in roles}
