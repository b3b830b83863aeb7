from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from app.core.errors import NotFoundError, UnauthorizedError, ValidationFailedError
from app.core.role_matrix import normalize_role, require_action
from app.lib.api_client import extract_data, extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.manuscript import ManuscriptStatus

logger = logging.getLogger("journal.users")

_PROFILE_COLUMNS = "id,auth_subject,email,full_name,role,bio,institution,created_at,updated_at"


class UserService:
    """
    user_profiles 的读写入口。

    中文注释:
    - 首个用户自动成为 admin 的引导逻辑在 ensure_user_profile RPC 里（同一事务内加表锁），
      不依赖进程内全局状态，多实例部署下也只会产生一个 admin。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def ensure_user(self, *, subject: str, email: Optional[str], name: Optional[str] = None) -> Dict[str, Any]:
        if not subject:
            raise UnauthorizedError("Authentication required")
        resp = self.client.rpc(
            "ensure_user_profile",
            {"p_auth_subject": subject, "p_email": email, "p_full_name": name},
        ).execute()
        rows = extract_rows(resp)
        if not rows:
            raise RuntimeError("ensure_user_profile returned no row")
        profile = rows[0]
        return profile

    def get_by_id(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            resp = (
                self.client.table("user_profiles")
                .select(_PROFILE_COLUMNS)
                .eq("id", str(user_id))
                .limit(1)
                .execute()
            )
        except APIError as e:
            if is_invalid_uuid_error(e):
                return None
            raise
        rows = extract_rows(resp)
        return rows[0] if rows else None

    def get_names(self, user_ids: List[str]) -> Dict[str, Dict[str, Any]]:
        """
        批量查询用户（用于列表 enrich），返回 {id: profile}。
        """
        ids = sorted({str(u) for u in user_ids if u})
        if not ids:
            return {}
        resp = (
            self.client.table("user_profiles")
            .select("id,full_name,email")
            .in_("id", ids)
            .execute()
        )
        return {str(r.get("id")): r for r in extract_rows(resp)}

    def update_profile(self, *, user_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        allowed = {k: v for k, v in patch.items() if k in {"full_name", "bio", "institution"} and v is not None}
        if not allowed:
            raise ValidationFailedError("At least one field must be provided")
        allowed["updated_at"] = self._now()
        resp = self.client.table("user_profiles").update(allowed).eq("id", str(user_id)).execute()
        rows = extract_rows(resp)
        if not rows:
            raise NotFoundError("User not found")
        return rows[0]

    def list_users(self, *, actor_role: str) -> List[Dict[str, Any]]:
        require_action(action="user:list", role=actor_role)
        resp = (
            self.client.table("user_profiles")
            .select(_PROFILE_COLUMNS)
            .order("created_at")
            .execute()
        )
        return extract_rows(resp)

    def set_role(self, *, actor: Dict[str, Any], user_id: str, role: str) -> Dict[str, Any]:
        require_action(action="user:change_role", role=actor.get("role"))
        new_role = normalize_role(role)
        if new_role is None:
            raise ValidationFailedError(f"Invalid role: {role!r}")

        target = self.get_by_id(user_id)
        if not target:
            raise NotFoundError("User not found")

        resp = (
            self.client.table("user_profiles")
            .update({"role": new_role, "updated_at": self._now()})
            .eq("id", str(user_id))
            .execute()
        )
        rows = extract_rows(resp)
        updated = rows[0] if rows else {**target, "role": new_role}
        logger.info(
            "[Users] role change user=%s %s -> %s by=%s",
            user_id,
            target.get("role"),
            new_role,
            actor.get("id"),
        )
        return updated

    def get_author(self, user_id: str) -> Dict[str, Any]:
        profile = self.get_by_id(user_id)
        if not profile:
            raise NotFoundError("Author not found")
        # 公开作者页只暴露展示字段
        return {
            "id": profile.get("id"),
            "full_name": profile.get("full_name"),
            "bio": profile.get("bio"),
            "institution": profile.get("institution"),
        }

    def list_author_publications(self, user_id: str) -> List[Dict[str, Any]]:
        resp = (
            self.client.table("submissions")
            .select("id,title,abstract,article_type,keywords,status,updated_at")
            .eq("author_id", str(user_id))
            .eq("status", ManuscriptStatus.PUBLISHED.value)
            .execute()
        )
        data = extract_data(resp)
        return data if isinstance(data, list) else []
