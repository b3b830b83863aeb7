from __future__ import annotations

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError

from app.core.errors import (
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from app.core.role_matrix import can_perform_action, require_action
from app.lib.api_client import extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.manuscript import ChangeRole, ManuscriptStatus, normalize_status
from app.models.user import UserRole
from app.services.article_projection import ARTICLES_TABLE, build_article_payload

logger = logging.getLogger("journal.workflow")

_MANUSCRIPT_COLUMNS = "id,title,status,version,author_id,research_authors,corresponding_author,updated_at"


def required_action_for(target_status: str) -> str:
    """
    目标状态 -> Role Guard 动作。
    """
    if target_status == ManuscriptStatus.CORRECTION_SUBMITTED.value:
        return "manuscript:resubmit_correction"
    if target_status == ManuscriptStatus.PUBLISHED.value:
        return "article:publish"
    if target_status == ManuscriptStatus.UNPUBLISHED.value:
        return "article:unpublish"
    return "manuscript:transition"


def ledger_role_for(actor_role: str | None) -> ChangeRole:
    """
    用户角色 -> 审计记录里的 changed_by_role（admin 与 editor 都记为 editor）。
    """
    role = str(actor_role or "").strip().lower()
    if role in {UserRole.ADMIN.value, UserRole.EDITOR.value}:
        return ChangeRole.EDITOR
    if role == ChangeRole.SYSTEM.value:
        return ChangeRole.SYSTEM
    return ChangeRole.AUTHOR


class EditorialService:
    """
    稿件状态机与审计日志写入服务。

    中文注释:
    - 核心流转逻辑集中在这里，API 层/前端只负责传参。
    - 校验全部在写入之前完成；真正的写入是一次 RPC（transition_manuscript_status），
      status 更新、version 自增、审计记录、文章投影在同一个数据库事务里，要么全成功要么全失败。
    - 重复请求同一流转不做去重：每次都会追加一条审计记录。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def get_manuscript(self, manuscript_id: str) -> dict[str, Any]:
        try:
            resp = (
                self.client.table("submissions")
                .select(_MANUSCRIPT_COLUMNS)
                .eq("id", str(manuscript_id))
                .limit(1)
                .execute()
            )
        except APIError as e:
            if is_invalid_uuid_error(e):
                raise NotFoundError("Manuscript not found") from e
            raise
        rows = extract_rows(resp)
        if not rows:
            raise NotFoundError("Manuscript not found")
        return rows[0]

    def available_transitions(self, *, manuscript_id: str, actor_id: str, actor_role: str) -> list[str]:
        """
        当前用户对该稿件可执行的目标状态（前端据此渲染按钮）。
        """
        ms = self.get_manuscript(manuscript_id)
        out: list[str] = []
        for target in sorted(ManuscriptStatus.allowed_next(ms.get("status"))):
            if not can_perform_action(action=required_action_for(target), role=actor_role):
                continue
            if target == ManuscriptStatus.CORRECTION_SUBMITTED.value and str(ms.get("author_id")) != str(actor_id):
                continue
            out.append(target)
        return out

    def transition(
        self,
        *,
        manuscript_id: str,
        target_status: str | ManuscriptStatus,
        actor_id: str,
        actor_role: str,
        note: Optional[str],
        attachment_storage_id: Optional[str] = None,
        issue_id: Optional[str] = None,
        page_range: Optional[str] = None,
        doi: Optional[str] = None,
    ) -> dict[str, Any]:
        target = normalize_status(target_status)
        if target is None:
            raise ValidationFailedError(f"Invalid status: {target_status!r}")

        ms = self.get_manuscript(manuscript_id)
        current = normalize_status(ms.get("status"))
        is_system = ledger_role_for(actor_role) is ChangeRole.SYSTEM

        # 中文注释: 先判合法边再判角色，非法边对任何角色都是 409
        allowed = ManuscriptStatus.allowed_next(current)
        if target not in allowed:
            raise InvalidTransitionError(
                f"Invalid transition: {current} -> {target}. Allowed: {sorted(allowed)}"
            )

        if not is_system:
            require_action(action=required_action_for(target), role=actor_role)
            if target == ManuscriptStatus.CORRECTION_SUBMITTED.value and str(ms.get("author_id")) != str(actor_id):
                raise ForbiddenError("Only the submission's author can submit a correction")

        note_text = (note or "").strip()
        if not note_text and not is_system:
            raise ValidationFailedError("A note is required for every status change")

        article = None
        if target == ManuscriptStatus.PUBLISHED.value:
            article = self._article_for_publication(ms, issue_id=issue_id, page_range=page_range, doi=doi)

        return self._commit(
            ms,
            target=target,
            actor_id=str(actor_id),
            ledger_role=ledger_role_for(actor_role),
            note=note_text,
            attachment_storage_id=attachment_storage_id,
            article=article,
        )

    def system_transition(self, *, manuscript_id: str, target_status: str, note: str) -> dict[str, Any]:
        """
        引擎内部流转（例如投稿后自动排队），以稿件作者作为 changed_by_user_id、角色记为 system。
        """
        ms = self.get_manuscript(manuscript_id)
        return self.transition(
            manuscript_id=manuscript_id,
            target_status=target_status,
            actor_id=str(ms.get("author_id")),
            actor_role=ChangeRole.SYSTEM.value,
            note=note,
        )

    def _article_for_publication(
        self,
        ms: dict[str, Any],
        *,
        issue_id: Optional[str],
        page_range: Optional[str],
        doi: Optional[str],
    ) -> Optional[dict[str, Any]]:
        existing = extract_rows(
            self.client.table(ARTICLES_TABLE).select("id").eq("submission_id", str(ms["id"])).limit(1).execute()
        )
        if existing:
            # 已有文章（例如 unpublished -> published）：事务内重新上架即可
            return None
        if not issue_id:
            raise ValidationFailedError("issue_id is required to publish a manuscript without an article")
        issue = extract_rows(self.client.table("issues").select("id").eq("id", str(issue_id)).limit(1).execute())
        if not issue:
            raise NotFoundError("Issue not found")
        return build_article_payload(self.client, ms, issue_id=str(issue_id), page_range=page_range, doi=doi)

    def _commit(
        self,
        ms: dict[str, Any],
        *,
        target: str,
        actor_id: str,
        ledger_role: ChangeRole,
        note: str,
        attachment_storage_id: Optional[str],
        article: Optional[dict[str, Any]],
    ) -> dict[str, Any]:
        params = {
            "p_manuscript_id": str(ms["id"]),
            "p_expected_status": normalize_status(ms.get("status")),
            "p_expected_version": int(ms.get("version") or 1),
            "p_new_status": target,
            "p_changed_by": actor_id,
            "p_changed_by_role": ledger_role.value,
            "p_note": note,
            "p_attachment_storage_id": attachment_storage_id,
            "p_article": article,
        }
        try:
            resp = self.client.rpc("transition_manuscript_status", params).execute()
        except APIError as e:
            text = f"{getattr(e, 'message', '')} {e}".lower()
            code = str(getattr(e, "code", "") or "")
            if "stale_manuscript" in text:
                raise InvalidTransitionError(
                    "Manuscript changed while the transition was being applied; reload and retry"
                ) from e
            if code == "23505" or "duplicate key" in text:
                raise ValidationFailedError("Article slug already exists; retry the publication") from e
            raise

        rows = extract_rows(resp)
        if not rows:
            raise RuntimeError("transition_manuscript_status returned no row")
        updated = rows[0]
        logger.info(
            "[Workflow] manuscript=%s %s -> %s by=%s role=%s",
            ms.get("id"),
            params["p_expected_status"],
            target,
            actor_id,
            ledger_role.value,
        )
        return updated
