from __future__ import annotations

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError

from app.core.config import WorkflowConfig
from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationFailedError
from app.core.role_matrix import can_perform_action, require_action
from app.lib.api_client import extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.manuscript import ManuscriptStatus, normalize_status
from app.models.schemas import SubmissionCreate
from app.services import storage_service
from app.services.editorial_service import EditorialService
from app.services.user_service import UserService

logger = logging.getLogger("journal.submissions")

SUBMISSIONS_TABLE = "submissions"

INITIAL_NOTE = "Manuscript submitted by author."
AUTO_QUEUE_NOTE = "Automatically queued for editorial review."


class SubmissionService:
    """
    投稿仓储：创建 + 按作者/状态的索引查询。

    中文注释:
    - create 走 create_submission RPC：稿件行与第一条审计记录（submitted，role=system）同事务写入。
    - list_by_author / list_by_status 分别命中 by_author / by_status 索引，不做全表扫描。
    """

    def __init__(self, client: Any = None, config: Optional[WorkflowConfig] = None) -> None:
        self.client = client if client is not None else supabase_admin
        self.config = config or WorkflowConfig.from_env()

    def create(self, *, actor: dict[str, Any], payload: SubmissionCreate) -> dict[str, Any]:
        if not actor or not actor.get("id"):
            raise UnauthorizedError("Authentication required")
        require_action(action="submission:create", role=actor.get("role"))

        body = payload.model_dump(mode="json")
        resp = self.client.rpc(
            "create_submission",
            {"p_author_id": str(actor["id"]), "p_payload": body, "p_note": INITIAL_NOTE},
        ).execute()
        rows = extract_rows(resp)
        if not rows:
            raise RuntimeError("create_submission returned no row")
        created = rows[0]
        logger.info("[Submissions] created id=%s author=%s", created.get("id"), actor.get("id"))

        if self.config.auto_queue_submissions:
            created = EditorialService(self.client).system_transition(
                manuscript_id=str(created["id"]),
                target_status=ManuscriptStatus.PENDING_FOR_REVIEW.value,
                note=AUTO_QUEUE_NOTE,
            )
        return created

    def get_by_id(self, submission_id: str) -> Optional[dict[str, Any]]:
        try:
            resp = (
                self.client.table(SUBMISSIONS_TABLE)
                .select("*")
                .eq("id", str(submission_id))
                .limit(1)
                .execute()
            )
        except APIError as e:
            if is_invalid_uuid_error(e):
                return None
            raise
        rows = extract_rows(resp)
        return rows[0] if rows else None

    def get_for_viewer(self, *, submission_id: str, viewer: dict[str, Any]) -> dict[str, Any]:
        """
        详情页：作者只能看自己的稿件；编辑/管理员可看全部。附带作者信息与文件签名 URL。
        """
        submission = self.get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        self.ensure_can_view(submission, viewer)

        out = dict(submission)
        author = UserService(self.client).get_by_id(str(submission.get("author_id"))) or {}
        out["author_name"] = author.get("full_name") or "Unknown"
        out["author_email"] = author.get("email") or ""
        for key in ("manuscript_file_id", "copyright_file_id"):
            url_key = key.replace("_file_id", "_file_url")
            try:
                out[url_key] = storage_service.resolve_url(submission.get(key))
            except Exception as e:
                logger.warning("[Submissions] resolve %s failed (ignored): %s", key, e)
                out[url_key] = None
        return out

    def ensure_can_view(self, submission: dict[str, Any], viewer: dict[str, Any]) -> None:
        if str(submission.get("author_id")) == str(viewer.get("id")):
            return
        if can_perform_action(action="submission:view_all", role=viewer.get("role")):
            return
        raise ForbiddenError("You can only view your own submissions")

    def list_by_author(self, author_id: str) -> list[dict[str, Any]]:
        resp = (
            self.client.table(SUBMISSIONS_TABLE)
            .select("*")
            .eq("author_id", str(author_id))
            .order("created_at", desc=True)
            .execute()
        )
        return extract_rows(resp)

    def list_by_status(self, status: str | ManuscriptStatus) -> list[dict[str, Any]]:
        normalized = normalize_status(status)
        if normalized is None:
            raise ValidationFailedError(f"Invalid status: {status!r}")
        resp = (
            self.client.table(SUBMISSIONS_TABLE)
            .select("*")
            .eq("status", normalized)
            .order("updated_at", desc=True)
            .execute()
        )
        return extract_rows(resp)

    def list_all(self, *, viewer: dict[str, Any], status: Optional[str] = None) -> list[dict[str, Any]]:
        """
        编辑工作台列表：可按状态过滤；附带作者姓名/邮箱，updated_at 倒序。
        """
        require_action(action="submission:view_all", role=viewer.get("role"))
        if status:
            rows = self.list_by_status(status)
        else:
            rows = extract_rows(
                self.client.table(SUBMISSIONS_TABLE).select("*").order("updated_at", desc=True).execute()
            )

        authors = UserService(self.client).get_names([str(r.get("author_id") or "") for r in rows])
        out: list[dict[str, Any]] = []
        for row in rows:
            author = authors.get(str(row.get("author_id"))) or {}
            out.append(
                {
                    **row,
                    "author_name": author.get("full_name") or "Unknown",
                    "author_email": author.get("email") or "",
                }
            )
        return out
