from __future__ import annotations

import logging
from typing import Any, Optional

from postgrest.exceptions import APIError

from app.core.config import WorkflowConfig
from app.core.errors import InvalidTransitionError, NotFoundError, ValidationFailedError
from app.core.role_matrix import require_action
from app.lib.api_client import extract_data, extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.manuscript import PROMOTABLE_STATUSES, ManuscriptStatus, normalize_status
from app.models.publication import IssueCreate
from app.services.article_projection import ARTICLES_TABLE, build_article_payload
from app.services.editorial_service import EditorialService

logger = logging.getLogger("journal.publication")

ISSUES_TABLE = "issues"

_COUNTERS = {"views", "downloads"}


class PublicationService:
    """
    Issue 管理与 Submission -> Article 的公开投影。

    中文注释:
    - 文章是稿件的一次性快照（标题、作者名单），稿件后续修改不会回写；需要更新时重新 promote。
    - 公开列表只返回 is_listed=true 且所属 issue 已发布的文章。
    """

    def __init__(self, client: Any = None, config: Optional[WorkflowConfig] = None) -> None:
        self.client = client if client is not None else supabase_admin
        self.config = config or WorkflowConfig.from_env()

    # ─── Issues ────────────────────────────────────────────────────

    def create_issue(self, *, actor: dict[str, Any], payload: IssueCreate) -> dict[str, Any]:
        require_action(action="issue:create", role=actor.get("role"))
        body = {**payload.model_dump(), "is_published": False}
        rows = extract_rows(self.client.table(ISSUES_TABLE).insert(body).execute())
        created = rows[0] if rows else body
        logger.info("[Issues] created id=%s by=%s", created.get("id"), actor.get("id"))
        return created

    def set_issue_published(self, *, actor: dict[str, Any], issue_id: str, is_published: bool) -> dict[str, Any]:
        require_action(action="issue:publish", role=actor.get("role"))
        self.get_issue(issue_id)
        rows = extract_rows(
            self.client.table(ISSUES_TABLE).update({"is_published": bool(is_published)}).eq("id", str(issue_id)).execute()
        )
        if not rows:
            raise NotFoundError("Issue not found")
        return rows[0]

    def list_issues(self) -> list[dict[str, Any]]:
        resp = (
            self.client.table(ISSUES_TABLE)
            .select("*")
            .order("volume", desc=True)
            .order("issue_number", desc=True)
            .execute()
        )
        return extract_rows(resp)

    def get_issue(self, issue_id: str) -> dict[str, Any]:
        try:
            rows = extract_rows(self.client.table(ISSUES_TABLE).select("*").eq("id", str(issue_id)).limit(1).execute())
        except APIError as e:
            if is_invalid_uuid_error(e):
                raise NotFoundError("Issue not found") from e
            raise
        if not rows:
            raise NotFoundError("Issue not found")
        return rows[0]

    # ─── Promotion ─────────────────────────────────────────────────

    def promote_to_article(
        self,
        *,
        submission_id: str,
        issue_id: str,
        actor: dict[str, Any],
        page_range: Optional[str] = None,
        doi: Optional[str] = None,
        advance: bool = False,
        note: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        将 accepted / pre_publication 稿件投影为文章。

        advance=False：仅插入未上架的文章，稿件后续流转到 published 时自动上架。
        advance=True：经状态机推进到 published，文章在 published 那一次事务里写入。
        """
        require_action(action="article:publish", role=actor.get("role"))
        engine = EditorialService(self.client)
        ms = engine.get_manuscript(submission_id)
        status = normalize_status(ms.get("status"))
        if status not in PROMOTABLE_STATUSES:
            raise InvalidTransitionError(
                f"Only accepted or pre-publication manuscripts can be promoted (current: {status})"
            )
        issue = self.get_issue(issue_id)

        if not advance:
            payload = build_article_payload(self.client, ms, issue_id=str(issue["id"]), page_range=page_range, doi=doi)
            payload["is_listed"] = False
            try:
                rows = extract_rows(self.client.table(ARTICLES_TABLE).insert(payload).execute())
            except APIError as e:
                if str(getattr(e, "code", "") or "") == "23505":
                    raise ValidationFailedError("Article slug already exists; retry the promotion") from e
                raise
            article = rows[0] if rows else payload
            logger.info("[Publication] promoted submission=%s slug=%s", submission_id, article.get("slug"))
            return {"article": article, "submission": ms}

        base_note = (note or "").strip() or f"Assigned to {issue.get('title') or 'issue'}."
        if status == ManuscriptStatus.ACCEPTED.value:
            ms = engine.transition(
                manuscript_id=submission_id,
                target_status=ManuscriptStatus.PRE_PUBLICATION,
                actor_id=str(actor["id"]),
                actor_role=str(actor.get("role")),
                note=base_note,
            )
        ms = engine.transition(
            manuscript_id=submission_id,
            target_status=ManuscriptStatus.PUBLISHED,
            actor_id=str(actor["id"]),
            actor_role=str(actor.get("role")),
            note=base_note,
            issue_id=str(issue["id"]),
            page_range=page_range,
            doi=doi,
        )
        articles = self.list_articles_by_submission(submission_id)
        return {"article": articles[-1] if articles else None, "submission": ms}

    def remove_article(self, *, actor: dict[str, Any], article_id: str, note: Optional[str] = None) -> dict[str, Any]:
        """
        删除文章；若稿件因此不再有任何文章且处于 published，则同事务流转为 unpublished。
        """
        require_action(action="article:remove", role=actor.get("role"))
        try:
            resp = self.client.rpc(
                "remove_article",
                {
                    "p_article_id": str(article_id),
                    "p_changed_by": str(actor["id"]),
                    "p_note": (note or "").strip() or "Article removed from issue.",
                },
            ).execute()
        except APIError as e:
            if "article_not_found" in f"{getattr(e, 'message', '')} {e}".lower():
                raise NotFoundError("Article not found") from e
            raise
        result = extract_data(resp)
        logger.info("[Publication] removed article=%s by=%s", article_id, actor.get("id"))
        return result if isinstance(result, dict) else {}

    # ─── Public article queries ────────────────────────────────────

    def list_articles_by_submission(self, submission_id: str) -> list[dict[str, Any]]:
        resp = (
            self.client.table(ARTICLES_TABLE)
            .select("*")
            .eq("submission_id", str(submission_id))
            .order("created_at")
            .execute()
        )
        return extract_rows(resp)

    def _published_issue_ids(self, issue_ids: list[str]) -> set[str]:
        ids = sorted({i for i in issue_ids if i})
        if not ids:
            return set()
        rows = extract_rows(
            self.client.table(ISSUES_TABLE).select("id,is_published").in_("id", ids).execute()
        )
        return {str(r["id"]) for r in rows if r.get("is_published")}

    def _with_submission_fields(self, articles: list[dict[str, Any]]) -> list[dict[str, Any]]:
        ids = sorted({str(a.get("submission_id")) for a in articles if a.get("submission_id")})
        subs: dict[str, dict[str, Any]] = {}
        if ids:
            rows = extract_rows(
                self.client.table("submissions").select("id,abstract,keywords,author_id").in_("id", ids).execute()
            )
            subs = {str(r["id"]): r for r in rows}
        out = []
        for art in articles:
            sub = subs.get(str(art.get("submission_id"))) or {}
            out.append(
                {
                    **art,
                    "abstract": sub.get("abstract"),
                    "keywords": sub.get("keywords") or [],
                    "author_id": sub.get("author_id"),
                }
            )
        return out

    def _public_only(self, articles: list[dict[str, Any]]) -> list[dict[str, Any]]:
        published = self._published_issue_ids([str(a.get("issue_id") or "") for a in articles])
        return [a for a in articles if a.get("is_listed") and str(a.get("issue_id")) in published]

    def get_article(self, id_or_slug: str) -> dict[str, Any]:
        rows = extract_rows(self.client.table(ARTICLES_TABLE).select("*").eq("slug", str(id_or_slug)).limit(1).execute())
        if not rows:
            try:
                rows = extract_rows(
                    self.client.table(ARTICLES_TABLE).select("*").eq("id", str(id_or_slug)).limit(1).execute()
                )
            except APIError as e:
                # 非 uuid 的 slug 查 id 列会触发 22P02，视为不存在
                if not is_invalid_uuid_error(e):
                    raise
                rows = []
        if not rows:
            raise NotFoundError("Article not found")
        article = self._with_submission_fields(rows)[0]
        try:
            issue = self.get_issue(str(article.get("issue_id")))
        except NotFoundError:
            issue = {}
        article.update(
            {
                "issue_title": issue.get("title"),
                "issue_volume": issue.get("volume"),
                "issue_number": issue.get("issue_number"),
                "is_issue_published": bool(issue.get("is_published")),
            }
        )
        return article

    def list_latest_articles(self, limit: Optional[int] = None) -> list[dict[str, Any]]:
        limit = limit or self.config.latest_articles_limit
        resp = (
            self.client.table(ARTICLES_TABLE)
            .select("*")
            .eq("is_listed", True)
            .order("publish_date", desc=True)
            .limit(limit * 5)
            .execute()
        )
        visible = self._public_only(extract_rows(resp))[:limit]
        return self._with_submission_fields(visible)

    def list_articles_by_issue(self, issue_id: str) -> list[dict[str, Any]]:
        issue = self.get_issue(issue_id)
        if not issue.get("is_published"):
            return []
        resp = (
            self.client.table(ARTICLES_TABLE)
            .select("*")
            .eq("issue_id", str(issue_id))
            .eq("is_listed", True)
            .order("publish_date")
            .execute()
        )
        return self._with_submission_fields(extract_rows(resp))

    def search_articles(self, query: str, *, issue_id: Optional[str] = None) -> list[dict[str, Any]]:
        """
        标题全文检索（search_title 索引），可选按 issue 过滤。
        """
        q = (query or "").strip()
        if not q:
            return []
        builder = (
            self.client.table(ARTICLES_TABLE)
            .select("*")
            .text_search("title", q, options={"type": "websearch", "config": "english"})
        )
        if issue_id:
            builder = builder.eq("issue_id", str(issue_id))
        rows = extract_rows(builder.limit(50).execute())
        visible = self._public_only(rows)[: self.config.search_result_limit]
        return self._with_submission_fields(visible)

    def _increment(self, article_id: str, counter: str) -> Optional[dict[str, Any]]:
        if counter not in _COUNTERS:
            raise ValueError(f"unknown counter: {counter}")
        try:
            resp = self.client.rpc(
                "increment_article_counter",
                {"p_article_id": str(article_id), "p_counter": counter},
            ).execute()
        except APIError as e:
            # 非法 uuid 等输入：计数是尽力而为的统计，不存在的文章直接忽略
            logger.info("[Publication] increment %s skipped for %s: %s", counter, article_id, e)
            return None
        data = extract_data(resp)
        return data if isinstance(data, dict) else None

    def track_view(self, article_id: str) -> Optional[dict[str, Any]]:
        return self._increment(article_id, "views")

    def track_download(self, article_id: str) -> Optional[dict[str, Any]]:
        return self._increment(article_id, "downloads")
