from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from postgrest.exceptions import APIError

from app.core.errors import NotFoundError, ValidationFailedError
from app.core.role_matrix import require_action
from app.lib.api_client import extract_rows, is_invalid_uuid_error, supabase_admin
from app.models.paper import (
    CorrespondingAuthorInfo,
    PaperAuthor,
    PaperEndMatter,
    PaperMeta,
    PaperStatus,
    StructuredPaperData,
)
from app.services.paper_renderer import render_paper_html
from app.services.submission_service import SubmissionService
from app.services.template_service import TemplateService

logger = logging.getLogger("journal.papers")

PAPERS_TABLE = "papers"


def _parse_ts(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


def map_submission_to_paper_data(submission: Dict[str, Any]) -> StructuredPaperData:
    """
    稿件 -> 排版初稿：只预填稿件上已有的信息，正文/表格/参考文献留空由编辑补充。

    作者顺序：通讯作者在前，其余研究作者按投稿顺序。
    """
    corresponding = submission.get("corresponding_author") or {}
    created = _parse_ts(submission.get("created_at"))

    authors: List[PaperAuthor] = []
    if corresponding.get("name"):
        authors.append(
            PaperAuthor(
                name=corresponding["name"],
                affiliation="",
                email=corresponding.get("email"),
                is_corresponding=True,
            )
        )
    for author in submission.get("research_authors") or []:
        if not (author or {}).get("name"):
            continue
        authors.append(PaperAuthor(name=author["name"], affiliation=author.get("affiliation") or ""))

    return StructuredPaperData(
        meta=PaperMeta(
            article_type=submission.get("article_type") or "",
            received_date=created.date().isoformat() if created else None,
        ),
        title=submission.get("title") or "",
        authors=authors,
        abstract=submission.get("abstract") or "",
        keywords=list(submission.get("keywords") or []),
        end_matter=PaperEndMatter(
            corresponding_author=CorrespondingAuthorInfo(
                name=corresponding.get("name") or "",
                address=corresponding.get("address") or "",
                email=corresponding.get("email") or "",
            ),
            date_of_submission=created.strftime("%b %d, %Y") if created else "",
        ),
    )


class PaperService:
    """
    排版稿（paper）= 稿件 + 模板 + 结构化内容。

    中文注释:
    - rendered_data 入库前经 StructuredPaperData 校验，保存为 camelCase JSON。
    - paper 与稿件状态机无关：生成/修改 paper 不会写审计记录。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def _now(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def generate(
        self,
        *,
        actor: Dict[str, Any],
        submission_id: str,
        template_id: str,
        rendered_data: Optional[StructuredPaperData] = None,
    ) -> Dict[str, Any]:
        require_action(action="paper:manage", role=actor.get("role"))
        submission = SubmissionService(self.client).get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        TemplateService(self.client).get(template_id)

        data = rendered_data or map_submission_to_paper_data(submission)
        now = self._now()
        body = {
            "submission_id": str(submission_id),
            "template_id": str(template_id),
            "rendered_data": data.to_json(),
            "created_by": str(actor["id"]),
            "status": PaperStatus.DRAFT.value,
            "created_at": now,
            "updated_at": now,
        }
        rows = extract_rows(self.client.table(PAPERS_TABLE).insert(body).execute())
        created = rows[0] if rows else body
        logger.info("[Papers] generated id=%s submission=%s template=%s", created.get("id"), submission_id, template_id)
        return created

    def update(
        self,
        *,
        actor: Dict[str, Any],
        paper_id: str,
        rendered_data: Optional[StructuredPaperData] = None,
        template_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        require_action(action="paper:manage", role=actor.get("role"))
        self._get_row(paper_id)
        patch: Dict[str, Any] = {}
        if rendered_data is not None:
            patch["rendered_data"] = rendered_data.to_json()
        if template_id is not None:
            TemplateService(self.client).get(template_id)
            patch["template_id"] = str(template_id)
        if not patch:
            raise ValidationFailedError("At least one field must be provided")
        return self._patch(paper_id, patch)

    def set_status(self, *, actor: Dict[str, Any], paper_id: str, status: str | PaperStatus) -> Dict[str, Any]:
        require_action(action="paper:manage", role=actor.get("role"))
        try:
            value = PaperStatus(status).value
        except ValueError as e:
            raise ValidationFailedError(f"Invalid paper status: {status!r}") from e
        self._get_row(paper_id)
        return self._patch(paper_id, {"status": value})

    def list(self, *, actor: Dict[str, Any]) -> List[Dict[str, Any]]:
        """
        列表页：附带稿件标题与模板名称。
        """
        require_action(action="paper:manage", role=actor.get("role"))
        rows = extract_rows(self.client.table(PAPERS_TABLE).select("*").order("updated_at", desc=True).execute())
        return self._with_labels(rows)

    def list_by_submission(self, *, actor: Dict[str, Any], submission_id: str) -> List[Dict[str, Any]]:
        require_action(action="paper:manage", role=actor.get("role"))
        rows = extract_rows(
            self.client.table(PAPERS_TABLE)
            .select("*")
            .eq("submission_id", str(submission_id))
            .order("created_at", desc=True)
            .execute()
        )
        return self._with_labels(rows)

    def get(self, *, actor: Dict[str, Any], paper_id: str) -> Dict[str, Any]:
        require_action(action="paper:manage", role=actor.get("role"))
        paper = self._get_row(paper_id)
        templates = TemplateService(self.client)
        template = templates.get(str(paper.get("template_id")))
        return {
            **paper,
            "template_name": template.get("name"),
            "template_config": templates.get_config(template).to_json(),
        }

    def render_html(self, *, actor: Dict[str, Any], paper_id: str) -> str:
        require_action(action="paper:manage", role=actor.get("role"))
        paper = self._get_row(paper_id)
        templates = TemplateService(self.client)
        config = templates.get_config(templates.get(str(paper.get("template_id"))))
        try:
            data = StructuredPaperData.model_validate(paper.get("rendered_data") or {})
        except ValueError as e:
            raise ValidationFailedError(f"Paper content is invalid: {e}") from e
        return render_paper_html(paper=data, config=config)

    def _get_row(self, paper_id: str) -> Dict[str, Any]:
        try:
            rows = extract_rows(self.client.table(PAPERS_TABLE).select("*").eq("id", str(paper_id)).limit(1).execute())
        except APIError as e:
            if is_invalid_uuid_error(e):
                raise NotFoundError("Paper not found") from e
            raise
        if not rows:
            raise NotFoundError("Paper not found")
        return rows[0]

    def _patch(self, paper_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
        patch = {**patch, "updated_at": self._now()}
        rows = extract_rows(self.client.table(PAPERS_TABLE).update(patch).eq("id", str(paper_id)).execute())
        if not rows:
            raise NotFoundError("Paper not found")
        return rows[0]

    def _with_labels(self, rows: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        sub_ids = sorted({str(r.get("submission_id")) for r in rows if r.get("submission_id")})
        tpl_ids = sorted({str(r.get("template_id")) for r in rows if r.get("template_id")})
        titles: Dict[str, str] = {}
        names: Dict[str, str] = {}
        if sub_ids:
            for s in extract_rows(self.client.table("submissions").select("id,title").in_("id", sub_ids).execute()):
                titles[str(s["id"])] = s.get("title") or ""
        if tpl_ids:
            for t in extract_rows(self.client.table("templates").select("id,name").in_("id", tpl_ids).execute()):
                names[str(t["id"])] = t.get("name") or ""
        return [
            {
                **r,
                "submission_title": titles.get(str(r.get("submission_id")), "Unknown"),
                "template_name": names.get(str(r.get("template_id")), "Unknown"),
            }
            for r in rows
        ]
