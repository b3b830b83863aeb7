from __future__ import annotations

import logging
from typing import Any

from app.core.errors import NotFoundError, ValidationFailedError
from app.core.role_matrix import require_action
from app.lib.api_client import extract_rows, supabase_admin
from app.models.manuscript import ReviewVerdict
from app.services.submission_service import SubmissionService
from app.services.user_service import UserService

logger = logging.getLogger("journal.reviews")

REVIEWS_TABLE = "reviews"


class ReviewService:
    """
    编辑审稿意见（approve / reject / changes_requested）。

    中文注释:
    - 审稿意见只是记录，不会自动改变稿件状态；状态变更仍需显式调用流转接口。
    """

    def __init__(self, client: Any = None) -> None:
        self.client = client if client is not None else supabase_admin

    def record_review(
        self,
        *,
        submission_id: str,
        reviewer: dict[str, Any],
        verdict: str | ReviewVerdict,
        comments: str,
    ) -> dict[str, Any]:
        require_action(action="review:record", role=reviewer.get("role"))
        try:
            verdict_value = ReviewVerdict(verdict).value
        except ValueError as e:
            raise ValidationFailedError(f"Invalid verdict: {verdict!r}") from e
        text = (comments or "").strip()
        if not text:
            raise ValidationFailedError("Review comments must not be empty")

        if not SubmissionService(self.client).get_by_id(submission_id):
            raise NotFoundError("Submission not found")

        payload = {
            "submission_id": str(submission_id),
            "reviewer_id": str(reviewer["id"]),
            "verdict": verdict_value,
            "comments": text,
        }
        rows = extract_rows(self.client.table(REVIEWS_TABLE).insert(payload).execute())
        logger.info("[Reviews] submission=%s verdict=%s by=%s", submission_id, verdict_value, reviewer.get("id"))
        return rows[0] if rows else payload

    def list_reviews(self, *, submission_id: str, viewer: dict[str, Any]) -> list[dict[str, Any]]:
        submissions = SubmissionService(self.client)
        submission = submissions.get_by_id(submission_id)
        if not submission:
            raise NotFoundError("Submission not found")
        submissions.ensure_can_view(submission, viewer)

        rows = extract_rows(
            self.client.table(REVIEWS_TABLE)
            .select("*")
            .eq("submission_id", str(submission_id))
            .order("created_at")
            .execute()
        )
        names = UserService(self.client).get_names([str(r.get("reviewer_id") or "") for r in rows])
        return [
            {**r, "reviewer_name": (names.get(str(r.get("reviewer_id"))) or {}).get("full_name") or "Unknown"}
            for r in rows
        ]
