from __future__ import annotations

from enum import Enum


class ManuscriptStatus(str, Enum):
    """
    稿件生命周期状态枚举（线上协议字面值，不可改名）。

    中文注释:
    - 数据库 submissions.status 有 check 约束，取值与这里完全一致。
    - 所有流转校验都经由 allowed_next，服务层不得另写一套规则。
    """

    SUBMITTED = "submitted"
    PENDING_FOR_REVIEW = "pending_for_review"
    UNDER_PEER_REVIEW = "under_peer_review"
    REQUESTED_FOR_CORRECTION = "requested_for_correction"
    CORRECTION_SUBMITTED = "correction_submitted"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    PRE_PUBLICATION = "pre_publication"
    PUBLISHED = "published"
    UNPUBLISHED = "unpublished"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]

    @classmethod
    def allowed_next(cls, current: str | ManuscriptStatus | None) -> set[str]:
        """
        状态机规则必须显性可见。

        - submitted -> pending_for_review
        - pending_for_review -> under_peer_review / rejected
        - under_peer_review -> requested_for_correction / accepted / rejected
        - requested_for_correction -> correction_submitted
        - correction_submitted -> under_peer_review / accepted / rejected
        - accepted -> pre_publication
        - rejected -> pending_for_review（重新打开）
        - pre_publication -> published
        - published -> unpublished
        - unpublished -> published / pre_publication
        """
        c = normalize_status(current)
        if c is None:
            return set()
        return {s.value for s in _TRANSITIONS[ManuscriptStatus(c)]}


_S = ManuscriptStatus

_TRANSITIONS: dict[ManuscriptStatus, tuple[ManuscriptStatus, ...]] = {
    _S.SUBMITTED: (_S.PENDING_FOR_REVIEW,),
    _S.PENDING_FOR_REVIEW: (_S.UNDER_PEER_REVIEW, _S.REJECTED),
    _S.UNDER_PEER_REVIEW: (_S.REQUESTED_FOR_CORRECTION, _S.ACCEPTED, _S.REJECTED),
    _S.REQUESTED_FOR_CORRECTION: (_S.CORRECTION_SUBMITTED,),
    _S.CORRECTION_SUBMITTED: (_S.UNDER_PEER_REVIEW, _S.ACCEPTED, _S.REJECTED),
    _S.ACCEPTED: (_S.PRE_PUBLICATION,),
    _S.REJECTED: (_S.PENDING_FOR_REVIEW,),
    _S.PRE_PUBLICATION: (_S.PUBLISHED,),
    _S.PUBLISHED: (_S.UNPUBLISHED,),
    _S.UNPUBLISHED: (_S.PUBLISHED, _S.PRE_PUBLICATION),
}

STATUS_LABELS: dict[ManuscriptStatus, str] = {
    _S.SUBMITTED: "Submitted",
    _S.PENDING_FOR_REVIEW: "Pending for Review",
    _S.UNDER_PEER_REVIEW: "Under Peer Review",
    _S.REQUESTED_FOR_CORRECTION: "Requested for Correction",
    _S.CORRECTION_SUBMITTED: "Correction Submitted",
    _S.ACCEPTED: "Accepted",
    _S.REJECTED: "Rejected",
    _S.PRE_PUBLICATION: "Pre-Publication",
    _S.PUBLISHED: "Published",
    _S.UNPUBLISHED: "Unpublished",
}

# 可投影为文章（promote）的状态
PROMOTABLE_STATUSES = frozenset({_S.ACCEPTED.value, _S.PRE_PUBLICATION.value})


class ChangeRole(str, Enum):
    """
    写入 manuscript_status_history.changed_by_role 的角色（记录“以什么身份”变更）。
    """

    EDITOR = "editor"
    AUTHOR = "author"
    SYSTEM = "system"


class ReviewVerdict(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CHANGES_REQUESTED = "changes_requested"


def normalize_status(value: str | ManuscriptStatus | None) -> str | None:
    """
    归一化状态字面值；未知值返回 None（由调用方决定报 422 还是忽略）。
    """
    if value is None:
        return None
    if isinstance(value, ManuscriptStatus):
        return value.value
    v = str(value).strip().lower()
    if not v:
        return None
    try:
        return ManuscriptStatus(v).value
    except ValueError:
        return None
