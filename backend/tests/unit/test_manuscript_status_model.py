from __future__ import annotations

import pytest

from app.models.manuscript import STATUS_LABELS, ManuscriptStatus, normalize_status


def test_every_status_has_a_label_and_transition_entry() -> None:
    for status in ManuscriptStatus:
        assert status.label == STATUS_LABELS[status]
        assert isinstance(ManuscriptStatus.allowed_next(status), set)


def test_submitted_only_moves_to_pending_for_review() -> None:
    assert ManuscriptStatus.allowed_next("submitted") == {"pending_for_review"}


def test_under_peer_review_branches() -> None:
    assert ManuscriptStatus.allowed_next(ManuscriptStatus.UNDER_PEER_REVIEW) == {
        "requested_for_correction",
        "accepted",
        "rejected",
    }


def test_correction_submitted_returns_to_review_or_decision() -> None:
    assert ManuscriptStatus.allowed_next("correction_submitted") == {"under_peer_review", "accepted", "rejected"}


def test_rejected_can_be_reopened() -> None:
    assert ManuscriptStatus.allowed_next("rejected") == {"pending_for_review"}


def test_publication_edges() -> None:
    assert ManuscriptStatus.allowed_next("accepted") == {"pre_publication"}
    assert ManuscriptStatus.allowed_next("pre_publication") == {"published"}
    assert ManuscriptStatus.allowed_next("published") == {"unpublished"}
    assert ManuscriptStatus.allowed_next("unpublished") == {"published", "pre_publication"}


def test_submitted_cannot_jump_to_published() -> None:
    assert "published" not in ManuscriptStatus.allowed_next("submitted")


@pytest.mark.parametrize("raw", ["", "  ", "approved", "PUBLISHEDX", None])
def test_normalize_status_rejects_unknown_values(raw) -> None:
    assert normalize_status(raw) is None
    assert ManuscriptStatus.allowed_next(raw) == set()


def test_normalize_status_is_case_and_space_tolerant() -> None:
    assert normalize_status("  Under_Peer_Review ") == "under_peer_review"
    assert normalize_status(ManuscriptStatus.ACCEPTED) == "accepted"
