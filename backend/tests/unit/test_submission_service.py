from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.config import WorkflowConfig
from app.core.errors import ForbiddenError, NotFoundError, UnauthorizedError, ValidationFailedError
from app.models.schemas import SubmissionCreate
from app.services.editorial_service import EditorialService
from app.services.submission_service import AUTO_QUEUE_NOTE, SubmissionService


def _svc(fake, *, auto_queue: bool = False) -> SubmissionService:
    cfg = WorkflowConfig(
        auto_queue_submissions=auto_queue,
        storage_bucket="manuscripts",
        signed_url_ttl=600,
        search_result_limit=20,
        latest_articles_limit=10,
    )
    return SubmissionService(client=fake, config=cfg)


def test_create_stores_submitted_manuscript(fake_db, make_user, submission_payload):
    author = make_user("author")

    created = _svc(fake_db).create(actor=author, payload=SubmissionCreate(**submission_payload))

    assert created["status"] == "submitted"
    assert created["version"] == 1
    assert created["author_id"] == author["id"]
    assert created["keywords"] == ["tutoring", "reading"]
    assert created["created_at"] == created["updated_at"]


def test_create_requires_authenticated_actor(fake_db, submission_payload):
    with pytest.raises(UnauthorizedError):
        _svc(fake_db).create(actor={}, payload=SubmissionCreate(**submission_payload))
    assert fake_db.rows("submissions") == []


def test_auto_queue_moves_to_pending_with_system_entry(fake_db, make_user, submission_payload):
    author = make_user("author")

    created = _svc(fake_db, auto_queue=True).create(actor=author, payload=SubmissionCreate(**submission_payload))

    assert created["status"] == "pending_for_review"
    ledger = fake_db.rows("manuscript_status_history")
    assert [r["new_status"] for r in ledger] == ["submitted", "pending_for_review"]
    assert ledger[-1]["changed_by_role"] == "system"
    assert ledger[-1]["note"] == AUTO_QUEUE_NOTE


@pytest.mark.parametrize(
    "field,value",
    [("title", "abc"), ("abstract", "too short"), ("manuscript_file_id", "")],
)
def test_payload_validation(submission_payload, field, value):
    submission_payload[field] = value
    with pytest.raises(ValidationError):
        SubmissionCreate(**submission_payload)


def test_author_only_sees_own_submission(fake_db, make_user, submission_payload):
    author = make_user("author")
    stranger = make_user("author")
    editor = make_user("editor")
    svc = _svc(fake_db)
    created = svc.create(actor=author, payload=SubmissionCreate(**submission_payload))

    detail = svc.get_for_viewer(submission_id=created["id"], viewer=author)
    assert detail["author_name"] == author["full_name"]
    assert detail["manuscript_file_url"].startswith("https://storage.test/manuscripts/uploads/author/manuscript.pdf")

    assert svc.get_for_viewer(submission_id=created["id"], viewer=editor)["id"] == created["id"]
    with pytest.raises(ForbiddenError):
        svc.get_for_viewer(submission_id=created["id"], viewer=stranger)
    with pytest.raises(NotFoundError):
        svc.get_for_viewer(submission_id="00000000-0000-0000-0000-000000000000", viewer=editor)


def test_malformed_id_reads_as_missing(fake_db, make_user):
    editor = make_user("editor")
    svc = _svc(fake_db)

    assert svc.get_by_id("not-a-uuid") is None
    with pytest.raises(NotFoundError):
        svc.get_for_viewer(submission_id="not-a-uuid", viewer=editor)
    with pytest.raises(NotFoundError):
        EditorialService(client=fake_db).get_manuscript("not-a-uuid")


def test_listing_by_author_and_status(fake_db, make_user, submission_payload):
    alice = make_user("author")
    bob = make_user("author")
    editor = make_user("editor")
    svc = _svc(fake_db)
    first = svc.create(actor=alice, payload=SubmissionCreate(**submission_payload))
    svc.create(actor=alice, payload=SubmissionCreate(**submission_payload))
    svc.create(actor=bob, payload=SubmissionCreate(**submission_payload))
    EditorialService(client=fake_db).transition(
        manuscript_id=first["id"],
        target_status="pending_for_review",
        actor_id=editor["id"],
        actor_role="editor",
        note="Looks complete.",
    )

    assert len(svc.list_by_author(alice["id"])) == 2
    assert len(svc.list_by_author(bob["id"])) == 1
    assert [r["id"] for r in svc.list_by_status("pending_for_review")] == [first["id"]]
    assert len(svc.list_by_status("submitted")) == 2
    with pytest.raises(ValidationFailedError):
        svc.list_by_status("in_review")


def test_list_all_is_staff_only_and_enriched(fake_db, make_user, submission_payload):
    author = make_user("author")
    editor = make_user("editor")
    svc = _svc(fake_db)
    svc.create(actor=author, payload=SubmissionCreate(**submission_payload))

    rows = svc.list_all(viewer=editor)
    assert rows[0]["author_name"] == author["full_name"]
    assert rows[0]["author_email"] == author["email"]
    assert svc.list_all(viewer=editor, status="accepted") == []
    with pytest.raises(ForbiddenError):
        svc.list_all(viewer=author)
