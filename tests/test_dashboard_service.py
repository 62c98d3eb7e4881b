from __future__ import annotations

from pathlib import Path

import pytest

from backend.app.repositories.audit_repository import AuditRepository
from backend.app.repositories.database import Database
from backend.app.repositories.notes_repository import NotesRepository
from backend.app.services.dashboard_service import DashboardService
from backend.app.services.video_ids import InvalidVideoReferenceError
from backend.app.services.youtube_errors import (
    AccountNotLinkedError,
    CommentsDisabledError,
    NotFoundError,
)
from backend.app.services.youtube_gateway import YouTubeGateway
from tests.support import FakeTransport


def test_fetch_video_resolves_url_and_records_success(
    dashboard: DashboardService,
    transport: FakeTransport,
    linked_user: str,
) -> None:
    transport.queue(200, {"items": [{"id": "dQw4w9WgXcQ"}]})

    video = dashboard.fetch_video(linked_user, "https://youtu.be/dQw4w9WgXcQ")

    assert video == {"id": "dQw4w9WgXcQ"}
    assert transport.requests[0].query["id"] == "dQw4w9WgXcQ"
    [event] = dashboard.recent_activity(linked_user)
    assert event.action == "video.fetch"
    assert event.status == "success"
    assert event.video_id == "dQw4w9WgXcQ"


def test_failed_call_is_recorded_and_reraised(
    dashboard: DashboardService,
    transport: FakeTransport,
    linked_user: str,
) -> None:
    transport.queue(403, raw_body='{"reason": "commentsDisabled"}')

    with pytest.raises(CommentsDisabledError):
        dashboard.list_comments(linked_user, "dQw4w9WgXcQ")

    [event] = dashboard.recent_activity(linked_user)
    assert event.action == "comments.list"
    assert event.status == "error"
    assert event.message is not None
    assert "commentsDisabled" in event.message


def test_invalid_url_is_rejected_before_any_call(
    dashboard: DashboardService,
    transport: FakeTransport,
    linked_user: str,
) -> None:
    with pytest.raises(InvalidVideoReferenceError):
        dashboard.fetch_video(linked_user, "https://example.com/clip")

    assert transport.requests == []
    [event] = dashboard.recent_activity(linked_user)
    assert event.status == "error"
    assert event.video_id == "https://example.com/clip"


def test_unlinked_account_error_reaches_caller(dashboard: DashboardService) -> None:
    with pytest.raises(AccountNotLinkedError):
        dashboard.get_my_channel_id("stranger")

    [event] = dashboard.recent_activity("stranger")
    assert event.action == "me.channel_id"
    assert event.status == "error"


def test_comment_actions_record_targets(
    dashboard: DashboardService,
    transport: FakeTransport,
    linked_user: str,
) -> None:
    transport.queue(200, {"id": "thread-1"})
    transport.queue(200, {"id": "reply-1"})
    transport.queue(204)

    dashboard.add_comment(linked_user, "dQw4w9WgXcQ", "Great video")
    dashboard.reply_to_comment(linked_user, "thread-1", "Thanks")
    dashboard.delete_comment(linked_user, "reply-1")

    events = {event.action: event for event in dashboard.recent_activity(linked_user)}
    assert events["comment.add"].target_id == "thread-1"
    assert events["comment.add"].metadata == {"text": "Great video"}
    assert events["comment.reply"].target_id == "thread-1"
    assert events["comment.delete"].target_id == "reply-1"
    assert events["comment.delete"].target_type == "comment"


def test_update_video_records_changed_fields(
    dashboard: DashboardService,
    transport: FakeTransport,
    linked_user: str,
) -> None:
    transport.queue(200, {"items": [{"snippet": {"title": "Old", "categoryId": "10"}}]})
    transport.queue(200, {"id": "dQw4w9WgXcQ"})

    dashboard.update_video(linked_user, "dQw4w9WgXcQ", description="New description")

    assert transport.requests[1].json_body()["snippet"] == {
        "title": "Old",
        "categoryId": "10",
        "description": "New description",
    }
    [event] = dashboard.recent_activity(linked_user)
    assert event.action == "video.update"
    assert event.metadata == {"title": None, "description": "New description"}


def test_notes_round_trip(dashboard: DashboardService) -> None:
    assert dashboard.get_note("user-1", "dQw4w9WgXcQ") is None

    dashboard.save_note("user-1", "https://www.youtube.com/watch?v=dQw4w9WgXcQ", "first draft")
    saved = dashboard.save_note("user-1", "dQw4w9WgXcQ", "second draft")

    assert saved.content == "second draft"
    assert dashboard.get_note("user-1", "https://youtu.be/dQw4w9WgXcQ") == saved
    assert dashboard.delete_note("user-1", "dQw4w9WgXcQ") is True
    assert dashboard.delete_note("user-1", "dQw4w9WgXcQ") is False
    assert [event.action for event in dashboard.recent_activity("user-1")].count("note.upsert") == 2


def test_audit_failure_does_not_mask_call_error(
    tmp_path: Path,
    gateway: YouTubeGateway,
    transport: FakeTransport,
    database: Database,
    linked_user: str,
) -> None:
    # The audit database never had its schema created, so every insert fails.
    broken_audit = AuditRepository(Database(tmp_path / "no-schema.db"))
    service = DashboardService(
        gateway=gateway,
        notes_repository=NotesRepository(database),
        audit_repository=broken_audit,
    )
    transport.queue(404, raw_body="{}")
    transport.queue(200, {"items": [{"id": "UC1"}]})

    with pytest.raises(NotFoundError):
        service.fetch_video(linked_user, "dQw4w9WgXcQ")

    assert service.get_my_channel_id(linked_user) == "UC1"
