from __future__ import annotations

import logging
from pathlib import Path

import pytest

from backend.app.repositories.audit_repository import AuditRepository
from backend.app.repositories.credential_repository import (
    CredentialRecord,
    CredentialRepository,
    CredentialStoreError,
)
from backend.app.repositories.database import Database
from backend.app.repositories.notes_repository import NotesRepository


def test_database_initialize_is_idempotent(tmp_path: Path) -> None:
    db = Database(tmp_path / "nested" / "state.db")
    db.initialize()
    db.initialize()

    with db.connection() as conn:
        tables = {
            str(row["name"])
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
    assert {"accounts", "notes", "event_logs"} <= tables


def test_find_returns_none_for_unknown_user(credential_repository: CredentialRepository) -> None:
    assert credential_repository.find("nobody") is None


def test_link_account_creates_record(credential_repository: CredentialRepository) -> None:
    record = credential_repository.link_account(
        "user-1",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=1234,
        scope="scope-a",
        token_type="Bearer",
    )

    assert record == CredentialRecord(
        user_id="user-1",
        provider="google",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=1234,
        scope="scope-a",
        token_type="Bearer",
        id_token=None,
    )
    assert credential_repository.find("user-1") == record


def test_relinking_without_refresh_token_keeps_existing_one(
    credential_repository: CredentialRepository,
) -> None:
    credential_repository.link_account(
        "user-1",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=1000,
    )

    record = credential_repository.link_account(
        "user-1",
        access_token="access-2",
        refresh_token=None,
        expires_at=2000,
    )

    assert record.access_token == "access-2"
    assert record.expires_at == 2000
    assert record.refresh_token == "refresh-1"


def test_update_replaces_token_fields_and_preserves_refresh_token(
    credential_repository: CredentialRepository,
) -> None:
    credential_repository.link_account(
        "user-1",
        access_token="access-1",
        refresh_token="refresh-1",
        expires_at=1000,
        scope="scope-a",
        token_type="Bearer",
        id_token="id-1",
    )

    credential_repository.update(
        "user-1",
        access_token="access-2",
        expires_at=5000,
        scope=None,
        token_type="Bearer",
        id_token=None,
    )

    record = credential_repository.find("user-1")
    assert record is not None
    assert record.access_token == "access-2"
    assert record.expires_at == 5000
    assert record.scope is None
    assert record.id_token is None
    assert record.refresh_token == "refresh-1"


def test_update_without_existing_row_raises(credential_repository: CredentialRepository) -> None:
    with pytest.raises(CredentialStoreError):
        credential_repository.update(
            "ghost",
            access_token="access",
            expires_at=1,
            scope=None,
            token_type=None,
            id_token=None,
        )
    assert credential_repository.find("ghost") is None


def test_records_are_scoped_by_provider(credential_repository: CredentialRepository) -> None:
    credential_repository.link_account(
        "user-1",
        "other",
        access_token="other-access",
        refresh_token=None,
        expires_at=None,
    )

    assert credential_repository.find("user-1") is None
    other = credential_repository.find("user-1", "other")
    assert other is not None
    assert other.expires_at is None


def test_notes_upsert_get_and_delete(database: Database) -> None:
    repository = NotesRepository(database)

    created = repository.upsert_note(user_id="user-1", video_id="vid-1", content="first")
    updated = repository.upsert_note(user_id="user-1", video_id="vid-1", content="second")

    assert updated.content == "second"
    assert updated.created_at == created.created_at
    assert repository.get_note(user_id="user-2", video_id="vid-1") is None
    assert repository.delete_note(user_id="user-1", video_id="vid-1") is True
    assert repository.get_note(user_id="user-1", video_id="vid-1") is None
    assert repository.delete_note(user_id="user-1", video_id="vid-1") is False


def test_audit_events_are_listed_newest_first_per_user(database: Database) -> None:
    repository = AuditRepository(database)

    first_id = repository.record_event(action="video.fetch", user_id="user-1", video_id="vid-1")
    second_id = repository.record_event(
        action="comment.add",
        user_id="user-1",
        status="error",
        video_id="vid-1",
        target_type="comment_thread",
        message="Comments are disabled",
        metadata={"text": "hello"},
    )
    repository.record_event(action="video.fetch", user_id="user-2")

    events = repository.list_events(user_id="user-1")

    assert [event.event_id for event in events] == [second_id, first_id]
    latest = events[0]
    assert latest.status == "error"
    assert latest.message == "Comments are disabled"
    assert latest.metadata == {"text": "hello"}
    assert events[1].metadata is None
    assert len(repository.list_events(user_id="user-1", limit=1)) == 1


def test_audit_write_failure_is_logged_not_raised(
    tmp_path: Path,
    caplog: pytest.LogCaptureFixture,
) -> None:
    repository = AuditRepository(Database(tmp_path / "empty.db"))

    with caplog.at_level(logging.ERROR, logger="tubedesk.audit"):
        event_id = repository.record_event(action="video.fetch", user_id="user-1")

    assert event_id is None
    assert "audit event write failed" in caplog.text
