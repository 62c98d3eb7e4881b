from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from backend.app.repositories.audit_repository import AuditEvent, AuditRepository
from backend.app.repositories.notes_repository import NotesRepository, VideoNote
from backend.app.services.video_ids import resolve_video_id
from backend.app.services.youtube_gateway import YouTubeGateway

LOGGER = logging.getLogger("tubedesk.dashboard")


@dataclass
class _AuditScope:
    video_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    metadata: dict[str, Any] | None = None


class DashboardService:
    """User-facing video/comment/notes operations, each recorded in the audit log."""

    def __init__(
        self,
        *,
        gateway: YouTubeGateway,
        notes_repository: NotesRepository,
        audit_repository: AuditRepository,
        comments_page_size: int = 50,
    ) -> None:
        self._gateway = gateway
        self._notes_repository = notes_repository
        self._audit_repository = audit_repository
        self._comments_page_size = max(1, min(100, comments_page_size))

    def fetch_video(self, user_id: str, raw_video_id: str) -> dict[str, Any] | None:
        with self._audited("video.fetch", user_id, video_id=raw_video_id) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            return self._gateway.get_video(user_id, video_id)

    def update_video(
        self,
        user_id: str,
        raw_video_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        with self._audited(
            "video.update",
            user_id,
            video_id=raw_video_id,
            metadata={"title": title, "description": description},
        ) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            return self._gateway.update_video(
                user_id,
                video_id,
                title=title,
                description=description,
            )

    def list_comments(
        self,
        user_id: str,
        raw_video_id: str,
        *,
        page_token: str | None = None,
    ) -> dict[str, Any]:
        with self._audited("comments.list", user_id, video_id=raw_video_id) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            return self._gateway.list_comment_threads(
                user_id,
                video_id,
                page_token=page_token,
                max_results=self._comments_page_size,
            )

    def add_comment(self, user_id: str, raw_video_id: str, text: str) -> dict[str, Any]:
        with self._audited(
            "comment.add",
            user_id,
            video_id=raw_video_id,
            target_type="comment",
            metadata={"text": text},
        ) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            created = self._gateway.add_comment(user_id, video_id, text)
            created_id = created.get("id")
            if isinstance(created_id, str):
                scope.target_id = created_id
            return created

    def reply_to_comment(self, user_id: str, parent_id: str, text: str) -> dict[str, Any]:
        with self._audited(
            "comment.reply",
            user_id,
            target_type="comment",
            target_id=parent_id,
            metadata={"text": text},
        ):
            return self._gateway.reply_to_comment(user_id, parent_id, text)

    def update_comment(self, user_id: str, comment_id: str, text: str) -> dict[str, Any]:
        with self._audited(
            "comment.update",
            user_id,
            target_type="comment",
            target_id=comment_id,
            metadata={"text": text},
        ):
            return self._gateway.update_comment(user_id, comment_id, text)

    def delete_comment(self, user_id: str, comment_id: str) -> None:
        with self._audited(
            "comment.delete",
            user_id,
            target_type="comment",
            target_id=comment_id,
        ):
            self._gateway.delete_comment(user_id, comment_id)

    def get_my_channel_id(self, user_id: str) -> str | None:
        with self._audited("me.channel_id", user_id):
            return self._gateway.get_my_channel_id(user_id)

    def get_note(self, user_id: str, raw_video_id: str) -> VideoNote | None:
        video_id = resolve_video_id(raw_video_id)
        return self._notes_repository.get_note(user_id=user_id, video_id=video_id)

    def save_note(self, user_id: str, raw_video_id: str, content: str) -> VideoNote:
        with self._audited("note.upsert", user_id, video_id=raw_video_id) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            return self._notes_repository.upsert_note(
                user_id=user_id,
                video_id=video_id,
                content=content,
            )

    def delete_note(self, user_id: str, raw_video_id: str) -> bool:
        with self._audited("note.delete", user_id, video_id=raw_video_id) as scope:
            video_id = resolve_video_id(raw_video_id)
            scope.video_id = video_id
            return self._notes_repository.delete_note(user_id=user_id, video_id=video_id)

    def recent_activity(self, user_id: str, *, limit: int = 50) -> list[AuditEvent]:
        return self._audit_repository.list_events(user_id=user_id, limit=limit)

    @contextmanager
    def _audited(
        self,
        action: str,
        user_id: str,
        *,
        video_id: str | None = None,
        target_type: str | None = None,
        target_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Iterator[_AuditScope]:
        scope = _AuditScope(
            video_id=video_id,
            target_type=target_type,
            target_id=target_id,
            metadata=metadata,
        )
        try:
            yield scope
        except Exception as exc:
            LOGGER.info("dashboard action failed action=%s error_type=%s", action, type(exc).__name__)
            self._audit_repository.record_event(
                action=action,
                user_id=user_id,
                status="error",
                video_id=video_id,
                target_type=scope.target_type,
                target_id=scope.target_id,
                message=str(exc),
            )
            raise
        self._audit_repository.record_event(
            action=action,
            user_id=user_id,
            status="success",
            video_id=scope.video_id,
            target_type=scope.target_type,
            target_id=scope.target_id,
            metadata=scope.metadata,
        )
