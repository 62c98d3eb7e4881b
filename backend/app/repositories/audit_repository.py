from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import dataclass
from typing import Any, Literal
from uuid import uuid4

from backend.app.repositories.common import utc_now_iso
from backend.app.repositories.database import Database

LOGGER = logging.getLogger("tubedesk.audit")

EventStatus = Literal["success", "error"]


@dataclass(frozen=True)
class AuditEvent:
    event_id: str
    user_id: str | None
    action: str
    video_id: str | None
    target_type: str | None
    target_id: str | None
    status: str
    message: str | None
    metadata: dict[str, Any] | None
    created_at: str


class AuditRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def record_event(
        self,
        *,
        action: str,
        user_id: str | None,
        status: EventStatus = "success",
        video_id: str | None = None,
        target_type: str | None = None,
        target_id: str | None = None,
        message: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str | None:
        """Insert an audit row; failures are logged and reported as ``None``."""
        event_id = f"evt_{uuid4().hex}"
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO event_logs (
                        id, user_id, action, video_id, target_type, target_id,
                        status, message, metadata_json, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        event_id,
                        user_id,
                        action,
                        video_id,
                        target_type,
                        target_id,
                        status,
                        message,
                        json.dumps(metadata, sort_keys=True) if metadata is not None else None,
                        utc_now_iso(),
                    ),
                )
        except sqlite3.Error:
            LOGGER.error("audit event write failed action=%s status=%s", action, status, exc_info=True)
            return None
        return event_id

    def list_events(self, *, user_id: str, limit: int = 50) -> list[AuditEvent]:
        with self._db.connection() as conn:
            rows = conn.execute(
                """
                SELECT
                    id, user_id, action, video_id, target_type, target_id,
                    status, message, metadata_json, created_at
                FROM event_logs
                WHERE user_id = ?
                ORDER BY created_at DESC, rowid DESC
                LIMIT ?
                """,
                (user_id, max(1, limit)),
            ).fetchall()

        events: list[AuditEvent] = []
        for row in rows:
            raw_metadata = row["metadata_json"]
            events.append(
                AuditEvent(
                    event_id=str(row["id"]),
                    user_id=row["user_id"],
                    action=str(row["action"]),
                    video_id=row["video_id"],
                    target_type=row["target_type"],
                    target_id=row["target_id"],
                    status=str(row["status"]),
                    message=row["message"],
                    metadata=json.loads(raw_metadata) if isinstance(raw_metadata, str) else None,
                    created_at=str(row["created_at"]),
                )
            )
        return events
