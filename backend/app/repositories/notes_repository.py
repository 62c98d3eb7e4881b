from __future__ import annotations

from dataclasses import dataclass

from backend.app.repositories.common import utc_now_iso
from backend.app.repositories.database import Database


@dataclass(frozen=True)
class VideoNote:
    user_id: str
    video_id: str
    content: str
    created_at: str
    updated_at: str


class NotesRepository:
    def __init__(self, db: Database) -> None:
        self._db = db

    def get_note(self, *, user_id: str, video_id: str) -> VideoNote | None:
        with self._db.connection() as conn:
            row = conn.execute(
                """
                SELECT user_id, video_id, content, created_at, updated_at
                FROM notes
                WHERE user_id = ? AND video_id = ?
                LIMIT 1
                """,
                (user_id, video_id),
            ).fetchone()
        if row is None:
            return None
        return VideoNote(
            user_id=str(row["user_id"]),
            video_id=str(row["video_id"]),
            content=str(row["content"]),
            created_at=str(row["created_at"]),
            updated_at=str(row["updated_at"]),
        )

    def upsert_note(self, *, user_id: str, video_id: str, content: str) -> VideoNote:
        now_iso = utc_now_iso()
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO notes (user_id, video_id, content, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(user_id, video_id) DO UPDATE SET
                    content = excluded.content,
                    updated_at = excluded.updated_at
                """,
                (user_id, video_id, content, now_iso, now_iso),
            )

        note = self.get_note(user_id=user_id, video_id=video_id)
        assert note is not None
        return note

    def delete_note(self, *, user_id: str, video_id: str) -> bool:
        with self._db.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM notes WHERE user_id = ? AND video_id = ?",
                (user_id, video_id),
            )
            return cursor.rowcount > 0
