from __future__ import annotations

import sqlite3
from dataclasses import dataclass

from backend.app.repositories.common import to_optional_int, to_optional_text, utc_now_iso
from backend.app.repositories.database import Database

GOOGLE_PROVIDER = "google"


@dataclass(frozen=True)
class CredentialRecord:
    user_id: str
    provider: str
    access_token: str | None
    refresh_token: str | None
    expires_at: int | None
    scope: str | None = None
    token_type: str | None = None
    id_token: str | None = None


class CredentialStoreError(RuntimeError):
    pass


class CredentialRepository:
    """Durable access to the per-(user, provider) OAuth credential row."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def find(self, user_id: str, provider: str = GOOGLE_PROVIDER) -> CredentialRecord | None:
        with self._db.connection() as conn:
            row = conn.execute(
                """
                SELECT
                    user_id, provider, access_token, refresh_token, expires_at,
                    scope, token_type, id_token
                FROM accounts
                WHERE user_id = ? AND provider = ?
                LIMIT 1
                """,
                (user_id, provider),
            ).fetchone()
        if row is None:
            return None
        return _row_to_record(row)

    def update(
        self,
        user_id: str,
        provider: str = GOOGLE_PROVIDER,
        *,
        access_token: str,
        expires_at: int,
        scope: str | None,
        token_type: str | None,
        id_token: str | None,
    ) -> None:
        # refresh_token is intentionally not part of the SET list.
        with self._db.connection() as conn:
            cursor = conn.execute(
                """
                UPDATE accounts SET
                    access_token = ?,
                    expires_at = ?,
                    scope = ?,
                    token_type = ?,
                    id_token = ?,
                    updated_at = ?
                WHERE user_id = ? AND provider = ?
                """,
                (
                    access_token,
                    int(expires_at),
                    scope,
                    token_type,
                    id_token,
                    utc_now_iso(),
                    user_id,
                    provider,
                ),
            )
            if cursor.rowcount == 0:
                raise CredentialStoreError(
                    f"No credential record to update for user_id={user_id} provider={provider}"
                )

    def link_account(
        self,
        user_id: str,
        provider: str = GOOGLE_PROVIDER,
        *,
        access_token: str | None,
        refresh_token: str | None,
        expires_at: int | None,
        scope: str | None = None,
        token_type: str | None = None,
        id_token: str | None = None,
    ) -> CredentialRecord:
        now_iso = utc_now_iso()
        with self._db.connection() as conn:
            conn.execute(
                """
                INSERT INTO accounts (
                    user_id, provider, access_token, refresh_token, expires_at,
                    scope, token_type, id_token, created_at, updated_at
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, provider) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = COALESCE(excluded.refresh_token, accounts.refresh_token),
                    expires_at = excluded.expires_at,
                    scope = excluded.scope,
                    token_type = excluded.token_type,
                    id_token = excluded.id_token,
                    updated_at = excluded.updated_at
                """,
                (
                    user_id,
                    provider,
                    access_token,
                    refresh_token,
                    expires_at,
                    scope,
                    token_type,
                    id_token,
                    now_iso,
                    now_iso,
                ),
            )

        record = self.find(user_id, provider)
        if record is None:
            raise CredentialStoreError("Failed to persist linked account.")
        return record


def _row_to_record(row: sqlite3.Row) -> CredentialRecord:
    return CredentialRecord(
        user_id=str(row["user_id"]),
        provider=str(row["provider"]),
        access_token=to_optional_text(row["access_token"]),
        refresh_token=to_optional_text(row["refresh_token"]),
        expires_at=to_optional_int(row["expires_at"]),
        scope=to_optional_text(row["scope"]),
        token_type=to_optional_text(row["token_type"]),
        id_token=to_optional_text(row["id_token"]),
    )
