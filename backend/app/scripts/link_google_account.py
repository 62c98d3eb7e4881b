from __future__ import annotations

import argparse
import json
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, cast

from backend.app.config import load_settings
from backend.app.repositories.common import to_optional_int, to_optional_text
from backend.app.repositories.credential_repository import (
    GOOGLE_PROVIDER,
    CredentialRepository,
)
from backend.app.repositories.database import Database


class TokenFileError(ValueError):
    pass


@dataclass(frozen=True)
class LinkedTokens:
    access_token: str | None
    refresh_token: str | None
    expires_at: int | None
    scope: str | None
    token_type: str | None
    id_token: str | None


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Store a Google OAuth token pair for a tubedesk user.",
    )
    parser.add_argument("--user-id", required=True, help="Stable user identifier.")
    parser.add_argument(
        "--token-file",
        type=Path,
        required=True,
        help=(
            "Token JSON: either a google-auth authorized-user file "
            "(token/refresh_token/expiry/scopes) or a raw token endpoint response."
        ),
    )
    return parser.parse_args()


def load_token_file(path: Path, *, now: float | None = None) -> LinkedTokens:
    resolved = path.expanduser().resolve()
    if not resolved.is_file():
        raise TokenFileError(f"Token file does not exist: {resolved}")

    try:
        parsed = json.loads(resolved.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise TokenFileError(f"Token file is not valid JSON: {resolved}") from exc
    if not isinstance(parsed, dict):
        raise TokenFileError("Token file must contain a JSON object.")
    payload = cast(dict[str, Any], parsed)

    refresh_token = to_optional_text(payload.get("refresh_token"))
    access_token = to_optional_text(payload.get("access_token")) or to_optional_text(
        payload.get("token")
    )
    if refresh_token is None and access_token is None:
        raise TokenFileError("Token file has neither an access token nor a refresh token.")

    return LinkedTokens(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_at=_resolve_expires_at(payload, now=time.time() if now is None else now),
        scope=_resolve_scope(payload),
        token_type=to_optional_text(payload.get("token_type")),
        id_token=to_optional_text(payload.get("id_token")),
    )


def _resolve_expires_at(payload: dict[str, Any], *, now: float) -> int | None:
    expires_at = to_optional_int(payload.get("expires_at"))
    if expires_at is not None:
        return expires_at

    expires_in = to_optional_int(payload.get("expires_in"))
    if expires_in is not None:
        return int(now) + expires_in

    raw_expiry = to_optional_text(payload.get("expiry"))
    if raw_expiry is None:
        return None
    try:
        expiry = datetime.fromisoformat(raw_expiry.replace("Z", "+00:00"))
    except ValueError as exc:
        raise TokenFileError(f"Unrecognized expiry timestamp: {raw_expiry}") from exc
    if expiry.tzinfo is None:
        expiry = expiry.replace(tzinfo=UTC)
    return int(expiry.timestamp())


def _resolve_scope(payload: dict[str, Any]) -> str | None:
    scope = to_optional_text(payload.get("scope"))
    if scope is not None:
        return scope
    raw_scopes = payload.get("scopes")
    if isinstance(raw_scopes, list):
        scopes = [item for item in cast(list[object], raw_scopes) if isinstance(item, str)]
        return " ".join(scopes) or None
    return None


def link_account(repository: CredentialRepository, *, user_id: str, tokens: LinkedTokens) -> None:
    repository.link_account(
        user_id,
        GOOGLE_PROVIDER,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_at=tokens.expires_at,
        scope=tokens.scope,
        token_type=tokens.token_type,
        id_token=tokens.id_token,
    )


def main() -> None:
    args = _parse_args()
    settings = load_settings(validate_oauth_client=False)
    tokens = load_token_file(args.token_file)

    database = Database(settings.db_path)
    database.initialize()
    repository = CredentialRepository(database)
    link_account(repository, user_id=args.user_id, tokens=tokens)

    record = repository.find(args.user_id, GOOGLE_PROVIDER)
    assert record is not None
    print(f"Linked Google account for user {record.user_id} in {settings.db_path}")
    print(f"Refresh token stored: {'yes' if record.refresh_token else 'no'}")
    if record.expires_at is not None:
        expires = datetime.fromtimestamp(record.expires_at, tz=UTC).isoformat()
        print(f"Access token expires at: {expires}")


if __name__ == "__main__":
    main()
