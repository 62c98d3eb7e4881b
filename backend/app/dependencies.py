from __future__ import annotations

from functools import lru_cache
from typing import Annotated

from fastapi import Header, HTTPException

from backend.app.config import AppSettings, load_settings
from backend.app.repositories.audit_repository import AuditRepository
from backend.app.repositories.credential_repository import CredentialRepository
from backend.app.repositories.database import Database
from backend.app.repositories.notes_repository import NotesRepository
from backend.app.services.dashboard_service import DashboardService
from backend.app.services.google_tokens import GoogleTokenManager
from backend.app.services.youtube_gateway import YouTubeGateway
from backend.app.telemetry import TelemetryClient, build_telemetry_client


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    return load_settings()


@lru_cache(maxsize=1)
def get_database() -> Database:
    database = Database(get_settings().db_path)
    database.initialize()
    return database


@lru_cache(maxsize=1)
def get_telemetry() -> TelemetryClient:
    settings = get_settings()
    return build_telemetry_client(
        enabled=settings.telemetry_enabled,
        sink=settings.telemetry_sink,
    )


@lru_cache(maxsize=1)
def get_dashboard_service() -> DashboardService:
    settings = get_settings()
    database = get_database()
    telemetry = get_telemetry()

    # load_settings() has already rejected a missing client id/secret.
    token_manager = GoogleTokenManager(
        CredentialRepository(database),
        client_id=settings.google_client_id or "",
        client_secret=settings.google_client_secret or "",
        token_url=settings.google_token_url,
        refresh_margin_seconds=settings.token_refresh_margin_seconds,
        http_timeout_seconds=settings.http_timeout_seconds,
        telemetry=telemetry,
    )
    return DashboardService(
        gateway=YouTubeGateway(
            token_manager,
            base_url=settings.youtube_api_base_url,
            http_timeout_seconds=settings.http_timeout_seconds,
            telemetry=telemetry,
        ),
        notes_repository=NotesRepository(database),
        audit_repository=AuditRepository(database),
        comments_page_size=settings.comments_page_size,
    )


def get_current_user_id(
    x_user_id: Annotated[str | None, Header()] = None,
) -> str:
    # Sessions are owned by the identity provider in front of this API.
    user_id = x_user_id.strip() if isinstance(x_user_id, str) else ""
    if not user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-ID header.")
    return user_id


def reset_cached_dependencies() -> None:
    get_dashboard_service.cache_clear()
    get_telemetry.cache_clear()
    get_database.cache_clear()
    get_settings.cache_clear()
