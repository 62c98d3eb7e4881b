from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from backend.app.dependencies import get_dashboard_service, reset_cached_dependencies
from backend.app.main import create_app
from backend.app.repositories.audit_repository import AuditRepository
from backend.app.repositories.credential_repository import CredentialRepository
from backend.app.repositories.database import Database
from backend.app.repositories.notes_repository import NotesRepository
from backend.app.services.dashboard_service import DashboardService
from backend.app.services.google_tokens import GoogleTokenManager
from backend.app.services.youtube_gateway import YouTubeGateway
from tests.support import FIXED_NOW, FakeTransport

TOKEN_URL = "https://oauth2.test/token"
API_BASE_URL = "https://youtube.test/v3"


@pytest.fixture(autouse=True)
def _isolated_environment(  # pyright: ignore[reportUnusedFunction]
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[None]:
    monkeypatch.chdir(tmp_path)
    for name in [key for key in os.environ if key.startswith("TUBEDESK_")]:
        monkeypatch.delenv(name, raising=False)
    reset_cached_dependencies()
    yield
    reset_cached_dependencies()
    # configure_application_logging() detaches these loggers from the root logger.
    for name in ("tubedesk", "tubedesk.telemetry"):
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.propagate = True


@pytest.fixture
def database(tmp_path: Path) -> Database:
    db = Database(tmp_path / "state.db")
    db.initialize()
    return db


@pytest.fixture
def credential_repository(database: Database) -> CredentialRepository:
    return CredentialRepository(database)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def token_manager(
    credential_repository: CredentialRepository,
    transport: FakeTransport,
) -> GoogleTokenManager:
    return GoogleTokenManager(
        credential_repository,
        client_id="client-123",
        client_secret="secret-456",
        token_url=TOKEN_URL,
        transport=transport,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def gateway(token_manager: GoogleTokenManager, transport: FakeTransport) -> YouTubeGateway:
    return YouTubeGateway(token_manager, base_url=API_BASE_URL, transport=transport)


@pytest.fixture
def dashboard(gateway: YouTubeGateway, database: Database) -> DashboardService:
    return DashboardService(
        gateway=gateway,
        notes_repository=NotesRepository(database),
        audit_repository=AuditRepository(database),
    )


@pytest.fixture
def linked_user(credential_repository: CredentialRepository) -> str:
    credential_repository.link_account(
        "user-1",
        access_token="cached-access",
        refresh_token="refresh-1",
        expires_at=FIXED_NOW + 3600,
        scope="https://www.googleapis.com/auth/youtube.force-ssl",
        token_type="Bearer",
    )
    return "user-1"


@pytest.fixture
def client(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
    dashboard: DashboardService,
) -> Iterator[TestClient]:
    data_dir = tmp_path / "runtime-data"
    monkeypatch.setenv("TUBEDESK_DATA_DIR", str(data_dir))
    monkeypatch.setenv("TUBEDESK_GOOGLE_CLIENT_ID", "client-123")
    monkeypatch.setenv("TUBEDESK_GOOGLE_CLIENT_SECRET", "secret-456")
    reset_cached_dependencies()

    app = create_app()
    app.dependency_overrides[get_dashboard_service] = lambda: dashboard
    with TestClient(app) as test_client:
        yield test_client

    reset_cached_dependencies()
