from __future__ import annotations

import json
import logging
import sqlite3
import time
from collections.abc import Callable
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, ValidationError

from backend.app.repositories.credential_repository import (
    GOOGLE_PROVIDER,
    CredentialRecord,
    CredentialRepository,
    CredentialStoreError,
)
from backend.app.services.http_transport import (
    HttpTransport,
    HttpTransportError,
    send_http_request,
)
from backend.app.services.youtube_errors import (
    AccountNotLinkedError,
    MissingRefreshTokenError,
    TokenRefreshFailedError,
    UnknownYouTubeError,
)
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("tubedesk.google_tokens")

DEFAULT_TOKEN_URL = "https://oauth2.googleapis.com/token"
DEFAULT_REFRESH_MARGIN_SECONDS = 60


class TokenResponse(BaseModel):
    model_config = ConfigDict(extra="ignore")

    access_token: str
    expires_in: int = 0
    scope: str | None = None
    token_type: str | None = None
    id_token: str | None = None


class GoogleTokenManager:
    """
    Hands out a currently valid Google access token for a user.

    Cached tokens are reused while they stay valid past the refresh margin.
    Otherwise the stored refresh token is exchanged at the token endpoint and
    the result is written back to the credential store before it is returned.
    There is no lock around the read/refresh/write sequence: two concurrent
    refreshes for one user both succeed and the last write wins.
    """

    def __init__(
        self,
        credential_repository: CredentialRepository,
        *,
        client_id: str,
        client_secret: str,
        token_url: str = DEFAULT_TOKEN_URL,
        refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS,
        http_timeout_seconds: float = 30.0,
        transport: HttpTransport = send_http_request,
        clock: Callable[[], float] = time.time,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._credential_repository = credential_repository
        self._client_id = client_id
        self._client_secret = client_secret
        self._token_url = token_url
        self._refresh_margin_seconds = max(0, int(refresh_margin_seconds))
        self._http_timeout_seconds = max(1.0, float(http_timeout_seconds))
        self._transport = transport
        self._clock = clock
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def get_access_token(self, user_id: str) -> str:
        try:
            record = self._credential_repository.find(user_id, GOOGLE_PROVIDER)
        except sqlite3.Error as exc:
            LOGGER.error("credential lookup failed user_id=%s", user_id, exc_info=True)
            raise UnknownYouTubeError(f"Credential store unavailable: {exc}") from exc
        if record is None:
            raise AccountNotLinkedError(
                "Google account not linked. Please sign in with Google."
            )

        now = self._now()
        if self._is_cached_token_usable(record, now=now):
            assert record.access_token is not None
            return record.access_token

        if record.refresh_token is None:
            raise MissingRefreshTokenError(
                "Missing refresh token. Re-connect Google with consent."
            )

        token = self._refresh(record.refresh_token)
        # Recompute "now" after the round trip so expires_at never overshoots.
        expires_at = self._now() + token.expires_in
        try:
            self._credential_repository.update(
                user_id,
                GOOGLE_PROVIDER,
                access_token=token.access_token,
                expires_at=expires_at,
                scope=token.scope,
                token_type=token.token_type,
                id_token=token.id_token,
            )
        except (sqlite3.Error, CredentialStoreError) as exc:
            LOGGER.error("refreshed token could not be stored user_id=%s", user_id, exc_info=True)
            raise TokenRefreshFailedError(
                f"Failed to store refreshed token: {exc}"
            ) from exc
        LOGGER.info(
            "google token refreshed user_id=%s expires_in=%s",
            user_id,
            token.expires_in,
        )
        return token.access_token

    def _is_cached_token_usable(self, record: CredentialRecord, *, now: int) -> bool:
        if not record.access_token or record.expires_at is None:
            return False
        return record.expires_at > now + self._refresh_margin_seconds

    def _refresh(self, refresh_token: str) -> TokenResponse:
        form_body = urlencode(
            {
                "client_id": self._client_id,
                "client_secret": self._client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        ).encode("utf-8")

        try:
            response = self._transport(
                method="POST",
                url=self._token_url,
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                body=form_body,
                timeout_seconds=self._http_timeout_seconds,
            )
        except HttpTransportError as exc:
            self._telemetry.emit("google.token.refresh", outcome="transport_error")
            raise TokenRefreshFailedError(f"Failed to refresh token: {exc}") from exc

        self._telemetry.emit(
            "google.token.refresh",
            outcome="ok" if response.ok else "rejected",
            status_code=response.status_code,
        )
        if not response.ok:
            LOGGER.warning(
                "google token refresh rejected status=%s",
                response.status_code,
            )
            raise TokenRefreshFailedError(
                f"Failed to refresh token: {response.status_code} {response.body}",
                status_code=response.status_code,
                body=response.body,
            )

        try:
            return TokenResponse.model_validate(json.loads(response.body))
        except (json.JSONDecodeError, ValidationError) as exc:
            raise TokenRefreshFailedError(
                f"Failed to refresh token: malformed token response ({exc.__class__.__name__})",
                status_code=response.status_code,
                body=response.body,
            ) from exc

    def _now(self) -> int:
        return int(self._clock())
