from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any, cast
from urllib.parse import urlencode

from backend.app.services.google_tokens import GoogleTokenManager
from backend.app.services.http_transport import (
    HttpTransport,
    HttpTransportError,
    send_http_request,
)
from backend.app.services.youtube_errors import (
    UnknownYouTubeError,
    YouTubeHttpError,
    classify_error,
)
from backend.app.telemetry import TelemetryClient

LOGGER = logging.getLogger("tubedesk.youtube")

DEFAULT_API_BASE_URL = "https://www.googleapis.com/youtube/v3"
VIDEO_DETAIL_PARTS = "snippet,statistics,contentDetails,status"

QueryValue = str | int | float | bool | None


class YouTubeGateway:
    def __init__(
        self,
        token_manager: GoogleTokenManager,
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        http_timeout_seconds: float = 30.0,
        transport: HttpTransport = send_http_request,
        telemetry: TelemetryClient | None = None,
    ) -> None:
        self._token_manager = token_manager
        self._base_url = base_url.rstrip("/")
        self._http_timeout_seconds = max(1.0, float(http_timeout_seconds))
        self._transport = transport
        self._telemetry = telemetry if telemetry is not None else TelemetryClient.disabled()

    def call(
        self,
        user_id: str,
        path: str,
        *,
        method: str = "GET",
        query: Mapping[str, QueryValue] | None = None,
        body: Any = None,
    ) -> dict[str, Any]:
        """
        Issue one authorized YouTube Data API request and return its JSON body.

        Token lifecycle errors propagate unchanged. Every other failure is
        classified into a ``YouTubeError`` before it leaves this method.
        """
        access_token = self._token_manager.get_access_token(user_id)

        url = build_request_url(self._base_url, path, query)
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        payload: bytes | None = None
        if body is not None:
            payload = json.dumps(body, ensure_ascii=True).encode("utf-8")
            headers["Content-Type"] = "application/json"

        with self._telemetry.timed("youtube.api.call", method=method, path=path) as call_info:
            try:
                response = self._transport(
                    method=method,
                    url=url,
                    headers=headers,
                    body=payload,
                    timeout_seconds=self._http_timeout_seconds,
                )
            except HttpTransportError as exc:
                call_info["outcome"] = "transport_error"
                LOGGER.warning(
                    "youtube request failed method=%s path=%s", method, path, exc_info=True
                )
                raise UnknownYouTubeError(str(exc)) from exc
            call_info["status_code"] = response.status_code
            call_info["outcome"] = "ok" if response.ok else "error"

        if not response.ok:
            raw_error = YouTubeHttpError(response.status_code, response.body)
            classified = classify_error(raw_error)
            LOGGER.warning(
                "youtube request rejected method=%s path=%s status=%s kind=%s",
                method,
                path,
                response.status_code,
                classified.kind,
            )
            raise classified from raw_error

        try:
            return _decode_json_object(response.body)
        except json.JSONDecodeError as exc:
            raise UnknownYouTubeError(
                f"YouTube API returned a non-JSON body for {method} {path}",
                status_code=response.status_code,
            ) from exc

    def get_video(
        self,
        user_id: str,
        video_id: str,
        *,
        part: str = VIDEO_DETAIL_PARTS,
    ) -> dict[str, Any] | None:
        data = self.call(user_id, "/videos", query={"part": part, "id": video_id})
        items = _as_list(data.get("items"))
        if not items:
            return None
        return _as_dict(items[0])

    def update_video(
        self,
        user_id: str,
        video_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
    ) -> dict[str, Any]:
        # PUT replaces the whole snippet, so required fields like categoryId are carried over.
        current = self.get_video(user_id, video_id, part="snippet")
        snippet = _as_dict(current.get("snippet")) if current is not None else {}
        if title is not None:
            snippet["title"] = title
        if description is not None:
            snippet["description"] = description
        return self.call(
            user_id,
            "/videos",
            method="PUT",
            query={"part": "snippet"},
            body={"id": video_id, "snippet": snippet},
        )

    def list_comment_threads(
        self,
        user_id: str,
        video_id: str,
        *,
        page_token: str | None = None,
        max_results: int = 50,
    ) -> dict[str, Any]:
        return self.call(
            user_id,
            "/commentThreads",
            query={
                "part": "snippet,replies",
                "videoId": video_id,
                "maxResults": max_results,
                "textFormat": "plainText",
                "order": "time",
                "pageToken": page_token,
            },
        )

    def add_comment(self, user_id: str, video_id: str, text: str) -> dict[str, Any]:
        return self.call(
            user_id,
            "/commentThreads",
            method="POST",
            query={"part": "snippet"},
            body={
                "snippet": {
                    "videoId": video_id,
                    "topLevelComment": {"snippet": {"textOriginal": text}},
                }
            },
        )

    def reply_to_comment(self, user_id: str, parent_id: str, text: str) -> dict[str, Any]:
        return self.call(
            user_id,
            "/comments",
            method="POST",
            query={"part": "snippet"},
            body={"snippet": {"parentId": parent_id, "textOriginal": text}},
        )

    def update_comment(self, user_id: str, comment_id: str, text: str) -> dict[str, Any]:
        return self.call(
            user_id,
            "/comments",
            method="PUT",
            query={"part": "snippet"},
            body={"id": comment_id, "snippet": {"textOriginal": text}},
        )

    def delete_comment(self, user_id: str, comment_id: str) -> None:
        self.call(user_id, "/comments", method="DELETE", query={"id": comment_id})

    def get_my_channel_id(self, user_id: str) -> str | None:
        data = self.call(user_id, "/channels", query={"part": "id", "mine": True})
        items = _as_list(data.get("items"))
        if not items:
            return None
        channel_id = _as_dict(items[0]).get("id")
        return channel_id if isinstance(channel_id, str) and channel_id else None


def build_request_url(
    base_url: str,
    path: str,
    query: Mapping[str, QueryValue] | None,
) -> str:
    url = f"{base_url}{path}"
    if not query:
        return url
    params = [(key, _encode_query_value(value)) for key, value in query.items() if value is not None]
    if not params:
        return url
    return f"{url}?{urlencode(params)}"


def _encode_query_value(value: str | int | float | bool) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _decode_json_object(raw_body: str) -> dict[str, Any]:
    if not raw_body.strip():
        return {}
    parsed = json.loads(raw_body)
    return _as_dict(parsed)


def _as_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        raw_dict = cast(dict[object, object], value)
        converted: dict[str, Any] = {}
        for key, item in raw_dict.items():
            if isinstance(key, str):
                converted[key] = item
        return converted
    return {}


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, list):
        raw_list = cast(list[Any], value)
        return list(raw_list)
    return []
