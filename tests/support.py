from __future__ import annotations

import json
from collections import deque
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from backend.app.services.http_transport import HttpResponse

FIXED_NOW = 1_700_000_000


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    url: str
    headers: dict[str, str]
    body: bytes | None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path

    @property
    def query(self) -> dict[str, str]:
        return dict(parse_qsl(urlsplit(self.url).query, keep_blank_values=True))

    def json_body(self) -> Any:
        assert self.body is not None
        return json.loads(self.body.decode("utf-8"))

    def form_body(self) -> dict[str, str]:
        assert self.body is not None
        return dict(parse_qsl(self.body.decode("utf-8")))


class FakeTransport:
    """Replays queued responses and records every outbound request."""

    def __init__(self) -> None:
        self.requests: list[RecordedRequest] = []
        self._responses: deque[HttpResponse | Exception] = deque()

    def queue(self, status_code: int, payload: Any = None, *, raw_body: str | None = None) -> None:
        if raw_body is None:
            raw_body = "" if payload is None else json.dumps(payload)
        self._responses.append(HttpResponse(status_code=status_code, body=raw_body))

    def fail_with(self, exc: Exception) -> None:
        self._responses.append(exc)

    def __call__(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> HttpResponse:
        _ = timeout_seconds
        self.requests.append(
            RecordedRequest(method=method, url=url, headers=dict(headers), body=body)
        )
        if not self._responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        response = self._responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


class CapturingTelemetrySink:
    def __init__(self) -> None:
        self.events: list[tuple[str, dict[str, Any]]] = []

    def emit(self, *, event_name: str, attributes: Mapping[str, Any]) -> None:
        self.events.append((event_name, dict(attributes)))
