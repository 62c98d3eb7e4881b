from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

USER_AGENT = "tubedesk/0.1"


@dataclass(frozen=True)
class HttpResponse:
    status_code: int
    body: str

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransportError(RuntimeError):
    pass


class HttpTransport(Protocol):
    def __call__(
        self,
        *,
        method: str,
        url: str,
        headers: Mapping[str, str],
        body: bytes | None,
        timeout_seconds: float,
    ) -> HttpResponse:
        ...


def send_http_request(
    *,
    method: str,
    url: str,
    headers: Mapping[str, str],
    body: bytes | None,
    timeout_seconds: float,
) -> HttpResponse:
    """Issue one request; non-2xx statuses are returned, not raised."""
    request = Request(
        url,
        data=body,
        headers={"user-agent": USER_AGENT, **dict(headers)},
        method=method,
    )

    try:
        with urlopen(request, timeout=timeout_seconds) as response:
            status_code = int(response.getcode() or 0)
            raw_body = response.read().decode("utf-8", errors="replace")
    except HTTPError as exc:
        status_code = int(exc.code)
        raw_body = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
    except (URLError, TimeoutError, OSError) as exc:
        reason = getattr(exc, "reason", exc)
        raise HttpTransportError(f"{method} {url} failed: {reason}") from exc

    return HttpResponse(status_code=status_code, body=raw_body)
