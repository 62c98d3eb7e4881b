from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from backend.app.services.video_ids import InvalidVideoReferenceError
from backend.app.services.youtube_errors import YouTubeError, YouTubeErrorKind

LOGGER = logging.getLogger("tubedesk.api")

ERROR_STATUS_CODES: dict[YouTubeErrorKind, int] = {
    YouTubeErrorKind.ACCOUNT_NOT_LINKED: 401,
    YouTubeErrorKind.MISSING_REFRESH_TOKEN: 401,
    YouTubeErrorKind.TOKEN_REFRESH_FAILED: 502,
    YouTubeErrorKind.COMMENTS_DISABLED: 403,
    YouTubeErrorKind.FORBIDDEN: 403,
    YouTubeErrorKind.NOT_FOUND: 404,
    YouTubeErrorKind.QUOTA_EXCEEDED: 429,
    YouTubeErrorKind.UNKNOWN: 502,
}


def youtube_error_response(_: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, YouTubeError)
    status_code = ERROR_STATUS_CODES[exc.kind]
    if status_code >= 500:
        LOGGER.error("youtube call failed kind=%s error=%s", exc.kind, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.user_message, "kind": str(exc.kind)},
    )


def invalid_video_reference_response(_: Request, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "kind": "invalid_video_reference"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(YouTubeError, youtube_error_response)
    app.add_exception_handler(InvalidVideoReferenceError, invalid_video_reference_response)
