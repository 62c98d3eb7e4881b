from __future__ import annotations

from enum import StrEnum


class YouTubeErrorKind(StrEnum):
    ACCOUNT_NOT_LINKED = "account_not_linked"
    MISSING_REFRESH_TOKEN = "missing_refresh_token"
    TOKEN_REFRESH_FAILED = "token_refresh_failed"
    COMMENTS_DISABLED = "comments_disabled"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNKNOWN = "unknown"


USER_MESSAGES: dict[YouTubeErrorKind, str] = {
    YouTubeErrorKind.ACCOUNT_NOT_LINKED: "Google account not linked. Please sign in with Google.",
    YouTubeErrorKind.MISSING_REFRESH_TOKEN: "Missing refresh token. Re-connect Google with consent.",
    YouTubeErrorKind.TOKEN_REFRESH_FAILED: "Failed to refresh your Google credentials.",
    YouTubeErrorKind.COMMENTS_DISABLED: "Comments are disabled for this video",
    YouTubeErrorKind.FORBIDDEN: (
        "Access denied. Please check your permissions or try signing in again."
    ),
    YouTubeErrorKind.NOT_FOUND: "Video not found or is private",
    YouTubeErrorKind.QUOTA_EXCEEDED: "YouTube API quota exceeded. Please try again later.",
    YouTubeErrorKind.UNKNOWN: "An error occurred while communicating with YouTube API",
}

_COMMENTS_DISABLED_MARKERS: tuple[str, ...] = ("commentsdisabled",)
_QUOTA_MARKERS: tuple[str, ...] = ("quotaexceeded", "dailylimitexceeded")


class YouTubeError(Exception):
    kind: YouTubeErrorKind = YouTubeErrorKind.UNKNOWN

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def user_message(self) -> str:
        return USER_MESSAGES[self.kind]


class AccountNotLinkedError(YouTubeError):
    kind = YouTubeErrorKind.ACCOUNT_NOT_LINKED


class MissingRefreshTokenError(YouTubeError):
    kind = YouTubeErrorKind.MISSING_REFRESH_TOKEN


class TokenRefreshFailedError(YouTubeError):
    kind = YouTubeErrorKind.TOKEN_REFRESH_FAILED

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message, status_code=status_code)
        self.body = body


class CommentsDisabledError(YouTubeError):
    kind = YouTubeErrorKind.COMMENTS_DISABLED


class ForbiddenError(YouTubeError):
    kind = YouTubeErrorKind.FORBIDDEN


class NotFoundError(YouTubeError):
    kind = YouTubeErrorKind.NOT_FOUND


class QuotaExceededError(YouTubeError):
    kind = YouTubeErrorKind.QUOTA_EXCEEDED


class UnknownYouTubeError(YouTubeError):
    kind = YouTubeErrorKind.UNKNOWN


class YouTubeHttpError(Exception):
    """Raw non-2xx response from the YouTube Data API, before classification."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"YouTube API error {status_code}: {body}")
        self.status_code = status_code
        self.body = body


def classify_error(exc: BaseException) -> YouTubeError:
    if isinstance(exc, YouTubeError):
        return exc

    message = str(exc)
    if not isinstance(exc, YouTubeHttpError):
        return UnknownYouTubeError(message or type(exc).__name__)

    status_code = exc.status_code
    normalized_body = exc.body.lower()

    if status_code == 403 and _has_marker(normalized_body, _COMMENTS_DISABLED_MARKERS):
        return CommentsDisabledError(message, status_code=status_code)
    # Google reports quota exhaustion as a 403, so this must run before the generic 403 case.
    if _has_marker(normalized_body, _QUOTA_MARKERS):
        return QuotaExceededError(message, status_code=status_code)
    if status_code == 403:
        return ForbiddenError(message, status_code=status_code)
    if status_code == 404:
        return NotFoundError(message, status_code=status_code)
    return UnknownYouTubeError(message, status_code=status_code)


def _has_marker(normalized_body: str, markers: tuple[str, ...]) -> bool:
    return any(marker in normalized_body for marker in markers)
