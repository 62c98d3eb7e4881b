from __future__ import annotations

import re
from typing import Literal
from urllib.parse import parse_qs, urlparse

_VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,15}$")
_URL_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
_PATH_ID_PREFIXES: frozenset[str] = frozenset({"shorts", "embed", "live"})

ThumbnailQuality = Literal["default", "mq", "hq", "sd", "max"]
_THUMBNAIL_FILES: dict[str, str] = {
    "default": "default",
    "mq": "mqdefault",
    "hq": "hqdefault",
    "sd": "sddefault",
    "max": "maxresdefault",
}


class InvalidVideoReferenceError(ValueError):
    pass


def extract_video_id(raw_value: str | None) -> str | None:
    """
    Pull a video id out of a bare id or any common YouTube URL form.

    Accepts ``watch?v=``, ``youtu.be/<id>``, ``/shorts/<id>``, ``/embed/<id>``
    and ``/live/<id>``. Returns ``None`` for anything else.
    """
    raw = (raw_value or "").strip()
    if not raw:
        return None
    if _VIDEO_ID_PATTERN.match(raw):
        return raw

    try:
        parsed = urlparse(raw)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.hostname:
        return None

    host = parsed.hostname.lower().removeprefix("www.")
    segments = [segment for segment in parsed.path.split("/") if segment]

    if host == "youtu.be":
        return segments[0] if segments else None

    if host == "youtube.com" or host.endswith(".youtube.com"):
        if segments == ["watch"]:
            values = parse_qs(parsed.query).get("v")
            return values[0] if values else None
        if len(segments) >= 2 and segments[0] in _PATH_ID_PREFIXES:
            return segments[1]

    return None


def resolve_video_id(raw_value: str) -> str:
    extracted = extract_video_id(raw_value)
    if extracted is not None:
        return extracted
    if _URL_SCHEME_PATTERN.match(raw_value.strip()):
        raise InvalidVideoReferenceError("Invalid YouTube URL")
    return raw_value.strip()


def build_thumbnail_url(video_id: str, quality: ThumbnailQuality = "hq") -> str:
    file_name = _THUMBNAIL_FILES.get(quality, _THUMBNAIL_FILES["hq"])
    return f"https://i.ytimg.com/vi/{video_id}/{file_name}.jpg"


def build_embed_url(video_id: str) -> str:
    return f"https://www.youtube.com/embed/{video_id}"
