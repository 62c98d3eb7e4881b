from __future__ import annotations

import pytest

from backend.app.services.video_ids import (
    InvalidVideoReferenceError,
    build_embed_url,
    build_thumbnail_url,
    extract_video_id,
    resolve_video_id,
)


@pytest.mark.parametrize(
    "raw_value",
    [
        "dQw4w9WgXcQ",
        "  dQw4w9WgXcQ  ",
        "https://youtu.be/dQw4w9WgXcQ",
        "https://youtu.be/dQw4w9WgXcQ?t=42",
        "https://www.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://youtube.com/watch/?v=dQw4w9WgXcQ&list=PL1",
        "https://m.youtube.com/watch?v=dQw4w9WgXcQ",
        "https://WWW.YOUTUBE.COM/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/shorts/dQw4w9WgXcQ",
        "https://www.youtube.com/embed/dQw4w9WgXcQ",
        "https://www.youtube.com/live/dQw4w9WgXcQ?feature=share",
    ],
)
def test_extract_video_id_supported_forms(raw_value: str) -> None:
    assert extract_video_id(raw_value) == "dQw4w9WgXcQ"


@pytest.mark.parametrize(
    "raw_value",
    [
        "",
        "   ",
        None,
        "https://example.com",
        "https://example.com/watch?v=dQw4w9WgXcQ",
        "https://www.youtube.com/",
        "https://www.youtube.com/watch",
        "https://www.youtube.com/channel/UC123",
        "not a video id!",
    ],
)
def test_extract_video_id_rejects_unrelated_input(raw_value: str | None) -> None:
    assert extract_video_id(raw_value) is None


def test_extract_video_id_is_idempotent() -> None:
    extracted = extract_video_id("https://www.youtube.com/shorts/dQw4w9WgXcQ")

    assert extract_video_id(extracted) == extracted


def test_resolve_video_id_rejects_unknown_urls() -> None:
    with pytest.raises(InvalidVideoReferenceError):
        resolve_video_id("https://example.com/video")


def test_resolve_video_id_falls_back_to_trimmed_input() -> None:
    assert resolve_video_id("https://youtu.be/dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert resolve_video_id(" odd id value ") == "odd id value"


def test_thumbnail_and_embed_urls() -> None:
    assert build_thumbnail_url("dQw4w9WgXcQ") == "https://i.ytimg.com/vi/dQw4w9WgXcQ/hqdefault.jpg"
    assert build_thumbnail_url("dQw4w9WgXcQ", "max") == (
        "https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg"
    )
    assert build_embed_url("dQw4w9WgXcQ") == "https://www.youtube.com/embed/dQw4w9WgXcQ"
