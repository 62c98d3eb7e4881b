from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class VideoUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    description: str | None = None


class CommentCreateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    video_id: str = Field(min_length=3, description="Video id or any supported YouTube URL.")
    text: str = Field(min_length=1)


class CommentReplyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    parent_id: str = Field(min_length=3)
    text: str = Field(min_length=1)


class CommentUpdateRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    text: str = Field(min_length=1)


class NoteUpsertRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1)


class NoteResponse(BaseModel):
    video_id: str
    content: str
    created_at: str
    updated_at: str


class ChannelIdResponse(BaseModel):
    channel_id: str | None


class VideoLinksResponse(BaseModel):
    video_id: str
    embed_url: str
    thumbnail_url: str


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    detail: str
    kind: str


class ActivityEvent(BaseModel):
    event_id: str
    action: str
    status: str
    video_id: str | None = None
    target_type: str | None = None
    target_id: str | None = None
    message: str | None = None
    metadata: dict[str, Any] | None = None
    created_at: str
