from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query
from structlog.contextvars import bind_contextvars, reset_contextvars

from backend.app.dependencies import get_current_user_id, get_dashboard_service
from backend.app.models.dashboard_contracts import (
    ActivityEvent,
    ChannelIdResponse,
    CommentCreateRequest,
    CommentReplyRequest,
    CommentUpdateRequest,
    ErrorResponse,
    NoteResponse,
    NoteUpsertRequest,
    OkResponse,
    VideoLinksResponse,
    VideoUpdateRequest,
)
from backend.app.repositories.notes_repository import VideoNote
from backend.app.services.dashboard_service import DashboardService
from backend.app.services.video_ids import (
    build_embed_url,
    build_thumbnail_url,
    resolve_video_id,
)

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status_code: {"model": ErrorResponse} for status_code in (400, 401, 403, 404, 429, 502)
}

router = APIRouter(responses=ERROR_RESPONSES)

UserId = Annotated[str, Depends(get_current_user_id)]
Service = Annotated[DashboardService, Depends(get_dashboard_service)]
VideoRef = Annotated[
    str,
    Query(alias="video", min_length=3, description="Video id or any supported YouTube URL."),
]


def _bind_user(user_id: str) -> dict[str, Any]:
    return bind_contextvars(user_id=user_id)


def _note_response(note: VideoNote) -> NoteResponse:
    return NoteResponse(
        video_id=note.video_id,
        content=note.content,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


@router.get("/youtube/video", tags=["youtube"], operation_id="youtube_fetch_video")
def fetch_video(user_id: UserId, service: Service, video: VideoRef) -> dict[str, Any] | None:
    context_tokens = _bind_user(user_id)
    try:
        return service.fetch_video(user_id, video)
    finally:
        reset_contextvars(**context_tokens)


@router.put("/youtube/video", tags=["youtube"], operation_id="youtube_update_video")
def update_video(
    request: VideoUpdateRequest,
    user_id: UserId,
    service: Service,
    video: VideoRef,
) -> dict[str, Any]:
    context_tokens = _bind_user(user_id)
    try:
        return service.update_video(
            user_id,
            video,
            title=request.title,
            description=request.description,
        )
    finally:
        reset_contextvars(**context_tokens)


@router.get(
    "/youtube/video/links",
    response_model=VideoLinksResponse,
    tags=["youtube"],
    operation_id="youtube_video_links",
)
def video_links(video: VideoRef) -> VideoLinksResponse:
    video_id = resolve_video_id(video)
    return VideoLinksResponse(
        video_id=video_id,
        embed_url=build_embed_url(video_id),
        thumbnail_url=build_thumbnail_url(video_id),
    )


@router.get("/youtube/comments", tags=["youtube"], operation_id="youtube_list_comments")
def list_comments(
    user_id: UserId,
    service: Service,
    video: VideoRef,
    page_token: Annotated[str | None, Query()] = None,
) -> dict[str, Any]:
    context_tokens = _bind_user(user_id)
    try:
        return service.list_comments(user_id, video, page_token=page_token)
    finally:
        reset_contextvars(**context_tokens)


@router.post("/youtube/comments", tags=["youtube"], operation_id="youtube_add_comment")
def add_comment(
    request: CommentCreateRequest,
    user_id: UserId,
    service: Service,
) -> dict[str, Any]:
    context_tokens = _bind_user(user_id)
    try:
        return service.add_comment(user_id, request.video_id, request.text)
    finally:
        reset_contextvars(**context_tokens)


@router.post(
    "/youtube/comments/replies",
    tags=["youtube"],
    operation_id="youtube_reply_to_comment",
)
def reply_to_comment(
    request: CommentReplyRequest,
    user_id: UserId,
    service: Service,
) -> dict[str, Any]:
    context_tokens = _bind_user(user_id)
    try:
        return service.reply_to_comment(user_id, request.parent_id, request.text)
    finally:
        reset_contextvars(**context_tokens)


@router.put(
    "/youtube/comments/{comment_id}",
    tags=["youtube"],
    operation_id="youtube_update_comment",
)
def update_comment(
    comment_id: str,
    request: CommentUpdateRequest,
    user_id: UserId,
    service: Service,
) -> dict[str, Any]:
    context_tokens = _bind_user(user_id)
    try:
        return service.update_comment(user_id, comment_id, request.text)
    finally:
        reset_contextvars(**context_tokens)


@router.delete(
    "/youtube/comments/{comment_id}",
    response_model=OkResponse,
    tags=["youtube"],
    operation_id="youtube_delete_comment",
)
def delete_comment(comment_id: str, user_id: UserId, service: Service) -> OkResponse:
    context_tokens = _bind_user(user_id)
    try:
        service.delete_comment(user_id, comment_id)
    finally:
        reset_contextvars(**context_tokens)
    return OkResponse()


@router.get(
    "/youtube/me/channel-id",
    response_model=ChannelIdResponse,
    tags=["youtube"],
    operation_id="youtube_my_channel_id",
)
def my_channel_id(user_id: UserId, service: Service) -> ChannelIdResponse:
    context_tokens = _bind_user(user_id)
    try:
        return ChannelIdResponse(channel_id=service.get_my_channel_id(user_id))
    finally:
        reset_contextvars(**context_tokens)


@router.get(
    "/notes",
    response_model=NoteResponse | None,
    tags=["notes"],
    operation_id="notes_get",
)
def get_note(user_id: UserId, service: Service, video: VideoRef) -> NoteResponse | None:
    note = service.get_note(user_id, video)
    return _note_response(note) if note is not None else None


@router.put("/notes", response_model=NoteResponse, tags=["notes"], operation_id="notes_upsert")
def upsert_note(
    request: NoteUpsertRequest,
    user_id: UserId,
    service: Service,
    video: VideoRef,
) -> NoteResponse:
    return _note_response(service.save_note(user_id, video, request.content))


@router.delete("/notes", response_model=OkResponse, tags=["notes"], operation_id="notes_delete")
def delete_note(user_id: UserId, service: Service, video: VideoRef) -> OkResponse:
    service.delete_note(user_id, video)
    return OkResponse()


@router.get(
    "/activity",
    response_model=list[ActivityEvent],
    tags=["activity"],
    operation_id="activity_list",
)
def list_activity(
    user_id: UserId,
    service: Service,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[ActivityEvent]:
    return [
        ActivityEvent(
            event_id=event.event_id,
            action=event.action,
            status=event.status,
            video_id=event.video_id,
            target_type=event.target_type,
            target_id=event.target_id,
            message=event.message,
            metadata=event.metadata,
            created_at=event.created_at,
        )
        for event in service.recent_activity(user_id, limit=limit)
    ]
