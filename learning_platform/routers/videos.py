"""Video lessons hosted on an external streaming service."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import User, Video, utcnow
from learning_platform.schemas import VideoCreate, VideoUpdate
from learning_platform.utils import get_pagination_params, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_video(session: Session, video_id: int) -> Video:
    video = session.get(Video, video_id)
    if not video:
        raise NotFound("Video not found")
    return video


def _get_owned(session: Session, video_id: int, user: User) -> Video:
    video = _get_video(session, video_id)
    if video.uploaded_by != user.uid:
        raise Forbidden("You can only change your own videos")
    return video


def _count_view(session: Session, video: Video) -> Video:
    video.views += 1
    video.updated_at = utcnow()
    session.add(video)
    session.commit()
    session.refresh(video)
    return video


@router.get("/")
def list_videos(
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    limit, offset = get_pagination_params(limit, offset)
    stmt = select(Video)
    if category:
        stmt = stmt.where(Video.category == category)
    stmt = stmt.order_by(Video.created_at.desc(), Video.id.desc()).offset(offset).limit(limit)
    return session.exec(stmt).all()


@router.get("/{video_id}")
def get_video(
    video_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return _count_view(session, _get_video(session, video_id))


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_video(
    payload: VideoCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    video = Video(
        title=sanitize_text(payload.title),
        description=sanitize_text(payload.description),
        category=payload.category or "General",
        video_url=payload.video_url,
        thumbnail_url=payload.thumbnail_url,
        duration_seconds=payload.duration_seconds,
        uploaded_by=current_user.uid,
        uploaded_by_name=current_user.display_name or current_user.email or "Unknown",
    )
    session.add(video)
    session.commit()
    session.refresh(video)
    logger.info(f"Video {video.id} added by {current_user.uid}")
    return {"id": video.id, "message": "Video uploaded successfully"}


@router.put("/{video_id}")
def update_video(
    video_id: int,
    payload: VideoUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    video = _get_owned(session, video_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        video.title = sanitize_text(changes["title"])
    if "description" in changes:
        video.description = sanitize_text(changes["description"])
    if changes.get("category"):
        video.category = changes["category"]
    if "thumbnail_url" in changes:
        video.thumbnail_url = changes["thumbnail_url"]
    video.updated_at = utcnow()
    session.add(video)
    session.commit()
    return {"message": "Video updated successfully"}


@router.delete("/{video_id}")
def delete_video(
    video_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    video = _get_owned(session, video_id, current_user)
    session.delete(video)
    session.commit()
    return {"message": "Video deleted successfully"}


@router.post("/{video_id}/view")
def record_view(
    video_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    video = _count_view(session, _get_video(session, video_id))
    return {"message": "View updated", "video_url": video.video_url}
