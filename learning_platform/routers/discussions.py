"""Community discussion board."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import Comment, Discussion, User, utcnow
from learning_platform.schemas import DiscussionCreate, DiscussionUpdate, LockIn, PinIn
from learning_platform.services.discussion_service import (
    matches_search,
    sort_discussions,
    toggle_like,
)
from learning_platform.utils import get_pagination_params, sanitize_tags, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()


def get_discussion_or_404(session: Session, discussion_id: int) -> Discussion:
    discussion = session.get(Discussion, discussion_id)
    if not discussion:
        raise NotFound("Discussion not found")
    return discussion


@router.get("/")
def list_discussions(
    category: Optional[str] = Query(None),
    sort: str = Query("recent", pattern="^(recent|popular|active)$"),
    search: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    limit, offset = get_pagination_params(limit, offset)
    stmt = select(Discussion)
    if category and category != "all":
        stmt = stmt.where(Discussion.category == category)
    discussions = list(session.exec(stmt).all())

    if search:
        discussions = [d for d in discussions if matches_search(d, search)]
    discussions = sort_discussions(discussions, sort)
    return discussions[offset:offset + limit]


@router.get("/meta/categories")
def discussion_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = session.exec(select(Discussion.category)).all()
    return sorted({c for c in rows if c})


@router.get("/meta/tags")
def discussion_tags(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    tags = set()
    for row in session.exec(select(Discussion.tags)).all():
        tags.update(row or [])
    return sorted(tags)


@router.get("/{discussion_id}")
def get_discussion(
    discussion_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = get_discussion_or_404(session, discussion_id)
    discussion.views += 1
    session.add(discussion)
    session.commit()
    session.refresh(discussion)
    return discussion


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_discussion(
    payload: DiscussionCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = Discussion(
        title=sanitize_text(payload.title),
        content=sanitize_text(payload.content),
        category=payload.category or "General",
        tags=sanitize_tags(payload.tags),
        author_id=current_user.uid,
        author_name=current_user.display_name or "Anonymous",
        author_avatar=current_user.avatar or "",
        author_role=current_user.role,
    )
    session.add(discussion)
    session.commit()
    session.refresh(discussion)
    logger.info(f"Discussion {discussion.id} created by {current_user.uid}")
    return {"id": discussion.id, "message": "Discussion created successfully"}


@router.put("/{discussion_id}")
def update_discussion(
    discussion_id: int,
    payload: DiscussionUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = get_discussion_or_404(session, discussion_id)
    if discussion.author_id != current_user.uid:
        raise Forbidden("You can only edit your own discussions")

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        discussion.title = sanitize_text(changes["title"])
    if changes.get("content"):
        discussion.content = sanitize_text(changes["content"])
    if changes.get("category"):
        discussion.category = changes["category"]
    if changes.get("tags") is not None:
        discussion.tags = sanitize_tags(changes["tags"])
    discussion.updated_at = utcnow()
    session.add(discussion)
    session.commit()
    return {"message": "Discussion updated successfully"}


@router.delete("/{discussion_id}")
def delete_discussion(
    discussion_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = get_discussion_or_404(session, discussion_id)
    if discussion.author_id != current_user.uid and current_user.role != "teacher":
        raise Forbidden("Access denied")

    comments = session.exec(select(Comment).where(Comment.discussion_id == discussion_id)).all()
    for comment in comments:
        session.delete(comment)
    session.flush()
    session.delete(discussion)
    session.commit()
    logger.info(f"Discussion {discussion_id} and {len(comments)} comments deleted by {current_user.uid}")
    return {"message": "Discussion deleted successfully"}


@router.post("/{discussion_id}/like")
def like_discussion(
    discussion_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = get_discussion_or_404(session, discussion_id)
    discussion.liked_by, liked = toggle_like(discussion.liked_by, current_user.uid)
    discussion.likes_count = len(discussion.liked_by)
    session.add(discussion)
    session.commit()
    return {"liked": liked, "likes_count": discussion.likes_count}


@router.patch("/{discussion_id}/pin")
def pin_discussion(
    discussion_id: int,
    payload: PinIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    discussion = get_discussion_or_404(session, discussion_id)
    discussion.is_pinned = payload.pinned
    session.add(discussion)
    session.commit()
    state = "pinned" if payload.pinned else "unpinned"
    return {"message": f"Discussion {state} successfully"}


@router.patch("/{discussion_id}/lock")
def lock_discussion(
    discussion_id: int,
    payload: LockIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    discussion = get_discussion_or_404(session, discussion_id)
    discussion.is_locked = payload.locked
    session.add(discussion)
    session.commit()
    state = "locked" if payload.locked else "unlocked"
    return {"message": f"Discussion {state} successfully"}
