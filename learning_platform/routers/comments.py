"""Threaded comments on discussions."""

import logging

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, func, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import Comment, Discussion, User, utcnow
from learning_platform.routers.discussions import get_discussion_or_404
from learning_platform.schemas import CommentCreate, CommentUpdate
from learning_platform.services.discussion_service import (
    build_comment_tree,
    sort_comments,
    toggle_like,
)
from learning_platform.utils import sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_comment(session: Session, comment_id: int) -> Comment:
    comment = session.get(Comment, comment_id)
    if not comment:
        raise NotFound("Comment not found")
    return comment


@router.get("/discussion/{discussion_id}")
def list_comments(
    discussion_id: int,
    sort: str = Query("oldest", pattern="^(oldest|newest|popular)$"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """Comments of a discussion as a tree of replies."""
    comments = session.exec(select(Comment).where(Comment.discussion_id == discussion_id)).all()
    return build_comment_tree(sort_comments(comments, sort))


@router.get("/discussion/{discussion_id}/count")
def count_comments(
    discussion_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    count = session.exec(
        select(func.count(Comment.id)).where(Comment.discussion_id == discussion_id)
    ).one()
    return {"count": count}


@router.get("/{comment_id}")
def get_comment(
    comment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return _get_comment(session, comment_id)


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_comment(
    payload: CommentCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    discussion = get_discussion_or_404(session, payload.discussion_id)
    if discussion.is_locked:
        raise Forbidden("Discussion is locked")

    parent = None
    if payload.parent_id is not None:
        parent = session.get(Comment, payload.parent_id)
        if parent is None or parent.discussion_id != discussion.id:
            raise NotFound("Parent comment not found")

    comment = Comment(
        discussion_id=discussion.id,
        parent_id=payload.parent_id,
        content=sanitize_text(payload.content),
        author_id=current_user.uid,
        author_name=current_user.display_name or "Anonymous",
        author_avatar=current_user.avatar or "",
        author_role=current_user.role,
    )
    session.add(comment)

    discussion.comments_count += 1
    discussion.last_activity_at = utcnow()
    session.add(discussion)
    if parent is not None:
        parent.replies_count += 1
        session.add(parent)

    session.commit()
    session.refresh(comment)
    return {"id": comment.id, "message": "Comment created successfully"}


@router.put("/{comment_id}")
def update_comment(
    comment_id: int,
    payload: CommentUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment(session, comment_id)
    if comment.author_id != current_user.uid:
        raise Forbidden("You can only edit your own comments")

    comment.content = sanitize_text(payload.content)
    comment.is_edited = True
    comment.updated_at = utcnow()
    session.add(comment)
    session.commit()
    return {"message": "Comment updated successfully"}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment(session, comment_id)
    if comment.author_id != current_user.uid and current_user.role != "teacher":
        raise Forbidden("Access denied")

    replies = session.exec(select(Comment).where(Comment.parent_id == comment_id)).all()
    removed = 1 + len(replies)
    for reply in replies:
        session.delete(reply)

    discussion = session.get(Discussion, comment.discussion_id)
    if discussion is not None:
        discussion.comments_count = max(discussion.comments_count - removed, 0)
        session.add(discussion)
    if comment.parent_id is not None:
        parent = session.get(Comment, comment.parent_id)
        if parent is not None:
            parent.replies_count = max(parent.replies_count - 1, 0)
            session.add(parent)

    session.delete(comment)
    session.commit()
    logger.info(f"Comment {comment_id} and {len(replies)} replies deleted by {current_user.uid}")
    return {"message": "Comment deleted successfully"}


@router.post("/{comment_id}/like")
def like_comment(
    comment_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment(session, comment_id)
    comment.liked_by, liked = toggle_like(comment.liked_by, current_user.uid)
    comment.likes_count = len(comment.liked_by)
    session.add(comment)
    session.commit()
    return {"liked": liked, "likes_count": comment.likes_count}
