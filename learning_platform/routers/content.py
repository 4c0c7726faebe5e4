"""Teaching material (lessons, articles and similar)."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import Content, User, utcnow
from learning_platform.schemas import ContentCreate, ContentUpdate, PublishIn
from learning_platform.utils import get_pagination_params, sanitize_text

router = APIRouter()


def _get_owned(session: Session, content_id: int, user: User) -> Content:
    content = session.get(Content, content_id)
    if not content:
        raise NotFound("Content not found")
    if content.created_by != user.uid:
        raise Forbidden("Access denied")
    return content


@router.get("/")
def list_content(
    type: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    limit, offset = get_pagination_params(limit, offset)
    stmt = select(Content)
    if type:
        stmt = stmt.where(Content.type == type)
    if current_user.role == "student":
        stmt = stmt.where(Content.published == True)  # noqa: E712
    stmt = stmt.order_by(Content.created_at.desc(), Content.id.desc()).offset(offset).limit(limit)
    return session.exec(stmt).all()


@router.get("/{content_id}")
def get_content(
    content_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    content = session.get(Content, content_id)
    if not content:
        raise NotFound("Content not found")
    if current_user.role == "student" and not content.published:
        raise Forbidden("Content not published")
    return content


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_content(
    payload: ContentCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    content = Content(
        title=sanitize_text(payload.title),
        description=sanitize_text(payload.description),
        type=payload.type,
        body=payload.body,
        created_by=current_user.uid,
    )
    session.add(content)
    session.commit()
    session.refresh(content)
    return {"id": content.id, "message": "Content created successfully"}


@router.put("/{content_id}")
def update_content(
    content_id: int,
    payload: ContentUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    content = _get_owned(session, content_id, current_user)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("title"):
        content.title = sanitize_text(changes["title"])
    if "description" in changes:
        content.description = sanitize_text(changes["description"])
    if changes.get("type"):
        content.type = changes["type"]
    if "body" in changes:
        content.body = changes["body"]
    content.updated_at = utcnow()
    session.add(content)
    session.commit()
    return {"message": "Content updated successfully"}


@router.delete("/{content_id}")
def delete_content(
    content_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    content = _get_owned(session, content_id, current_user)
    session.delete(content)
    session.commit()
    return {"message": "Content deleted successfully"}


@router.patch("/{content_id}/publish")
def publish_content(
    content_id: int,
    payload: PublishIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    content = _get_owned(session, content_id, current_user)
    content.published = payload.published
    content.updated_at = utcnow()
    session.add(content)
    session.commit()
    state = "published" if content.published else "unpublished"
    return {"message": f"Content {state} successfully"}
