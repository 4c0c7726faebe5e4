"""Profiles and teacher-side user management: list, role changes and deletion."""

import logging

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session, select

from learning_platform import firebase
from learning_platform.database import get_session
from learning_platform.deps import VALID_ROLES, get_current_user, require_teacher
from learning_platform.errors import NotFound, ValidationError
from learning_platform.models import (
    Book,
    Comment,
    Content,
    Discussion,
    Exercise,
    News,
    Submission,
    User,
    Video,
    as_utc,
)
from learning_platform.schemas import ProfileUpdate, RoleUpdate
from learning_platform.utils import sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _profile(user: User) -> dict:
    return user.model_dump()


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    """Firebase account record merged with the local profile."""
    try:
        auth_record = firebase.get_user(current_user.uid)
    except firebase.FirebaseError as e:
        logger.warning(f"Could not load Firebase record for {current_user.uid}: {e}")
        auth_record = {"uid": current_user.uid, "email": current_user.email}

    data = dict(auth_record)
    data.update(_profile(current_user))
    return data


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    if payload.display_name is not None:
        display_name = sanitize_text(payload.display_name)
        firebase.update_user(current_user.uid, display_name=display_name)
        current_user.display_name = display_name
    if payload.preferences is not None:
        current_user.preferences = payload.preferences

    session.add(current_user)
    session.commit()
    return {"message": "Profile updated successfully"}


@router.get("/")
def list_users(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    users = session.exec(select(User)).all()
    return [_profile(u) for u in sorted(users, key=lambda u: as_utc(u.created_at), reverse=True)]


@router.put("/{uid}/role")
def update_role(
    uid: str,
    payload: RoleUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    if payload.role not in VALID_ROLES:
        raise ValidationError("Invalid role")

    user = session.get(User, uid)
    if not user:
        raise NotFound("User not found")

    user.role = payload.role
    session.add(user)
    session.commit()
    logger.info(f"Role of {uid} set to {payload.role} by {current_user.uid}")
    return {"message": "User role updated successfully"}


@router.delete("/{uid}")
def delete_user(
    uid: str,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    if uid == current_user.uid:
        raise ValidationError("Cannot delete your own account")

    user = session.get(User, uid)
    if not user:
        raise NotFound("User not found")

    # Rows authored by the user keep a foreign key to it
    for model, column in (
        (Submission, Submission.student_id),
        (Exercise, Exercise.created_by),
        (Content, Content.created_by),
        (Discussion, Discussion.author_id),
        (Comment, Comment.author_id),
        (News, News.author_id),
        (Book, Book.uploaded_by),
        (Video, Video.uploaded_by),
    ):
        if session.exec(select(model).where(column == uid)).first():
            raise ValidationError("User still owns data and cannot be deleted")

    try:
        firebase.delete_user(uid)
    except firebase.UserNotFoundError:
        logger.warning(f"User {uid} was already missing from Firebase Auth")

    session.delete(user)
    session.commit()
    logger.info(f"User {uid} deleted by {current_user.uid}")
    return {"message": "User deleted successfully"}
