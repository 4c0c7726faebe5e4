"""News articles written by teachers."""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import News, User, as_utc, utcnow
from learning_platform.schemas import NewsCreate, NewsUpdate
from learning_platform.services.discussion_service import toggle_like
from learning_platform.utils import get_pagination_params, sanitize_rich_text, sanitize_tags, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()

SUMMARY_LENGTH = 200


def make_summary(content: str) -> str:
    """Default summary: the first SUMMARY_LENGTH characters followed by an ellipsis."""
    return content[:SUMMARY_LENGTH] + "..."


def _get_news(session: Session, news_id: int) -> News:
    article = session.get(News, news_id)
    if not article:
        raise NotFound("News article not found")
    return article


def _get_owned(session: Session, news_id: int, user: User) -> News:
    article = _get_news(session, news_id)
    if article.author_id != user.uid:
        raise Forbidden("Access denied")
    return article


@router.get("/")
def list_news(
    category: Optional[str] = Query(None),
    language: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    limit, offset = get_pagination_params(limit, offset)
    stmt = select(News)
    if current_user.role == "student":
        stmt = stmt.where(News.published == True)  # noqa: E712
    articles = list(session.exec(stmt).all())

    if category and category != "all":
        articles = [a for a in articles if a.category == category]
    if language and language != "all":
        articles = [a for a in articles if a.language == language]
    articles.sort(key=lambda a: as_utc(a.published_at or a.created_at), reverse=True)

    total = len(articles)
    return {
        "news": articles[offset:offset + limit],
        "total": total,
        "has_more": offset + limit < total,
    }


@router.get("/meta/categories")
def news_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    rows = session.exec(select(News.category)).all()
    return sorted({c for c in rows if c})


@router.get("/{news_id}")
def get_news(
    news_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    article = _get_news(session, news_id)
    if current_user.role == "student" and not article.published:
        raise Forbidden("News article not published")
    article.views += 1
    session.add(article)
    session.commit()
    session.refresh(article)
    return article


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_news(
    payload: NewsCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    content = sanitize_rich_text(payload.content)
    now = utcnow()
    article = News(
        title=sanitize_text(payload.title),
        content=content,
        summary=sanitize_text(payload.summary) if payload.summary else make_summary(content),
        category=payload.category or "General",
        language=payload.language or "Tamil",
        tags=sanitize_tags(payload.tags),
        source_url=payload.source_url,
        author_id=current_user.uid,
        author_name=current_user.display_name or "Unknown",
        published=payload.published,
        published_at=now if payload.published else None,
        created_at=now,
        updated_at=now,
    )
    session.add(article)
    session.commit()
    session.refresh(article)
    logger.info(f"News article {article.id} created by {current_user.uid}")
    return {"id": article.id, "message": "News article created successfully"}


@router.put("/{news_id}")
def update_news(
    news_id: int,
    payload: NewsUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    article = _get_owned(session, news_id, current_user)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("title"):
        article.title = sanitize_text(changes["title"])
    if changes.get("content"):
        article.content = sanitize_rich_text(changes["content"])
    if "summary" in changes:
        article.summary = sanitize_text(changes["summary"]) if changes["summary"] else make_summary(article.content)
    for field in ("category", "language"):
        if changes.get(field):
            setattr(article, field, changes[field])
    if changes.get("tags") is not None:
        article.tags = sanitize_tags(changes["tags"])
    if "source_url" in changes:
        article.source_url = changes["source_url"]
    if changes.get("published") is not None:
        if changes["published"] and not article.published and article.published_at is None:
            article.published_at = utcnow()
        article.published = changes["published"]

    article.updated_at = utcnow()
    session.add(article)
    session.commit()
    return {"message": "News article updated successfully"}


@router.delete("/{news_id}")
def delete_news(
    news_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    article = _get_owned(session, news_id, current_user)
    session.delete(article)
    session.commit()
    return {"message": "News article deleted successfully"}


@router.post("/{news_id}/like")
def like_news(
    news_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    article = _get_news(session, news_id)
    article.liked_by, liked = toggle_like(article.liked_by, current_user.uid)
    article.likes = max(article.likes + (1 if liked else -1), 0)
    session.add(article)
    session.commit()
    return {"liked": liked, "likes": article.likes}
