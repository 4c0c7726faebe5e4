"""Library of books shared by teachers.

Files are hosted elsewhere; a book row carries its metadata, the link to the
PDF and view and download counters.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden, NotFound
from learning_platform.models import Book, User, as_utc, utcnow
from learning_platform.schemas import BookCreate, BookUpdate
from learning_platform.utils import get_pagination_params, sanitize_text

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_book(session: Session, book_id: int) -> Book:
    book = session.get(Book, book_id)
    if not book:
        raise NotFound("Book not found")
    return book


def _get_owned(session: Session, book_id: int, user: User) -> Book:
    book = _get_book(session, book_id)
    if book.uploaded_by != user.uid:
        raise Forbidden("Access denied. You can only change your own books.")
    return book


def _published_books(session: Session) -> list:
    return list(session.exec(select(Book).where(Book.published == True)).all())  # noqa: E712


def matches_book_search(book: Book, term: str) -> bool:
    term = term.lower()
    return any(term in (value or "").lower() for value in (book.title, book.description, book.category, book.subject))


@router.get("/")
def list_books(
    category: Optional[str] = Query(None),
    subject: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    offset: Optional[int] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    limit, offset = get_pagination_params(limit, offset)
    books = _published_books(session)

    if category:
        books = [b for b in books if b.category == category]
    if subject:
        books = [b for b in books if b.subject == subject]
    if search:
        books = [b for b in books if matches_book_search(b, search)]
    books.sort(key=lambda b: (as_utc(b.created_at), b.id), reverse=True)
    return books[offset:offset + limit]


@router.get("/meta/categories")
def book_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return sorted({b.category for b in _published_books(session) if b.category})


@router.get("/meta/subjects")
def book_subjects(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return sorted({b.subject for b in _published_books(session) if b.subject})


@router.get("/{book_id}")
def get_book(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book = _get_book(session, book_id)
    if current_user.role == "student" and not book.published:
        raise Forbidden("Book not published")
    book.views += 1
    session.add(book)
    session.commit()
    session.refresh(book)
    return book


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_book(
    payload: BookCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    book = Book(
        title=sanitize_text(payload.title),
        description=sanitize_text(payload.description),
        author=sanitize_text(payload.author),
        category=payload.category or "General",
        subject=payload.subject,
        file_url=payload.file_url,
        file_name=payload.file_name,
        cover_url=payload.cover_url,
        uploaded_by=current_user.uid,
        uploaded_by_name=current_user.display_name or current_user.email or "Unknown",
        published=payload.published,
    )
    session.add(book)
    session.commit()
    session.refresh(book)
    logger.info(f"Book {book.id} added by {current_user.uid}")
    return {"id": book.id, "message": "Book uploaded successfully", "file_url": book.file_url}


@router.put("/{book_id}")
def update_book(
    book_id: int,
    payload: BookUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    book = _get_owned(session, book_id, current_user)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("title"):
        book.title = sanitize_text(changes["title"])
    for field in ("description", "author"):
        if field in changes:
            setattr(book, field, sanitize_text(changes[field]))
    if changes.get("category"):
        book.category = changes["category"]
    if "subject" in changes:
        book.subject = changes["subject"] or ""
    if "cover_url" in changes:
        book.cover_url = changes["cover_url"]
    if changes.get("published") is not None:
        book.published = changes["published"]

    book.updated_at = utcnow()
    session.add(book)
    session.commit()
    return {"message": "Book updated successfully"}


@router.delete("/{book_id}")
def delete_book(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    book = _get_owned(session, book_id, current_user)
    session.delete(book)
    session.commit()
    logger.info(f"Book {book_id} deleted by {current_user.uid}")
    return {"message": "Book deleted successfully"}


@router.post("/{book_id}/download")
def record_download(
    book_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    book = _get_book(session, book_id)
    book.downloads += 1
    session.add(book)
    session.commit()
    return {"message": "Download count updated", "file_url": book.file_url}
