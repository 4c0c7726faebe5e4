"""SQLModel tables for the learning platform."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import JSON, Column, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a timestamp to aware UTC.

    SQLite hands ``DateTime(timezone=True)`` columns back without tzinfo, and
    clients may post naive ISO strings; both are taken to be UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def timestamp_column(nullable: bool = False) -> Column:
    return Column(DateTime(timezone=True), nullable=nullable)


class User(SQLModel, table=True):
    """Local mirror of a Firebase account; carries the role used for authorization."""

    __tablename__ = "users"

    uid: str = Field(primary_key=True)
    email: Optional[str] = None
    display_name: Optional[str] = None
    avatar: Optional[str] = None
    role: str = Field(default="student")  # "student" | "teacher"
    preferences: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    last_login_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))
    total_login_days: int = Field(default=0)


class Exercise(SQLModel, table=True):
    __tablename__ = "exercises"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    category: str = Field(default="General")
    difficulty: str = Field(default="medium")
    time_limit_minutes: Optional[int] = None
    due_date: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))
    # List of question dicts, see schemas.Question for the accepted shapes
    questions: list = Field(default_factory=list, sa_column=Column(JSON))
    total_points: int = Field(default=0)
    created_by: str = Field(foreign_key="users.uid")
    created_by_name: str = "Unknown"
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    published: bool = Field(default=False)
    total_attempts: int = Field(default=0)
    average_score: float = Field(default=0.0)


class Submission(SQLModel, table=True):
    """One graded attempt; a student gets exactly one per exercise."""

    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("exercise_id", "student_id", name="uq_submission_exercise_student"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    exercise_id: int = Field(foreign_key="exercises.id", index=True)
    exercise_title: str = ""
    student_id: str = Field(foreign_key="users.uid", index=True)
    student_name: str = "Unknown"
    answers: list = Field(default_factory=list, sa_column=Column(JSON))
    score: int = 0
    # Snapshot of the exercise total at submission time
    total_points: int = 0
    percentage: float = 0.0
    time_spent_seconds: int = 0
    submitted_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    needs_grading: bool = Field(default=False)
    graded_by: Optional[str] = None
    graded_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))


class Content(SQLModel, table=True):
    """Generic teaching material (lesson, article, link...)."""

    __tablename__ = "content"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    type: str = Field(default="lesson", index=True)
    body: Optional[dict] = Field(default=None, sa_column=Column(JSON))
    created_by: str = Field(foreign_key="users.uid")
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    published: bool = Field(default=False)


class Discussion(SQLModel, table=True):
    __tablename__ = "discussions"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    content: str
    category: str = Field(default="General")
    tags: list = Field(default_factory=list, sa_column=Column(JSON))
    author_id: str = Field(foreign_key="users.uid")
    author_name: str = "Anonymous"
    author_avatar: str = ""
    author_role: str = "student"
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    last_activity_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    views: int = 0
    likes_count: int = 0
    comments_count: int = 0
    is_pinned: bool = False
    is_locked: bool = False
    liked_by: list = Field(default_factory=list, sa_column=Column(JSON))


class Comment(SQLModel, table=True):
    __tablename__ = "comments"

    id: Optional[int] = Field(default=None, primary_key=True)
    discussion_id: int = Field(foreign_key="discussions.id", index=True)
    # Replies point at their parent comment; top-level comments have None
    parent_id: Optional[int] = Field(default=None, index=True)
    content: str
    author_id: str = Field(foreign_key="users.uid")
    author_name: str = "Anonymous"
    author_avatar: str = ""
    author_role: str = "student"
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    likes_count: int = 0
    liked_by: list = Field(default_factory=list, sa_column=Column(JSON))
    replies_count: int = 0
    is_edited: bool = False


class News(SQLModel, table=True):
    __tablename__ = "news"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    content: str
    summary: str = ""
    category: str = Field(default="General")
    language: str = Field(default="Tamil")
    tags: list = Field(default_factory=list, sa_column=Column(JSON))
    source_url: Optional[str] = None
    author_id: str = Field(foreign_key="users.uid")
    author_name: str = "Unknown"
    published: bool = False
    published_at: Optional[datetime] = Field(default=None, sa_column=timestamp_column(nullable=True))
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    views: int = 0
    likes: int = 0
    liked_by: list = Field(default_factory=list, sa_column=Column(JSON))


class Book(SQLModel, table=True):
    """A book in the library; the PDF itself lives behind ``file_url``."""

    __tablename__ = "books"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    author: str = ""
    category: str = Field(default="General", index=True)
    subject: str = Field(default="", index=True)
    file_url: str
    file_name: str = ""
    cover_url: Optional[str] = None
    uploaded_by: str = Field(foreign_key="users.uid")
    uploaded_by_name: str = "Unknown"
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    published: bool = True
    views: int = 0
    downloads: int = 0


class Video(SQLModel, table=True):
    __tablename__ = "videos"

    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: str = ""
    category: str = Field(default="General")
    video_url: str
    thumbnail_url: Optional[str] = None
    duration_seconds: int = 0
    uploaded_by: str = Field(foreign_key="users.uid")
    uploaded_by_name: str = "Unknown"
    created_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    updated_at: datetime = Field(default_factory=utcnow, sa_column=timestamp_column())
    views: int = 0
