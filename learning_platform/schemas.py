"""Request bodies for the JSON API.

Questions are a tagged union on ``type``; every other payload is a flat model
with the required fields checked before anything is written.
"""

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

EXERCISE_TITLE_MAX_LENGTH = 200
QUESTION_TEXT_MAX_LENGTH = 5000
OPTION_MAX_LENGTH = 1000


# --- Questions ---


class _QuestionBase(BaseModel):
    question: str = Field(default="", max_length=QUESTION_TEXT_MAX_LENGTH)
    points: int = Field(default=1, ge=1)


class SingleChoiceQuestion(_QuestionBase):
    # "mcq" is what older clients send for the same thing
    type: Literal["single-choice", "mcq"]
    options: List[Annotated[str, Field(max_length=OPTION_MAX_LENGTH)]] = Field(min_length=2)
    correct_answer: int = Field(ge=0)

    @model_validator(mode="after")
    def _answer_in_range(self):
        if self.correct_answer >= len(self.options):
            raise ValueError("correct_answer must index one of the options")
        return self


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true-false"]
    options: List[str] = Field(default_factory=lambda: ["True", "False"], min_length=2, max_length=2)
    correct_answer: Literal[0, 1]


class MultipleSelectQuestion(_QuestionBase):
    type: Literal["multiple-select"]
    options: List[Annotated[str, Field(max_length=OPTION_MAX_LENGTH)]] = Field(min_length=2)
    correct_answers: List[int] = Field(min_length=1)

    @model_validator(mode="after")
    def _answers_in_range(self):
        if any(i < 0 or i >= len(self.options) for i in self.correct_answers):
            raise ValueError("correct_answers must index the options")
        return self


class ShortAnswerQuestion(_QuestionBase):
    type: Literal["short-answer"]
    # Optional reference answer shown to the grader only
    model_answer: Optional[str] = None


Question = Annotated[
    Union[SingleChoiceQuestion, TrueFalseQuestion, MultipleSelectQuestion, ShortAnswerQuestion],
    Field(discriminator="type"),
]


# --- Exercises ---


class ExerciseCreate(BaseModel):
    title: str = Field(min_length=1, max_length=EXERCISE_TITLE_MAX_LENGTH)
    description: str = ""
    category: str = "General"
    difficulty: Literal["easy", "medium", "hard"] = "medium"
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    due_date: Optional[datetime] = None
    questions: List[Question] = Field(min_length=1)


class ExerciseUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=EXERCISE_TITLE_MAX_LENGTH)
    description: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[Literal["easy", "medium", "hard"]] = None
    time_limit_minutes: Optional[int] = Field(default=None, ge=1)
    due_date: Optional[datetime] = None
    questions: Optional[List[Question]] = Field(default=None, min_length=1)


class PublishIn(BaseModel):
    published: bool


class SubmitIn(BaseModel):
    # Indexed like exercise.questions; entries are deliberately untyped
    answers: List[Any] = Field(default_factory=list)
    time_spent: int = Field(default=0, ge=0)


class GradeIn(BaseModel):
    # question index -> points awarded
    grades: Dict[int, int]


# --- Users / auth ---


class VerifyTokenIn(BaseModel):
    token: Optional[str] = None


class CustomTokenIn(BaseModel):
    uid: Optional[str] = None
    additional_claims: Optional[Dict[str, Any]] = None


class UserStatusIn(BaseModel):
    disabled: Any = None


class ProfileUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=100)
    preferences: Optional[Dict[str, Any]] = None


class RoleUpdate(BaseModel):
    role: str


# --- Content ---


class ContentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    type: str = "lesson"
    body: Optional[Dict[str, Any]] = None


class ContentUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    type: Optional[str] = None
    body: Optional[Dict[str, Any]] = None


# --- Discussions / comments ---


class DiscussionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    category: str = "General"
    tags: List[str] = Field(default_factory=list)


class DiscussionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    tags: Optional[List[str]] = None


class PinIn(BaseModel):
    pinned: bool


class LockIn(BaseModel):
    locked: bool


class CommentCreate(BaseModel):
    discussion_id: int
    content: str = Field(min_length=1, max_length=10000)
    parent_id: Optional[int] = None


class CommentUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=10000)


# --- News ---


class NewsCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    content: str = Field(min_length=1)
    summary: Optional[str] = None
    category: str = "General"
    language: str = "Tamil"
    tags: List[str] = Field(default_factory=list)
    source_url: Optional[str] = None
    published: bool = False


class NewsUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    content: Optional[str] = Field(default=None, min_length=1)
    summary: Optional[str] = None
    category: Optional[str] = None
    language: Optional[str] = None
    tags: Optional[List[str]] = None
    source_url: Optional[str] = None
    published: Optional[bool] = None


# --- Books / videos ---

URL_PATTERN = r"^https?://"


class BookCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    author: str = ""
    category: str = "General"
    subject: str = ""
    file_url: str = Field(pattern=URL_PATTERN)
    file_name: str = ""
    cover_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    published: bool = True


class BookUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    author: Optional[str] = None
    category: Optional[str] = None
    subject: Optional[str] = None
    cover_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    published: Optional[bool] = None


class VideoCreate(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str = ""
    category: str = "General"
    video_url: str = Field(pattern=URL_PATTERN)
    thumbnail_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
    duration_seconds: int = Field(default=0, ge=0)


class VideoUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=300)
    description: Optional[str] = None
    category: Optional[str] = None
    thumbnail_url: Optional[str] = Field(default=None, pattern=URL_PATTERN)
