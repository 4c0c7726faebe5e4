"""Exercise authoring, submission and grading workflows."""

import logging
from typing import Any, List, Optional

from sqlalchemy import case, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from learning_platform.errors import DuplicateSubmission, Forbidden, NotFound, ValidationError
from learning_platform.models import Exercise, Submission, User, as_utc, utcnow
from learning_platform.services.grading_service import (
    compute_percentage,
    grade_submission,
    total_points_for,
)
from learning_platform.utils import sanitize_text

logger = logging.getLogger(__name__)

ANSWER_KEY_FIELDS = ("correct_answer", "correct_answers", "model_answer")


# --- Serialization ---


def exercise_to_dict(exercise: Exercise, hide_answers: bool = False) -> dict:
    data = exercise.model_dump()
    if hide_answers:
        data["questions"] = [
            {k: v for k, v in q.items() if k not in ANSWER_KEY_FIELDS}
            for q in exercise.questions
        ]
    return data


def submission_to_dict(submission: Submission) -> dict:
    return submission.model_dump()


# --- Lookups ---


def get_exercise(session: Session, exercise_id: int) -> Exercise:
    exercise = session.get(Exercise, exercise_id)
    if not exercise:
        raise NotFound("Exercise not found")
    return exercise


def get_owned_exercise(session: Session, exercise_id: int, user: User) -> Exercise:
    exercise = get_exercise(session, exercise_id)
    if exercise.created_by != user.uid:
        raise Forbidden("Access denied")
    return exercise


def find_submission(session: Session, exercise_id: int, student_id: str) -> Optional[Submission]:
    stmt = select(Submission).where(
        (Submission.exercise_id == exercise_id) & (Submission.student_id == student_id)
    )
    return session.exec(stmt).first()


def list_exercises(
    session: Session,
    user: User,
    category: Optional[str] = None,
    difficulty: Optional[str] = None,
    status: str = "all",
) -> List[Exercise]:
    stmt = select(Exercise)
    if user.role == "student":
        stmt = stmt.where(Exercise.published == True)  # noqa: E712
    exercises = list(session.exec(stmt).all())

    if category and category != "all":
        exercises = [e for e in exercises if e.category == category]
    if difficulty and difficulty != "all":
        exercises = [e for e in exercises if e.difficulty == difficulty]
    # Draft/published filtering only makes sense for authors
    if user.role == "teacher" and status != "all":
        want_published = status == "published"
        exercises = [e for e in exercises if e.published == want_published]

    exercises.sort(key=lambda e: e.created_at, reverse=True)
    return exercises


def list_categories(session: Session) -> List[str]:
    rows = session.exec(select(Exercise.category).where(Exercise.published == True)).all()  # noqa: E712
    return sorted({c for c in rows if c})


def list_submissions_for_exercise(session: Session, exercise_id: int) -> List[Submission]:
    stmt = select(Submission).where(Submission.exercise_id == exercise_id)
    submissions = list(session.exec(stmt).all())
    submissions.sort(key=lambda s: as_utc(s.submitted_at), reverse=True)
    return submissions


def list_submissions_for_student(session: Session, student_id: str) -> List[Submission]:
    stmt = select(Submission).where(Submission.student_id == student_id)
    submissions = list(session.exec(stmt).all())
    submissions.sort(key=lambda s: s.submitted_at, reverse=True)
    return submissions


# --- Authoring ---


def create_exercise(session: Session, author: User, data: dict) -> Exercise:
    questions = data["questions"]
    exercise = Exercise(
        title=sanitize_text(data["title"]),
        description=data.get("description") or "",
        category=data.get("category") or "General",
        difficulty=data.get("difficulty") or "medium",
        time_limit_minutes=data.get("time_limit_minutes"),
        due_date=as_utc(data.get("due_date")),
        questions=questions,
        total_points=total_points_for(questions),
        created_by=author.uid,
        created_by_name=author.display_name or "Unknown",
    )
    if not exercise.title:
        raise ValidationError("Title and questions are required")
    session.add(exercise)
    session.commit()
    session.refresh(exercise)
    logger.info(f"Exercise {exercise.id} created by {author.uid}")
    return exercise


def update_exercise(session: Session, exercise_id: int, user: User, changes: dict) -> Exercise:
    """Apply a partial update; ``changes`` holds only the fields the client sent."""
    exercise = get_owned_exercise(session, exercise_id, user)

    if changes.get("title"):
        exercise.title = sanitize_text(changes["title"])
    if "description" in changes:
        exercise.description = changes["description"] or ""
    if "time_limit_minutes" in changes:
        exercise.time_limit_minutes = changes["time_limit_minutes"]
    if "due_date" in changes:
        exercise.due_date = as_utc(changes["due_date"])
    if changes.get("category"):
        exercise.category = changes["category"]
    if changes.get("difficulty"):
        exercise.difficulty = changes["difficulty"]
    if changes.get("questions"):
        exercise.questions = changes["questions"]
        exercise.total_points = total_points_for(exercise.questions)

    exercise.updated_at = utcnow()
    session.add(exercise)
    session.commit()
    session.refresh(exercise)
    return exercise


def delete_exercise(session: Session, exercise_id: int, user: User) -> None:
    exercise = get_owned_exercise(session, exercise_id, user)
    for submission in session.exec(
        select(Submission).where(Submission.exercise_id == exercise_id)
    ).all():
        session.delete(submission)
    session.flush()
    session.delete(exercise)
    session.commit()
    logger.info(f"Exercise {exercise_id} and its submissions deleted by {user.uid}")


def set_published(session: Session, exercise_id: int, user: User, published: bool) -> Exercise:
    exercise = get_owned_exercise(session, exercise_id, user)
    exercise.published = bool(published)
    exercise.updated_at = utcnow()
    session.add(exercise)
    session.commit()
    session.refresh(exercise)
    return exercise


# --- Submitting ---


def _record_attempt_stmt(exercise_id: int, percentage: float):
    """Single UPDATE folding a new percentage into the running average.

    Uses the pre-increment attempt count as the weight; average_score is set
    before total_attempts so backends that evaluate SET left to right agree.
    """
    new_average = case(
        (Exercise.total_attempts == 0, percentage),
        else_=(Exercise.average_score * Exercise.total_attempts + percentage)
        / (Exercise.total_attempts + 1),
    )
    return (
        update(Exercise)
        .where(Exercise.id == exercise_id)
        .ordered_values(
            (Exercise.average_score, new_average),
            (Exercise.total_attempts, Exercise.total_attempts + 1),
        )
        .execution_options(synchronize_session=False)
    )


def submit_exercise(
    session: Session,
    exercise_id: int,
    student: User,
    answers: List[Any],
    time_spent: int = 0,
) -> Submission:
    """Grade and store a student's only submission for an exercise.

    Raises Forbidden, NotFound or DuplicateSubmission; nothing is written when
    any of them is raised.
    """
    if student.role != "student":
        raise Forbidden("Only students can submit exercises")

    exercise = get_exercise(session, exercise_id)
    if not exercise.published:
        raise Forbidden("Exercise not published")

    if find_submission(session, exercise_id, student.uid):
        raise DuplicateSubmission()

    result = grade_submission(exercise.questions, answers, exercise.total_points)
    submission = Submission(
        exercise_id=exercise_id,
        exercise_title=exercise.title,
        student_id=student.uid,
        student_name=student.display_name or "Unknown",
        answers=result["answers"],
        score=result["score"],
        total_points=exercise.total_points,
        percentage=result["percentage"],
        time_spent_seconds=time_spent or 0,
        needs_grading=result["needs_grading"],
    )
    session.add(submission)
    try:
        session.flush()
    except IntegrityError:
        # Lost a race with a concurrent submit for the same pair
        session.rollback()
        raise DuplicateSubmission()

    session.exec(_record_attempt_stmt(exercise_id, submission.percentage))
    session.commit()
    session.refresh(submission)
    logger.info(
        f"Submission {submission.id}: student {student.uid} scored "
        f"{submission.score}/{submission.total_points} on exercise {exercise_id}"
    )
    return submission


# --- Manual grading ---


def grade_manually(
    session: Session, submission_id: int, grader: User, grades: dict[int, int]
) -> Submission:
    """Award points to the manually graded questions of a submission."""
    submission = session.get(Submission, submission_id)
    if not submission:
        raise NotFound("Submission not found")
    exercise = get_owned_exercise(session, submission.exercise_id, grader)

    if not grades:
        raise ValidationError("No grades provided")

    answers = [dict(a) for a in submission.answers]
    by_id = {a["question_id"]: a for a in answers}
    for question_id, points in grades.items():
        answer = by_id.get(question_id)
        if answer is None or question_id >= len(exercise.questions):
            raise ValidationError(f"Question {question_id} does not exist")
        max_points = exercise.questions[question_id].get("points", 1)
        if exercise.questions[question_id].get("type") != "short-answer":
            raise ValidationError(f"Question {question_id} is graded automatically")
        if points < 0 or points > max_points:
            raise ValidationError(f"Question {question_id}: points must be between 0 and {max_points}")
        answer["earned_points"] = points
        answer["is_correct"] = points == max_points
        answer["needs_manual_grading"] = False

    old_percentage = submission.percentage
    submission.answers = answers
    submission.score = sum(a["earned_points"] for a in answers)
    submission.percentage = compute_percentage(submission.score, submission.total_points)
    submission.needs_grading = any(a["needs_manual_grading"] for a in answers)
    submission.graded_by = grader.uid
    submission.graded_at = utcnow()
    session.add(submission)

    delta = submission.percentage - old_percentage
    if delta:
        session.exec(
            update(Exercise)
            .where(Exercise.id == exercise.id)
            .values(
                average_score=case(
                    (
                        Exercise.total_attempts > 0,
                        Exercise.average_score + delta / Exercise.total_attempts,
                    ),
                    else_=Exercise.average_score,
                )
            )
            .execution_options(synchronize_session=False)
        )
    session.commit()
    session.refresh(submission)
    return submission
