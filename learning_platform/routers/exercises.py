"""Exercise routes: authoring for teachers, taking and reviewing for students."""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi import status as http_status
from sqlmodel import Session

from learning_platform.database import get_session
from learning_platform.deps import get_current_user, require_teacher
from learning_platform.errors import Forbidden
from learning_platform.models import User
from learning_platform.schemas import ExerciseCreate, ExerciseUpdate, GradeIn, PublishIn, SubmitIn
from learning_platform.services import exercise_service

router = APIRouter()


@router.get("/")
def list_exercises(
    category: Optional[str] = Query(None),
    difficulty: Optional[str] = Query(None),
    status: str = Query("all", pattern="^(all|published|draft)$"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    """List exercises; students only ever see published ones."""
    exercises = exercise_service.list_exercises(
        session, current_user, category=category, difficulty=difficulty, status=status
    )
    hide = current_user.role == "student"
    return [exercise_service.exercise_to_dict(e, hide_answers=hide) for e in exercises]


# Fixed paths must be registered before /{exercise_id}


@router.get("/my/submissions")
def my_submissions(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    submissions = exercise_service.list_submissions_for_student(session, current_user.uid)
    return [exercise_service.submission_to_dict(s) for s in submissions]


@router.get("/meta/categories")
def exercise_categories(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return exercise_service.list_categories(session)


@router.patch("/submissions/{submission_id}/grade")
def grade_submission(
    submission_id: int,
    payload: GradeIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    """Award points for short-answer questions of one submission."""
    submission = exercise_service.grade_manually(session, submission_id, current_user, payload.grades)
    return {
        "id": submission.id,
        "score": submission.score,
        "total_points": submission.total_points,
        "percentage": submission.percentage,
        "needs_grading": submission.needs_grading,
        "message": "Submission graded successfully",
    }


@router.get("/{exercise_id}")
def get_exercise(
    exercise_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    exercise = exercise_service.get_exercise(session, exercise_id)

    submission = None
    if current_user.role == "student":
        if not exercise.published:
            raise Forbidden("Exercise not published")
        existing = exercise_service.find_submission(session, exercise_id, current_user.uid)
        if existing:
            submission = exercise_service.submission_to_dict(existing)

    # Students see the answer key only once they have submitted
    hide = current_user.role == "student" and submission is None
    data = exercise_service.exercise_to_dict(exercise, hide_answers=hide)
    data["submission"] = submission
    return data


@router.post("/", status_code=http_status.HTTP_201_CREATED)
def create_exercise(
    payload: ExerciseCreate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    exercise = exercise_service.create_exercise(session, current_user, payload.model_dump())
    return {"id": exercise.id, "message": "Exercise created successfully"}


@router.put("/{exercise_id}")
def update_exercise(
    exercise_id: int,
    payload: ExerciseUpdate = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    changes = payload.model_dump(exclude_unset=True)
    if payload.questions is not None:
        # exclude_unset also strips defaults inside each question
        changes["questions"] = [q.model_dump() for q in payload.questions]
    exercise_service.update_exercise(session, exercise_id, current_user, changes)
    return {"message": "Exercise updated successfully"}


@router.delete("/{exercise_id}")
def delete_exercise(
    exercise_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    exercise_service.delete_exercise(session, exercise_id, current_user)
    return {"message": "Exercise deleted successfully"}


@router.patch("/{exercise_id}/publish")
def publish_exercise(
    exercise_id: int,
    payload: PublishIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    exercise = exercise_service.set_published(session, exercise_id, current_user, payload.published)
    state = "published" if exercise.published else "unpublished"
    return {"message": f"Exercise {state} successfully"}


@router.post("/{exercise_id}/submit", status_code=http_status.HTTP_201_CREATED)
def submit_exercise(
    exercise_id: int,
    payload: SubmitIn = Body(...),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    submission = exercise_service.submit_exercise(
        session, exercise_id, current_user, payload.answers, payload.time_spent
    )
    return {
        "id": submission.id,
        "score": submission.score,
        "total_points": submission.total_points,
        "percentage": submission.percentage,
        "needs_grading": submission.needs_grading,
        "message": "Exercise submitted successfully",
    }


@router.get("/{exercise_id}/submissions")
def exercise_submissions(
    exercise_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    submissions = exercise_service.list_submissions_for_exercise(session, exercise_id)
    return [exercise_service.submission_to_dict(s) for s in submissions]
