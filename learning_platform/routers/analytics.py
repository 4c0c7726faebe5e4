"""Teacher dashboards.

Every figure is computed from the tables on request; nothing is cached.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from learning_platform.database import get_session
from learning_platform.deps import require_teacher
from learning_platform.models import Discussion, Exercise, News, Submission, User, as_utc, utcnow

router = APIRouter()

ACTIVE_DAYS = 7
HISTORY_DAYS = 30
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _daily_counts(timestamps, days: int = HISTORY_DAYS) -> dict:
    since = utcnow() - timedelta(days=days)
    counts = defaultdict(int)
    for ts in map(as_utc, timestamps):
        if ts is not None and ts >= since:
            counts[ts.date().isoformat()] += 1
    return dict(sorted(counts.items()))


@router.get("/overview")
def overview(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    users = session.exec(select(User)).all()
    exercises = session.exec(select(Exercise)).all()
    submissions = session.exec(select(Submission)).all()
    news = session.exec(select(News)).all()
    discussions = session.exec(select(Discussion)).all()

    active_since = utcnow() - timedelta(days=ACTIVE_DAYS)
    average_score = (
        sum(s.percentage for s in submissions) / len(submissions) if submissions else 0
    )

    return {
        "users": {
            "total": len(users),
            "students": sum(1 for u in users if u.role == "student"),
            "teachers": sum(1 for u in users if u.role == "teacher"),
            "active_last_7_days": sum(
                1 for u in users if u.last_login_at and as_utc(u.last_login_at) >= active_since
            ),
        },
        "exercises": {
            "total": len(exercises),
            "published": sum(1 for e in exercises if e.published),
            "total_submissions": len(submissions),
            "average_score": round(average_score, 1),
        },
        "news": {
            "total": len(news),
            "published": sum(1 for n in news if n.published),
            "total_views": sum(n.views for n in news),
            "total_likes": sum(n.likes for n in news),
        },
        "discussions": {"total": len(discussions)},
    }


@router.get("/user-activity")
def user_activity(
    limit: int = Query(50, ge=1, le=500),
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    users = session.exec(select(User)).all()
    # Users who never logged in sort last
    users = sorted(users, key=lambda u: as_utc(u.last_login_at) or EPOCH, reverse=True)
    return [
        {
            "uid": u.uid,
            "email": u.email,
            "display_name": u.display_name,
            "role": u.role,
            "last_login_at": u.last_login_at,
            "total_login_days": u.total_login_days,
            "created_at": u.created_at,
        }
        for u in users[:limit]
    ]


@router.get("/exercise-performance")
def exercise_performance(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    exercises = session.exec(select(Exercise)).all()
    exercises = sorted(exercises, key=lambda e: e.total_attempts, reverse=True)
    return [
        {
            "id": e.id,
            "title": e.title,
            "category": e.category,
            "difficulty": e.difficulty,
            "total_attempts": e.total_attempts,
            "average_score": e.average_score,
            "total_points": e.total_points,
            "published": e.published,
        }
        for e in exercises
    ]


@router.get("/student-progress")
def student_progress(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    progress = {}
    for s in session.exec(select(Submission)).all():
        entry = progress.setdefault(
            s.student_id,
            {
                "student_id": s.student_id,
                "student_name": s.student_name,
                "total_submissions": 0,
                "total_score": 0,
                "total_points": 0,
            },
        )
        entry["total_submissions"] += 1
        entry["total_score"] += s.score
        entry["total_points"] += s.total_points

    for entry in progress.values():
        entry["average_percentage"] = (
            entry["total_score"] / entry["total_points"] * 100 if entry["total_points"] > 0 else 0
        )
    return sorted(progress.values(), key=lambda e: e["average_percentage"], reverse=True)


@router.get("/login-stats")
def login_stats(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    users = session.exec(select(User)).all()
    return {
        "daily_logins": _daily_counts(u.last_login_at for u in users),
        "total_users": len(users),
        "total_logins": sum(u.total_login_days for u in users),
    }


@router.get("/quiz-attempts")
def quiz_attempts(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_teacher),
):
    submissions = session.exec(select(Submission)).all()
    return {
        "daily_attempts": _daily_counts(s.submitted_at for s in submissions),
        "total_attempts": len(submissions),
    }
