"""API tests for exercise authoring, submission and grading."""

from datetime import datetime, timezone

import pytest
from sqlmodel import Session, select

from learning_platform.errors import DuplicateSubmission
from learning_platform.models import Exercise, Submission, User, as_utc
from learning_platform.services import exercise_service

SINGLE_10 = {
    "type": "single-choice",
    "question": "Capital of Sri Lanka?",
    "options": ["Kandy", "Sri Jayawardenepura Kotte", "Galle"],
    "correct_answer": 1,
    "points": 10,
}
MULTI_5 = {
    "type": "multiple-select",
    "question": "Which are vowels?",
    "options": ["a", "b", "e"],
    "correct_answers": [0, 2],
    "points": 5,
}
SHORT_5 = {"type": "short-answer", "question": "Describe Vesak.", "points": 5}
SINGLE_5 = {"type": "single-choice", "question": "1 + 1?", "options": ["2", "3"], "correct_answer": 0, "points": 5}
TRUE_FALSE = {"type": "true-false", "question": "Is the sky blue?", "correct_answer": 0, "points": 1}


def _exercise(session: Session, exercise_id: int) -> Exercise:
    session.expire_all()
    return session.get(Exercise, exercise_id)


class TestAuthoring:
    """Teachers create, edit, publish and delete exercises."""

    def test_create_computes_total_points(self, client, teacher_headers, session):
        resp = client.post(
            "/api/exercises/",
            json={"title": "Mixed", "questions": [SINGLE_10, MULTI_5]},
            headers=teacher_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["message"] == "Exercise created successfully"

        exercise = _exercise(session, body["id"])
        assert exercise.total_points == 15
        assert exercise.published is False
        assert exercise.created_by == "teacher-1"
        assert exercise.created_by_name == "Ms Perera"
        assert exercise.category == "General"
        assert exercise.difficulty == "medium"

    def test_create_requires_questions(self, client, teacher_headers):
        resp = client.post("/api/exercises/", json={"title": "Empty", "questions": []}, headers=teacher_headers)
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request body"

    def test_create_rejects_out_of_range_answer(self, client, teacher_headers):
        bad = dict(SINGLE_10, correct_answer=7)
        resp = client.post("/api/exercises/", json={"title": "Bad", "questions": [bad]}, headers=teacher_headers)
        assert resp.status_code == 400

    def test_create_strips_html_from_title(self, client, teacher_headers, session):
        resp = client.post(
            "/api/exercises/",
            json={"title": "<b>Tamil</b> nouns", "questions": [TRUE_FALSE]},
            headers=teacher_headers,
        )
        assert _exercise(session, resp.json()["id"]).title == "Tamil nouns"

    def test_student_cannot_create(self, client, student_headers):
        resp = client.post("/api/exercises/", json={"title": "X", "questions": [TRUE_FALSE]}, headers=student_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Access denied. Required role: teacher"

    def test_update_recomputes_total_points(self, client, teacher_headers, make_exercise, session):
        exercise_id = make_exercise([SINGLE_10])
        resp = client.put(
            f"/api/exercises/{exercise_id}",
            json={"questions": [SINGLE_10, SHORT_5, TRUE_FALSE], "difficulty": "hard"},
            headers=teacher_headers,
        )
        assert resp.status_code == 200
        exercise = _exercise(session, exercise_id)
        assert exercise.total_points == 16
        assert exercise.difficulty == "hard"
        assert exercise.title == "Sinhala grammar"

    def test_update_keeps_question_defaults(self, client, teacher_headers, make_exercise, session):
        """Questions sent without points or options still get their defaults."""
        exercise_id = make_exercise([SINGLE_10])
        bare_true_false = {"type": "true-false", "question": "Is Colombo a port city?", "correct_answer": 0}
        resp = client.put(
            f"/api/exercises/{exercise_id}",
            json={"questions": [bare_true_false, SINGLE_5]},
            headers=teacher_headers,
        )
        assert resp.status_code == 200
        exercise = _exercise(session, exercise_id)
        assert exercise.questions[0]["options"] == ["True", "False"]
        assert exercise.questions[0]["points"] == 1
        assert exercise.total_points == 6

    def test_update_null_description_clears_it(self, client, teacher_headers, make_exercise, session):
        exercise_id = make_exercise([SINGLE_10], description="Week 1 revision")
        resp = client.put(f"/api/exercises/{exercise_id}", json={"description": None}, headers=teacher_headers)
        assert resp.status_code == 200
        assert _exercise(session, exercise_id).description == ""

    def test_naive_due_date_is_read_as_utc(self, client, teacher_headers, make_exercise, session):
        exercise_id = make_exercise([SINGLE_10])
        resp = client.put(
            f"/api/exercises/{exercise_id}", json={"due_date": "2026-12-01T08:30:00"}, headers=teacher_headers
        )
        assert resp.status_code == 200
        due = as_utc(_exercise(session, exercise_id).due_date)
        assert due == datetime(2026, 12, 1, 8, 30, tzinfo=timezone.utc)

    def test_only_owner_can_update(self, client, make_exercise, other_teacher, headers_for):
        exercise_id = make_exercise([SINGLE_10])
        resp = client.put(
            f"/api/exercises/{exercise_id}", json={"title": "Mine now"}, headers=headers_for(other_teacher.uid)
        )
        assert resp.status_code == 403

    def test_delete_cascades_to_submissions(
        self, client, teacher_headers, student_headers, make_exercise, session
    ):
        exercise_id = make_exercise([SINGLE_10])
        client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1]}, headers=student_headers)

        resp = client.delete(f"/api/exercises/{exercise_id}", headers=teacher_headers)
        assert resp.status_code == 200
        session.expire_all()
        assert session.get(Exercise, exercise_id) is None
        assert session.exec(select(Submission)).all() == []

    def test_missing_exercise(self, client, teacher_headers):
        resp = client.get("/api/exercises/999", headers=teacher_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Exercise not found"}


class TestVisibility:
    def test_students_only_list_published(self, client, student_headers, teacher_headers, make_exercise):
        published_id = make_exercise([SINGLE_10], title="Published")
        make_exercise([SINGLE_10], published=False, title="Draft")

        student_ids = [e["id"] for e in client.get("/api/exercises/", headers=student_headers).json()]
        assert student_ids == [published_id]

        teacher_list = client.get("/api/exercises/", headers=teacher_headers).json()
        assert len(teacher_list) == 2
        drafts = client.get("/api/exercises/?status=draft", headers=teacher_headers).json()
        assert [e["title"] for e in drafts] == ["Draft"]

    def test_filters(self, client, teacher_headers, make_exercise):
        make_exercise([SINGLE_10], category="Tamil", difficulty="easy")
        make_exercise([SINGLE_10], category="Sinhala", difficulty="hard")
        resp = client.get("/api/exercises/?category=Tamil", headers=teacher_headers)
        assert [e["category"] for e in resp.json()] == ["Tamil"]
        resp = client.get("/api/exercises/?difficulty=hard&category=all", headers=teacher_headers)
        assert [e["difficulty"] for e in resp.json()] == ["hard"]

    def test_student_cannot_open_draft(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10], published=False)
        resp = client.get(f"/api/exercises/{exercise_id}", headers=student_headers)
        assert resp.status_code == 403

    def test_answer_key_hidden_until_submitted(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10, MULTI_5])

        before = client.get(f"/api/exercises/{exercise_id}", headers=student_headers).json()
        assert before["submission"] is None
        assert all("correct_answer" not in q and "correct_answers" not in q for q in before["questions"])

        client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1, [0, 2]]}, headers=student_headers)
        after = client.get(f"/api/exercises/{exercise_id}", headers=student_headers).json()
        assert after["submission"]["score"] == 15
        assert after["questions"][0]["correct_answer"] == 1

    def test_categories_from_published_only(self, client, student_headers, make_exercise):
        make_exercise([SINGLE_10], category="Tamil")
        make_exercise([SINGLE_10], category="English")
        make_exercise([SINGLE_10], category="Secret", published=False)
        resp = client.get("/api/exercises/meta/categories", headers=student_headers)
        assert resp.json() == ["English", "Tamil"]


class TestSubmission:
    def test_correct_answer_full_marks(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10])
        resp = client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1]}, headers=student_headers)
        assert resp.status_code == 201
        body = resp.json()
        assert body["score"] == 10
        assert body["percentage"] == 100
        assert body["needs_grading"] is False

    def test_wrong_answer_zero(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10])
        body = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": [0]}, headers=student_headers
        ).json()
        assert body["score"] == 0
        assert body["percentage"] == 0

    def test_multiple_select_set_mismatch(self, client, student_headers, make_exercise, session):
        exercise_id = make_exercise([MULTI_5])
        resp = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": [[0, 1]]}, headers=student_headers
        )
        submission = session.get(Submission, resp.json()["id"])
        assert submission.answers[0]["is_correct"] is False
        assert submission.answers[0]["earned_points"] == 0

    def test_short_answer_needs_grading(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SHORT_5, SINGLE_5])
        body = client.post(
            f"/api/exercises/{exercise_id}/submit",
            json={"answers": ["Festival of lights", 0]},
            headers=student_headers,
        ).json()
        assert body["score"] == 5
        assert body["needs_grading"] is True

    def test_running_average(self, client, make_exercise, student_user, second_student, headers_for, session):
        exercise_id = make_exercise([TRUE_FALSE] * 5)
        exercise = _exercise(session, exercise_id)
        assert (exercise.total_attempts, exercise.average_score) == (0, 0)

        client.post(
            f"/api/exercises/{exercise_id}/submit",
            json={"answers": [0, 0, 0, 0, 1]},
            headers=headers_for(student_user.uid),
        )
        exercise = _exercise(session, exercise_id)
        assert exercise.total_attempts == 1
        assert exercise.average_score == pytest.approx(80)

        client.post(
            f"/api/exercises/{exercise_id}/submit",
            json={"answers": [0, 0, 0, 1, 1]},
            headers=headers_for(second_student.uid),
        )
        exercise = _exercise(session, exercise_id)
        assert exercise.total_attempts == 2
        assert exercise.average_score == pytest.approx(70)

    def test_resubmission_rejected_without_changes(self, client, student_headers, make_exercise, session):
        exercise_id = make_exercise([SINGLE_10])
        client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1]}, headers=student_headers)

        resp = client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [0]}, headers=student_headers)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Exercise already submitted"}

        exercise = _exercise(session, exercise_id)
        assert exercise.total_attempts == 1
        assert exercise.average_score == 100
        submissions = session.exec(select(Submission)).all()
        assert len(submissions) == 1
        assert submissions[0].score == 10

    def test_unique_constraint_catches_race(self, client, student_user, make_exercise, session, monkeypatch):
        exercise_id = make_exercise([SINGLE_10])
        student = session.get(User, student_user.uid)
        exercise_service.submit_exercise(session, exercise_id, student, [1])

        # Simulate a concurrent request that passed the pre-check
        monkeypatch.setattr(exercise_service, "find_submission", lambda *args: None)
        with pytest.raises(DuplicateSubmission):
            exercise_service.submit_exercise(session, exercise_id, student, [0])

        exercise = _exercise(session, exercise_id)
        assert exercise.total_attempts == 1
        assert len(session.exec(select(Submission)).all()) == 1

    def test_teacher_cannot_submit(self, client, teacher_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10])
        resp = client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1]}, headers=teacher_headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Only students can submit exercises"

    def test_cannot_submit_draft(self, client, student_headers, make_exercise):
        exercise_id = make_exercise([SINGLE_10], published=False)
        resp = client.post(f"/api/exercises/{exercise_id}/submit", json={"answers": [1]}, headers=student_headers)
        assert resp.status_code == 403

    def test_submission_listings(self, client, teacher_headers, student_headers, make_exercise):
        first = make_exercise([SINGLE_10], title="First")
        second = make_exercise([SINGLE_10], title="Second")
        client.post(f"/api/exercises/{first}/submit", json={"answers": [1], "time_spent": 30}, headers=student_headers)
        client.post(f"/api/exercises/{second}/submit", json={"answers": [0]}, headers=student_headers)

        mine = client.get("/api/exercises/my/submissions", headers=student_headers).json()
        assert {s["exercise_title"] for s in mine} == {"First", "Second"}

        per_exercise = client.get(f"/api/exercises/{first}/submissions", headers=teacher_headers).json()
        assert len(per_exercise) == 1
        assert per_exercise[0]["student_name"] == "Nimal"
        assert per_exercise[0]["time_spent_seconds"] == 30


class TestManualGrading:
    def test_grading_updates_submission_and_average(
        self, client, teacher_headers, student_headers, make_exercise, session
    ):
        exercise_id = make_exercise([SHORT_5, SINGLE_5])
        submission_id = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": ["Lanterns", 0]}, headers=student_headers
        ).json()["id"]
        assert _exercise(session, exercise_id).average_score == pytest.approx(50)

        resp = client.patch(
            f"/api/exercises/submissions/{submission_id}/grade",
            json={"grades": {"0": 3}},
            headers=teacher_headers,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["score"] == 8
        assert body["percentage"] == pytest.approx(80)
        assert body["needs_grading"] is False
        assert _exercise(session, exercise_id).average_score == pytest.approx(80)

    def test_cannot_grade_auto_graded_question(self, client, teacher_headers, student_headers, make_exercise):
        exercise_id = make_exercise([SHORT_5, SINGLE_5])
        submission_id = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": ["x", 1]}, headers=student_headers
        ).json()["id"]
        resp = client.patch(
            f"/api/exercises/submissions/{submission_id}/grade",
            json={"grades": {"1": 5}},
            headers=teacher_headers,
        )
        assert resp.status_code == 400

    def test_points_bounded(self, client, teacher_headers, student_headers, make_exercise):
        exercise_id = make_exercise([SHORT_5])
        submission_id = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": ["x"]}, headers=student_headers
        ).json()["id"]
        resp = client.patch(
            f"/api/exercises/submissions/{submission_id}/grade",
            json={"grades": {"0": 6}},
            headers=teacher_headers,
        )
        assert resp.status_code == 400

    def test_only_exercise_owner_grades(self, client, student_headers, make_exercise, other_teacher, headers_for):
        exercise_id = make_exercise([SHORT_5])
        submission_id = client.post(
            f"/api/exercises/{exercise_id}/submit", json={"answers": ["x"]}, headers=student_headers
        ).json()["id"]
        resp = client.patch(
            f"/api/exercises/submissions/{submission_id}/grade",
            json={"grades": {"0": 1}},
            headers=headers_for(other_teacher.uid),
        )
        assert resp.status_code == 403
