"""Automatic grading of exercise answers.

Everything here is pure: questions are the plain dicts stored on an exercise,
answers are whatever JSON the student sent.
"""

from typing import Any, List, Optional, Sequence

CHOICE_TYPES = ("single-choice", "mcq", "true-false")
MULTI_SELECT_TYPE = "multiple-select"
MANUAL_TYPES = ("short-answer",)


def _is_index(value: Any) -> bool:
    # bool is an int subclass but never a valid option index
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _index_set(value: Any) -> Optional[frozenset]:
    """Turn a submitted selection into a set, or None if it is not a selection."""
    if not isinstance(value, (list, tuple)):
        return None
    if any(isinstance(v, bool) for v in value):
        return None
    try:
        return frozenset(value)
    except TypeError:
        return None


def grade_answer(question_id: int, question: dict, student_answer: Any) -> dict:
    """Grade one answer against one question.

    A missing or malformed answer simply does not match; it never raises.
    """
    qtype = question.get("type")
    points = question.get("points", 1)
    is_correct = False

    if qtype in CHOICE_TYPES:
        correct = question.get("correct_answer")
        is_correct = (
            _is_index(student_answer)
            and _is_index(correct)
            and student_answer == correct
        )
    elif qtype == MULTI_SELECT_TYPE:
        correct_set = _index_set(question.get("correct_answers") or [])
        student_set = _index_set(student_answer if student_answer is not None else [])
        is_correct = (
            correct_set is not None
            and student_set is not None
            and len(correct_set) == len(student_set)
            and all(a in student_set for a in correct_set)
        )

    return {
        "question_id": question_id,
        "student_answer": student_answer,
        "is_correct": is_correct,
        "earned_points": points if is_correct else 0,
        "needs_manual_grading": qtype in MANUAL_TYPES,
    }


def compute_percentage(score: int, total_points: int) -> float:
    if total_points <= 0:
        return 0.0
    return (score / total_points) * 100


def grade_submission(questions: Sequence[dict], answers: Sequence[Any], total_points: int) -> dict:
    """Grade every question of an exercise and fold the results together.

    ``answers`` is indexed like ``questions``; a short list means the trailing
    questions were left blank.
    """
    graded: List[dict] = []
    for index, question in enumerate(questions):
        student_answer = answers[index] if index < len(answers) else None
        graded.append(grade_answer(index, question, student_answer))

    score = sum(a["earned_points"] for a in graded)
    return {
        "answers": graded,
        "score": score,
        "percentage": compute_percentage(score, total_points),
        "needs_grading": any(a["needs_manual_grading"] for a in graded),
    }


def total_points_for(questions: Sequence[dict]) -> int:
    return sum(q.get("points", 1) for q in questions)


def incremental_mean(average: float, count: int, value: float) -> float:
    """Fold ``value`` into a running mean over ``count`` earlier values."""
    if count == 0:
        return value
    return ((average * count) + value) / (count + 1)
