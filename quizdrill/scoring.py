"""
Answer grading and score bookkeeping for QuizDrill.
"""

import logging
from typing import Any, Dict, List

from sqlalchemy.orm import Session

from quizdrill.database import Question, ScoreRecord, User

logger = logging.getLogger(__name__)

CHOICE_POINTS = 10
FILL_POINTS_PER_CHAR = 5


class ScoringError(Exception):
    """Answer submission failed; ``status_code`` is the HTTP status to report."""

    def __init__(self, message, status_code=400):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def _parse_question_id(value):
    """Question ids arrive as ints or numeric strings; anything else is None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def grade_answer(question: Question, user_answer: str):
    """
    Grade one answer.

    Multiple-choice: +10 when right, -10 when wrong.
    Fill-in-the-blank: 5 points per character of a right answer, nothing
    taken off for a wrong one.

    Returns:
        (is_correct, score_change)
    """
    answer = (user_answer or "").strip()
    expected = (question.correct_answer or "").strip()

    if question.question_type == "choice":
        is_correct = answer.upper() == expected.upper()
        return is_correct, CHOICE_POINTS if is_correct else -CHOICE_POINTS

    if question.question_type == "fill":
        is_correct = answer == expected
        return is_correct, len(answer) * FILL_POINTS_PER_CHAR if is_correct else 0

    logger.warning("grade_answer: unknown question type %r for question %s", question.question_type, question.id)
    return False, 0


def submit_answers(session: Session, user_id: int, answers: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Grade a batch of answers, log each one and update the user's total.

    Args:
        session: SQLAlchemy session
        user_id: ID of the answering user
        answers: ``[{"questionId": ..., "userAnswer": ...}, ...]``;
                 answers to unknown questions are skipped

    Returns:
        Dict with per-answer ``results``, ``totalScoreChange`` and ``newTotalScore``

    Raises:
        ScoringError: 404 when the user does not exist, 400 for a malformed answer
    """
    user = session.query(User).filter_by(id=user_id).first()
    if user is None:
        logger.warning("submit_answers: user_id=%s not found", user_id)
        raise ScoringError("User not found.", 404)

    parsed = []
    for answer in answers:
        if not isinstance(answer, dict):
            raise ScoringError("Each answer must be an object with questionId and userAnswer.")
        question_id = _parse_question_id(answer.get("questionId"))
        if question_id is None:
            raise ScoringError("questionId must be an integer.")
        user_answer = answer.get("userAnswer")
        parsed.append((question_id, "" if user_answer is None else str(user_answer)))

    total_change = 0
    results = []
    for question_id, user_answer in parsed:
        question = session.query(Question).filter_by(id=question_id).first()
        if question is None:
            logger.warning("submit_answers: question_id=%s not found, skipping", question_id)
            continue

        is_correct, score_change = grade_answer(question, user_answer)
        total_change += score_change

        session.add(
            ScoreRecord(
                user_id=user.id,
                question_id=question.id,
                is_correct=is_correct,
                score_change=score_change,
                user_answer=user_answer,
            )
        )
        results.append(
            {
                "questionId": question.id,
                "isCorrect": is_correct,
                "scoreChange": score_change,
                "correctAnswer": question.correct_answer,
            }
        )

    user.total_score = (user.total_score or 0) + total_change
    session.commit()

    return {
        "results": results,
        "totalScoreChange": total_change,
        "newTotalScore": user.total_score,
    }


def get_student_rankings(session: Session) -> List[Dict[str, Any]]:
    """List all students, highest total score first."""
    students = (
        session.query(User)
        .filter_by(role="student")
        .order_by(User.total_score.desc(), User.created_at.asc())
        .all()
    )
    return [
        {
            "id": s.id,
            "username": s.username,
            "total_score": s.total_score,
            "created_at": s.created_at.isoformat() if s.created_at else None,
        }
        for s in students
    ]
