"""
Progress-aware question selection for QuizDrill.

Decides which part of a reference document the next round of questions
covers, remembers which questions a student has already answered, and
builds the generation prompt from both.
"""

import logging
import math
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from quizdrill.database import Question, ScoreRecord

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5
DEFAULT_MAX_EXCLUDED = 50
PARAGRAPH_PREVIEW_CHARS = 150
EXCLUDED_PREVIEW_CHARS = 100
FILL_ANSWER_MAX_CHARS = 10
CHOICE_SHARE = 0.6

JSON_FORMAT = """{
  "questions": [
    {
      "type": "choice",
      "content": "Question text",
      "options": [
        {"label": "A", "text": "Option A text"},
        {"label": "B", "text": "Option B text"},
        {"label": "C", "text": "Option C text"},
        {"label": "D", "text": "Option D text"}
      ],
      "correct_answer": "A"
    },
    {
      "type": "fill",
      "content": "Question text (use ____ for the blank)",
      "correct_answer": "Answer (at most 10 characters)"
    }
  ]
}"""


def select_paragraphs(paragraphs: List[str], offset: int, batch_size: int = DEFAULT_BATCH_SIZE) -> Dict[str, Any]:
    """
    Pick the next run of paragraphs to write questions for.

    Args:
        paragraphs: All usable paragraphs of the document, in order
        offset: The student's stored paragraph index
        batch_size: Maximum number of paragraphs (one question each)

    Returns:
        Dict with ``start``, ``paragraphs``, ``next_offset`` and ``wrapped``.
        An offset at or past the end of the document wraps back to 0.
    """
    if not paragraphs:
        return {"start": 0, "paragraphs": [], "next_offset": 0, "wrapped": False}

    start = offset if offset and offset > 0 else 0
    wrapped = False
    if start >= len(paragraphs):
        logger.info("Reached end of document at index %s, cycling back to the beginning", start)
        start = 0
        wrapped = True

    count = min(batch_size, len(paragraphs) - start)
    return {
        "start": start,
        "paragraphs": paragraphs[start:start + count],
        "next_offset": start + count,
        "wrapped": wrapped,
    }


def question_type_split(total: int):
    """Return ``(choice_count, fill_count)``: 60% multiple-choice rounded up, the rest fill-in."""
    choice = min(total, math.ceil(total * CHOICE_SHARE))
    return choice, total - choice


def collect_excluded_questions(
    session: Session,
    user_id: int,
    document_id: int,
    limit: int = DEFAULT_MAX_EXCLUDED,
    source_document: Optional[str] = None,
) -> List[str]:
    """
    List previews of questions the user already answered from this document.

    Most recently answered first, one entry per question, at most ``limit``.
    Questions stored before they were linked to a document id are matched
    on ``source_document`` (the filename) instead.
    """
    same_document = Question.document_id == document_id
    if source_document:
        same_document = or_(
            same_document,
            and_(Question.document_id.is_(None), Question.source_document == source_document),
        )

    rows = (
        session.query(Question.id, Question.content)
        .join(ScoreRecord, ScoreRecord.question_id == Question.id)
        .filter(ScoreRecord.user_id == user_id, same_document)
        .order_by(ScoreRecord.created_at.desc(), ScoreRecord.id.desc())
        .all()
    )

    seen = set()
    excluded = []
    for question_id, content in rows:
        if question_id in seen:
            continue
        seen.add(question_id)
        excluded.append((content or "")[:EXCLUDED_PREVIEW_CHARS])
        if len(excluded) >= limit:
            break
    return excluded


def is_first_round(start: int, excluded: List[str]) -> bool:
    """A round is the first one when it starts at the top and nothing was answered yet."""
    return start == 0 and not excluded


def _excluded_section(excluded: List[str]) -> str:
    if not excluded:
        return ""
    lines = "\n".join(f"{i}. {q}..." for i, q in enumerate(excluded, 1))
    return f"Previously asked questions. Do not write anything similar to these:\n{lines}\n"


def build_sequential_prompt(selection: Dict[str, Any], excluded: List[str], first_round: bool) -> str:
    """Build the prompt that asks for one question per selected paragraph."""
    selected = selection["paragraphs"]
    total = len(selected)
    choice, fill = question_type_split(total)

    paragraph_blocks = "".join(
        f'\nParagraph {selection["start"] + i + 1} (write exactly one question for this paragraph):\n'
        f'"{para[:PARAGRAPH_PREVIEW_CHARS]}..."\n'
        for i, para in enumerate(selected)
    )

    new_round_notice = ""
    vary_rule = "Cover the key point of each paragraph."
    if not first_round:
        new_round_notice = "Important: this is a new round. Write questions completely different from earlier ones!\n"
        vary_rule = "Questions must differ from earlier ones: change the wording, the angle or the point tested."

    return f"""You are an experienced exam question writer. Write one question for each paragraph below, based only on that paragraph.

{new_round_notice}
Generate exactly {total} questions.
Paragraphs, in order:
{paragraph_blocks}
{_excluded_section(excluded)}
Rules:
1. The first {choice} questions are multiple-choice (type "choice"); the last {fill} are fill-in-the-blank (type "fill").
2. Each question must be based strictly on its own paragraph, never on another paragraph.
3. {vary_rule}
4. Fill-in-the-blank answers must be at most {FILL_ANSWER_MAX_CHARS} characters.

Return the questions in exactly this JSON format:

{JSON_FORMAT}

Important:
- Follow the paragraph order, one question per paragraph.
- Return only JSON, with no other text."""


def build_random_prompt(
    content: str,
    excluded: List[str],
    total: int = DEFAULT_BATCH_SIZE,
    max_chars: int = None,
) -> str:
    """Build the prompt that draws questions from anywhere in the document."""
    choice, fill = question_type_split(total)
    if max_chars and len(content) > max_chars:
        content = content[:max_chars]

    return f"""You are an experienced exam question writer. Write {choice} multiple-choice questions and {fill} fill-in-the-blank questions from the document below.

Generate exactly {total} questions.

Rules:
1. The first {choice} questions are multiple-choice (type "choice"); the last {fill} are fill-in-the-blank (type "fill").
2. Questions may come from any part of the document.
3. Every round must differ from earlier ones; test different key points.
4. Fill-in-the-blank answers must be at most {FILL_ANSWER_MAX_CHARS} characters.

{_excluded_section(excluded)}
Document:
{content}

Return the questions in exactly this JSON format, with no other text:

{JSON_FORMAT}

Important:
- Return only JSON, with no other text."""
