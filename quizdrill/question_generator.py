"""
Question generation service for QuizDrill.

Turns the next part of a student's reference document into a round of
questions, stores them, and moves the student's reading position on.
Called by the web API and by the CLI.

Run tests with: python -m pytest tests/test_question_generator.py -v
"""

import json
import logging
import re
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from quizdrill.database import Document, Question, User
from quizdrill.documents import get_document, get_latest_document
from quizdrill.ingestion import extract_text, split_into_paragraphs
from quizdrill.llm_provider import get_provider
from quizdrill.question_selector import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_MAX_EXCLUDED,
    build_random_prompt,
    build_sequential_prompt,
    collect_excluded_questions,
    is_first_round,
    select_paragraphs,
)

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.8
DEFAULT_MAX_DOCUMENT_CHARS = 30000
CHOICE_LABELS = "ABCDEFGH"

_JSON_OBJECT_RE = re.compile(r"\{[\s\S]*\}")

_TYPE_ALIASES = {
    "choice": "choice",
    "mc": "choice",
    "multiple_choice": "choice",
    "single_choice": "choice",
    "fill": "fill",
    "blank": "fill",
    "fill_blank": "fill",
    "fill_in_blank": "fill",
    "fill_in_the_blank": "fill",
}


class GenerationError(Exception):
    """Question generation failed; ``status_code`` is the HTTP status to report."""

    def __init__(self, message, status_code=500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def parse_questions_response(response_text: str) -> List[Dict[str, Any]]:
    """
    Pull the question list out of a raw LLM response.

    The outermost ``{...}`` block is parsed, so code fences or chatter
    around the JSON are ignored.

    Raises:
        ValueError: if no JSON object with a ``questions`` list is found.
    """
    match = _JSON_OBJECT_RE.search(response_text or "")
    if not match:
        raise ValueError("Could not find JSON in the model response")

    data = json.loads(match.group(0))
    questions = data.get("questions") if isinstance(data, dict) else None
    if not isinstance(questions, list):
        raise ValueError("Model response has no 'questions' list")
    return questions


def _normalize_options(options) -> List[Dict[str, str]]:
    if isinstance(options, dict):
        return [{"label": str(k).upper(), "text": str(options[k])} for k in sorted(options.keys())]
    normalized = []
    if isinstance(options, list):
        for i, opt in enumerate(options[: len(CHOICE_LABELS)]):
            if isinstance(opt, dict):
                label = str(opt.get("label") or CHOICE_LABELS[i]).strip().upper()
                text = str(opt.get("text", opt.get("content", "")))
            else:
                label = CHOICE_LABELS[i]
                text = str(opt)
            normalized.append({"label": label, "text": text})
    return normalized


def _resolve_choice_answer(answer, options: List[Dict[str, str]]) -> Optional[str]:
    labels = [opt["label"] for opt in options]
    if isinstance(answer, int) and not isinstance(answer, bool):
        return labels[answer] if 0 <= answer < len(labels) else None
    if not isinstance(answer, str):
        return None
    candidate = answer.strip().rstrip(".").upper()
    if candidate in labels:
        return candidate
    for opt in options:
        if opt["text"].strip() == answer.strip():
            return opt["label"]
    return None


def normalize_question(raw: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Normalize one raw LLM question dict; returns None when it is unusable.

    Handles common key variations returned by different LLM providers.
    """
    if not isinstance(raw, dict):
        return None

    content = None
    for key in ["content", "text", "question", "question_text", "stem"]:
        if raw.get(key):
            content = str(raw[key]).strip()
            break
    if not content:
        return None

    answer = raw.get("correct_answer", raw.get("answer"))
    qtype = _TYPE_ALIASES.get(str(raw.get("type", "")).strip().lower())
    if qtype is None:
        qtype = "choice" if raw.get("options") else "fill"

    if qtype == "choice":
        options = _normalize_options(raw.get("options"))
        if len(options) < 2:
            return None
        correct = _resolve_choice_answer(answer, options)
        if correct is None:
            return None
        return {"type": "choice", "content": content, "options": options, "correct_answer": correct}

    if answer is None or not str(answer).strip():
        return None
    return {"type": "fill", "content": content, "options": None, "correct_answer": str(answer).strip()}


def _resolve_document(session: Session, user: User) -> Document:
    if user.selected_document_id is not None:
        document = get_document(session, user.selected_document_id)
        if document is None:
            logger.warning("generate_questions: document_id=%s not found", user.selected_document_id)
            raise GenerationError("The selected question bank no longer exists.", 404)
        return document

    document = get_latest_document(session)
    if document is None:
        raise GenerationError("No question bank is available yet. Ask your teacher to upload a document.", 400)
    return document


def generate_questions(session: Session, user_id: int, config: dict) -> Dict[str, Any]:
    """
    Generate and store one round of questions for a student.

    In sequential mode the round covers the next paragraphs after the
    student's stored position (wrapping to the start at the end of the
    document); otherwise questions may come from anywhere in the document.
    Questions the student already answered from the same document are
    listed in the prompt so they are not asked again.

    Args:
        session: SQLAlchemy session (caller is responsible for lifecycle)
        user_id: ID of the student
        config: Application config dict (``llm`` and ``generation`` sections)

    Returns:
        Dict with ``questions`` (without answers), ``document`` and ``progress``

    Raises:
        GenerationError: with a 4xx status for bad input, 500 otherwise
    """
    gen_config = config.get("generation", {})
    batch_size = gen_config.get("questions_per_round", DEFAULT_BATCH_SIZE)
    max_excluded = gen_config.get("max_excluded_questions", DEFAULT_MAX_EXCLUDED)

    user = session.query(User).filter_by(id=user_id).first()
    if user is None:
        logger.warning("generate_questions: user_id=%s not found", user_id)
        raise GenerationError("User not found.", 404)

    document = _resolve_document(session, user)
    logger.info(
        "generate_questions: user=%s document=%s sequential=%s index=%s",
        user.username,
        document.filename,
        user.sequential_mode,
        user.current_paragraph_index,
    )

    try:
        content = extract_text(document.file_path)
    except Exception as e:
        logger.exception("generate_questions: could not read %s", document.file_path)
        raise GenerationError("The question bank document could not be read.", 500) from e

    excluded = collect_excluded_questions(
        session, user.id, document.id, limit=max_excluded, source_document=document.filename
    )
    logger.info("generate_questions: excluding %d previously answered questions", len(excluded))

    progress = None
    if user.sequential_mode:
        paragraphs = split_into_paragraphs(content)
        if not paragraphs:
            raise GenerationError("The question bank document has no usable paragraphs.", 400)
        offset = user.current_paragraph_index or 0
        if user.progress_document_id is not None and user.progress_document_id != document.id:
            # The default bank moved on to a newer upload
            logger.info(
                "generate_questions: document changed from %s to %s, starting from the first paragraph",
                user.progress_document_id,
                document.id,
            )
            offset = 0
        selection = select_paragraphs(paragraphs, offset, batch_size)
        prompt = build_sequential_prompt(selection, excluded, is_first_round(selection["start"], excluded))
        progress = {
            "start": selection["start"],
            "next_offset": selection["next_offset"],
            "total_paragraphs": len(paragraphs),
            "wrapped": selection["wrapped"],
        }
    else:
        prompt = build_random_prompt(
            content,
            excluded,
            total=batch_size,
            max_chars=gen_config.get("max_document_chars", DEFAULT_MAX_DOCUMENT_CHARS),
        )

    try:
        provider = get_provider(config, api_key=user.api_key)
        response_text = provider.generate(
            [prompt],
            json_mode=True,
            temperature=gen_config.get("temperature", DEFAULT_TEMPERATURE),
        )
    except Exception as e:
        logger.error("generate_questions: LLM call failed: %s", e)
        raise GenerationError("Question generation failed. Check the provider settings and try again.", 500) from e

    try:
        raw_questions = parse_questions_response(response_text)
    except ValueError as e:
        logger.error("generate_questions: could not parse response: %s", e)
        raise GenerationError("Could not parse the generated questions.", 500) from e

    normalized = []
    for raw in raw_questions:
        q = normalize_question(raw)
        if q is None:
            logger.warning("generate_questions: dropping malformed question: %r", raw)
            continue
        normalized.append(q)

    if not normalized:
        raise GenerationError("The model returned no usable questions.", 500)

    saved = []
    for q in normalized:
        record = Question(
            content=q["content"],
            question_type=q["type"],
            options=q["options"],
            correct_answer=q["correct_answer"],
            document_id=document.id,
            source_document=document.filename,
        )
        session.add(record)
        saved.append(record)

    if progress is not None:
        user.current_paragraph_index = progress["next_offset"]
        user.progress_document_id = document.id
    session.commit()

    if progress is not None:
        logger.info("generate_questions: current_paragraph_index -> %s", progress["next_offset"])

    return {
        "questions": [
            {"id": q.id, "type": q.question_type, "content": q.content, "options": q.options}
            for q in saved
        ],
        "document": {"id": document.id, "filename": document.filename},
        "progress": progress,
    }
