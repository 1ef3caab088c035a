"""
Mock LLM response templates for cost-free development.

Produces realistic question JSON sized to whatever the prompt asks for,
so the full generation path can run without an external API.
"""

import json
import random
import re
from typing import Any, Dict, List

STUDY_TOPICS = [
    "photosynthesis", "supply and demand", "the French Revolution",
    "Newton's laws", "cell division", "plate tectonics",
    "the water cycle", "market equilibrium", "binary search",
]

_COUNT_RE = re.compile(r"Generate exactly (\d+) questions")
_CHOICE_RE = re.compile(r"The first (\d+) questions are multiple-choice")
_PARAGRAPH_RE = re.compile(r"Paragraph (\d+) \(write exactly one question")


def _requested_counts(prompt: str):
    """Return (total, choice_count) parsed from the prompt, defaulting to 5/3."""
    total_match = _COUNT_RE.search(prompt)
    total = int(total_match.group(1)) if total_match else 5
    choice_match = _CHOICE_RE.search(prompt)
    choice = int(choice_match.group(1)) if choice_match else min(3, total)
    return total, min(choice, total)


def _choice_question(subject: str) -> Dict[str, Any]:
    correct = random.choice("ABCD")
    options = []
    for label in "ABCD":
        if label == correct:
            text = f"The statement about {subject} given in the text"
        else:
            text = f"A plausible but unsupported claim about {subject}"
        options.append({"label": label, "text": text})
    return {
        "type": "choice",
        "content": f"Which of the following is stated about {subject}?",
        "options": options,
        "correct_answer": correct,
    }


def _fill_question(subject: str) -> Dict[str, Any]:
    return {
        "type": "fill",
        "content": f"In the text, the key term discussed in {subject} is ____.",
        "correct_answer": "answer",
    }


def get_question_response(prompt: str) -> str:
    """
    Generate a mock question set for a generation prompt.

    Returns:
        JSON string of the form ``{"questions": [...]}``
    """
    total, choice = _requested_counts(prompt)
    positions = _PARAGRAPH_RE.findall(prompt)

    subjects: List[str] = []
    for i in range(total):
        if i < len(positions):
            subjects.append(f"paragraph {positions[i]}")
        else:
            subjects.append(random.choice(STUDY_TOPICS))

    questions = []
    for i, subject in enumerate(subjects):
        questions.append(_choice_question(subject) if i < choice else _fill_question(subject))

    return json.dumps({"questions": questions}, indent=2, ensure_ascii=False)
