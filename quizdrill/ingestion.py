"""
Reads uploaded reference documents and splits them into paragraphs.
"""

import logging
import os
import re

from docx import Document

logger = logging.getLogger(__name__)

# Paragraphs this short are headings, page numbers or stray lines
MIN_PARAGRAPH_LENGTH = 10

_PARAGRAPH_BREAK = re.compile(r"\n\s*\n|\n")


def extract_text(filepath):
    """
    Extract the raw text of a .docx or .txt document.

    Raises:
        ValueError: for unsupported file types.
    """
    ext = os.path.splitext(filepath)[1].lower()
    if ext == ".docx":
        doc = Document(filepath)
        return "\n".join(para.text for para in doc.paragraphs)
    if ext == ".txt":
        with open(filepath, "r", encoding="utf-8") as f:
            return f.read()
    raise ValueError(f"Unsupported document type: {ext or filepath}")


def split_into_paragraphs(content):
    """Split document text into natural paragraphs, dropping very short lines."""
    if not content:
        return []
    pieces = (p.strip() for p in _PARAGRAPH_BREAK.split(content))
    return [p for p in pieces if len(p) > MIN_PARAGRAPH_LENGTH]
