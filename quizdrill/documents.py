"""
Reference document storage for QuizDrill.

Uploaded files are kept on disk under a timestamped name; the database
only records where each one lives.
"""

import logging
import os
import time

from sqlalchemy.orm import Session
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from quizdrill.database import Document

logger = logging.getLogger(__name__)

ALLOWED_DOCUMENT_EXTENSIONS = {".docx", ".txt"}

# Pseudo bank meaning "whatever was uploaded most recently"
DEFAULT_BANK_ID = "default"
DEFAULT_BANK_NAME = "Latest uploaded document"


def is_allowed_document(filename):
    """Check the extension of an uploaded file name."""
    return os.path.splitext(filename or "")[1].lower() in ALLOWED_DOCUMENT_EXTENSIONS


def save_upload(session: Session, file_storage, upload_dir: str) -> Document:
    """
    Store an uploaded document and record it.

    Args:
        session: SQLAlchemy session
        file_storage: werkzeug FileStorage from the request
        upload_dir: Directory to save files into (created if missing)

    Returns:
        The new Document

    Raises:
        ValueError: if no file was given or its type is not supported.
    """
    if file_storage is None or not file_storage.filename:
        raise ValueError("Please choose a file to upload.")

    original_name = file_storage.filename
    if not is_allowed_document(original_name):
        allowed = ", ".join(sorted(ALLOWED_DOCUMENT_EXTENSIONS))
        raise ValueError(f"Only {allowed} documents are supported.")

    os.makedirs(upload_dir, exist_ok=True)
    stem, ext = os.path.splitext(original_name)
    # secure_filename drops non-ASCII characters, so keep the extension separately
    safe_stem = secure_filename(stem) or "document"
    stored_name = f"{int(time.time() * 1000)}_{safe_stem}{ext.lower()}"
    filepath = os.path.abspath(os.path.join(upload_dir, stored_name))
    file_storage.save(filepath)

    document = Document(filename=original_name, file_path=filepath)
    session.add(document)
    session.commit()
    logger.info("Document saved: %s -> %s", original_name, filepath)
    return document


def import_document(session: Session, source_path: str, upload_dir: str) -> Document:
    """Copy a document from the local filesystem into the upload directory and record it."""
    with open(source_path, "rb") as f:
        storage = FileStorage(stream=f, filename=os.path.basename(source_path))
        return save_upload(session, storage, upload_dir)


def get_document(session: Session, document_id):
    """Get a document by its ID, or None."""
    return session.query(Document).filter_by(id=document_id).first()


def get_latest_document(session: Session):
    """Return the most recently uploaded document, or None if nothing was uploaded."""
    return session.query(Document).order_by(Document.uploaded_at.desc(), Document.id.desc()).first()


def list_question_banks(session: Session):
    """
    List selectable question banks, newest upload first.

    The first entry is always the ``default`` bank, which follows the
    latest upload.
    """
    documents = session.query(Document).order_by(Document.uploaded_at.desc(), Document.id.desc()).all()
    latest = documents[0].uploaded_at if documents else None
    banks = [
        {
            "id": DEFAULT_BANK_ID,
            "filename": DEFAULT_BANK_NAME,
            "uploaded_at": latest.isoformat() if latest else None,
        }
    ]
    for doc in documents:
        banks.append(
            {
                "id": doc.id,
                "filename": doc.filename,
                "uploaded_at": doc.uploaded_at.isoformat() if doc.uploaded_at else None,
            }
        )
    return banks
