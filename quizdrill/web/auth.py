"""
Authentication and account helpers for QuizDrill.
"""

import logging

from werkzeug.security import check_password_hash, generate_password_hash

from quizdrill.database import Document, User

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

_UNSET = object()


def create_user(session, username, password, role="student", selected_document_id=None, api_key=None):
    """Create a new user with hashed password.

    Args:
        session: SQLAlchemy session.
        username: Unique username.
        password: Plain-text password (will be hashed).
        role: "student" (default) or "teacher".
        selected_document_id: Optional question bank to study.
        api_key: Optional personal LLM provider key.

    Returns:
        User object on success, None if username already exists.
    """
    existing = session.query(User).filter_by(username=username).first()
    if existing:
        return None

    user = User(
        username=username,
        password_hash=generate_password_hash(password),
        role=role,
        total_score=0,
        selected_document_id=selected_document_id,
        api_key=api_key or None,
    )
    session.add(user)
    session.commit()
    return user


def authenticate_user(session, username, password):
    """Authenticate a user by username and password.

    Returns:
        User object if credentials are valid, None otherwise.
    """
    user = session.query(User).filter_by(username=username).first()
    if user and check_password_hash(user.password_hash, password):
        return user
    return None


def get_user_by_id(session, user_id):
    """Get a user by their ID.

    Returns:
        User object or None.
    """
    return session.query(User).filter_by(id=user_id).first()


def user_to_dict(user):
    """Public view of a user: never includes the password hash or API key."""
    return {
        "id": user.id,
        "username": user.username,
        "role": user.role,
        "total_score": user.total_score,
        "selected_document": user.selected_document_id,
        "sequential_mode": bool(user.sequential_mode),
        "current_paragraph_index": user.current_paragraph_index,
        "has_api_key": bool(user.api_key),
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def update_preferences(session, user, selected_document_id=_UNSET, sequential_mode=None):
    """Change a student's question bank and/or question order.

    Progress is tied to a document, so choosing a different document
    starts again from the first paragraph. Pass ``selected_document_id=None``
    to follow the latest upload.

    Raises:
        LookupError: if the selected document does not exist.
    """
    if selected_document_id is not _UNSET:
        if selected_document_id is not None:
            if session.query(Document).filter_by(id=selected_document_id).first() is None:
                raise LookupError(f"Document {selected_document_id} not found")
        if selected_document_id != user.selected_document_id:
            user.selected_document_id = selected_document_id
            user.current_paragraph_index = 0

    if sequential_mode is not None:
        user.sequential_mode = bool(sequential_mode)

    session.commit()
    return user


def ensure_teacher_account(session, username, password):
    """Create the configured teacher login if it does not exist yet.

    Returns:
        The teacher User (new or existing), or None when no password is configured.
    """
    existing = session.query(User).filter_by(username=username).first()
    if existing:
        if existing.role != "teacher":
            logger.warning("ensure_teacher_account: %s exists but is a %s", username, existing.role)
        return existing
    if not password:
        logger.warning("No teacher password configured; teacher account %s not created", username)
        return None
    logger.info("Creating teacher account %s", username)
    return create_user(session, username, password, role="teacher")
