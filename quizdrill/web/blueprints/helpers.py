"""Shared utilities for QuizDrill blueprint modules."""

import functools
import logging

from flask import current_app, g, jsonify, request
from flask import session as flask_session

from quizdrill.database import get_session

logger = logging.getLogger(__name__)


def _get_session():
    """Get a database session from the shared app engine."""
    if "db_session" not in g:
        engine = current_app.config["DB_ENGINE"]
        g.db_session = get_session(engine)
    return g.db_session


def json_error(message, status):
    """Return a ``{"error": message}`` JSON response with the given status."""
    return jsonify({"error": message}), status


def json_body():
    """Parsed JSON request body, or an empty dict when there is none."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def parse_id(value):
    """Coerce a user/document id from JSON (int or numeric string); None if invalid."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def login_session(user):
    """Start a fresh login session for ``user``."""
    flask_session.clear()  # Regenerate session to prevent fixation
    flask_session["logged_in"] = True
    flask_session["user_id"] = user.id
    flask_session["username"] = user.username
    flask_session["role"] = user.role


def resolve_user_id(body):
    """Work out which user a student request acts for.

    Uses ``userId`` from the body, falling back to the logged-in user.
    A logged-in student may only act for themselves.

    Returns:
        (user_id, error_response) where exactly one is None.
    """
    raw = body.get("userId")
    if raw in (None, ""):
        raw = flask_session.get("user_id")
    if raw in (None, ""):
        return None, json_error("User ID is required.", 400)

    user_id = parse_id(raw)
    if user_id is None:
        return None, json_error("User ID is invalid.", 400)

    if flask_session.get("logged_in") and flask_session.get("role") != "teacher":
        if flask_session.get("user_id") != user_id:
            return None, json_error("You can only act for your own account.", 403)
    return user_id, None


def teacher_required(f):
    """Decorator to require a logged-in teacher for a route."""

    @functools.wraps(f)
    def decorated_function(*args, **kwargs):
        if not flask_session.get("logged_in"):
            return json_error("Login required.", 401)
        if flask_session.get("role") != "teacher":
            return json_error("Teacher access required.", 403)
        g.current_user = {
            "id": flask_session.get("user_id"),
            "username": flask_session.get("username"),
            "role": flask_session.get("role"),
        }
        return f(*args, **kwargs)

    return decorated_function
