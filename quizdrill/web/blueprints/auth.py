"""Authentication routes: register, login, logout, current user, health check."""

from flask import Blueprint, jsonify
from flask import session as flask_session

from quizdrill.documents import DEFAULT_BANK_ID, get_document
from quizdrill.web.auth import (
    MIN_PASSWORD_LENGTH,
    authenticate_user,
    create_user,
    get_user_by_id,
    user_to_dict,
)
from quizdrill.web.blueprints.helpers import (
    _get_session,
    json_body,
    json_error,
    login_session,
    parse_id,
)

auth_bp = Blueprint("auth", __name__)


def _read_credentials(body):
    """Pull username, password and apiKey from a JSON body.

    Returns:
        (username, password, api_key, error_response); error_response is
        set when any field is present but not a string.
    """
    username = body.get("username") or ""
    password = body.get("password") or ""
    api_key = body.get("apiKey") or ""
    if not all(isinstance(value, str) for value in (username, password, api_key)):
        return None, None, None, json_error("username, password and apiKey must be strings.", 400)
    return username.strip(), password, api_key.strip() or None, None


@auth_bp.route("/api/auth/register", methods=["POST"])
def register():
    """Create a student account and log it in."""
    body = json_body()
    username, password, api_key, error = _read_credentials(body)
    if error:
        return error

    if not username or not password:
        return json_error("Username and password are required.", 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        return json_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.", 400)

    session = _get_session()

    selected = body.get("selectedDocument")
    selected_id = None
    if selected not in (None, "", DEFAULT_BANK_ID):
        selected_id = parse_id(selected)
        if selected_id is None or get_document(session, selected_id) is None:
            return json_error("The selected question bank does not exist.", 400)

    user = create_user(session, username, password, role="student", selected_document_id=selected_id, api_key=api_key)
    if user is None:
        return json_error("Username already exists.", 409)

    login_session(user)
    return jsonify({"user": user_to_dict(user)})


@auth_bp.route("/api/auth/login", methods=["POST"])
def login():
    """Check credentials and start a session."""
    username, password, api_key, error = _read_credentials(json_body())
    if error:
        return error

    if not username or not password:
        return json_error("Username and password are required.", 400)

    session = _get_session()
    user = authenticate_user(session, username, password)
    if user is None:
        return json_error("Invalid username or password.", 401)

    if user.role == "student" and api_key:
        user.api_key = api_key
        session.commit()

    login_session(user)
    return jsonify({"user": user_to_dict(user)})


@auth_bp.route("/api/auth/logout", methods=["POST"])
def logout():
    """Clear the session."""
    flask_session.clear()
    return jsonify({"ok": True})


@auth_bp.route("/api/auth/me")
def me():
    """Return the logged-in user."""
    if not flask_session.get("logged_in"):
        return json_error("Login required.", 401)
    user = get_user_by_id(_get_session(), flask_session.get("user_id"))
    if user is None:
        flask_session.clear()
        return json_error("Login required.", 401)
    return jsonify({"user": user_to_dict(user)})


@auth_bp.route("/health")
def health():
    """Health check endpoint for monitoring."""
    return jsonify({"status": "ok", "service": "quizdrill"})
