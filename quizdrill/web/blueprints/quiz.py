"""Student routes: question generation, answer submission, question banks, preferences."""

from flask import Blueprint, current_app, jsonify
from flask import session as flask_session

from quizdrill.documents import DEFAULT_BANK_ID, list_question_banks
from quizdrill.question_generator import generate_questions
from quizdrill.scoring import submit_answers
from quizdrill.web.auth import get_user_by_id, update_preferences, user_to_dict
from quizdrill.web.blueprints.helpers import (
    _get_session,
    json_body,
    json_error,
    parse_id,
    resolve_user_id,
)

quiz_bp = Blueprint("quiz", __name__)


@quiz_bp.route("/api/generate-questions", methods=["POST"])
def generate_questions_route():
    """Generate the next round of questions for a student."""
    user_id, error = resolve_user_id(json_body())
    if error:
        return error

    config = current_app.config["APP_CONFIG"]
    result = generate_questions(_get_session(), user_id, config)
    return jsonify(result)


@quiz_bp.route("/api/submit-answers", methods=["POST"])
def submit_answers_route():
    """Grade a round of answers and update the student's score."""
    body = json_body()
    answers = body.get("answers")
    if not isinstance(answers, list):
        return json_error("answers must be a list.", 400)

    user_id, error = resolve_user_id(body)
    if error:
        return error

    result = submit_answers(_get_session(), user_id, answers)
    return jsonify(result)


@quiz_bp.route("/api/question-banks")
def question_banks():
    """List the documents students can study from."""
    return jsonify({"questionBanks": list_question_banks(_get_session())})


@quiz_bp.route("/api/users/<int:user_id>/preferences", methods=["PUT"])
def update_preferences_route(user_id):
    """Choose a question bank and/or toggle sequential mode."""
    body = json_body()
    if flask_session.get("logged_in") and flask_session.get("role") != "teacher":
        if flask_session.get("user_id") != user_id:
            return json_error("You can only change your own preferences.", 403)

    session = _get_session()
    user = get_user_by_id(session, user_id)
    if user is None:
        return json_error("User not found.", 404)

    kwargs = {}
    if "selectedDocument" in body:
        selected = body["selectedDocument"]
        if selected in (None, "", DEFAULT_BANK_ID):
            kwargs["selected_document_id"] = None
        else:
            selected_id = parse_id(selected)
            if selected_id is None:
                return json_error("selectedDocument is invalid.", 400)
            kwargs["selected_document_id"] = selected_id
    if "sequentialMode" in body:
        if not isinstance(body["sequentialMode"], bool):
            return json_error("sequentialMode must be true or false.", 400)
        kwargs["sequential_mode"] = body["sequentialMode"]

    try:
        update_preferences(session, user, **kwargs)
    except LookupError:
        return json_error("The selected question bank does not exist.", 404)

    return jsonify({"user": user_to_dict(user)})
