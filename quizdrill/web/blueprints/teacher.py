"""Teacher routes: student rankings and document upload."""

import logging

from flask import Blueprint, current_app, jsonify, request

from quizdrill.documents import save_upload
from quizdrill.scoring import get_student_rankings
from quizdrill.web.blueprints.helpers import _get_session, json_error, teacher_required

logger = logging.getLogger(__name__)

teacher_bp = Blueprint("teacher", __name__)


@teacher_bp.route("/api/teacher/students")
@teacher_required
def students():
    """All students ordered by total score, highest first."""
    return jsonify({"students": get_student_rankings(_get_session())})


@teacher_bp.route("/api/teacher/upload", methods=["POST"])
@teacher_required
def upload():
    """Upload a reference document that becomes a question bank."""
    cfg = current_app.config["APP_CONFIG"]
    upload_dir = cfg.get("paths", {}).get("upload_dir", "uploads")

    try:
        document = save_upload(_get_session(), request.files.get("file"), upload_dir)
    except ValueError as e:
        return json_error(str(e), 400)
    except OSError as e:
        logger.exception("Upload failed: %s", e)
        return json_error("Upload failed.", 500)

    return jsonify(
        {
            "message": "File uploaded.",
            "id": document.id,
            "filename": document.filename,
            "filepath": document.file_path,
        }
    )
