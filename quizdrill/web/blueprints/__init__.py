"""Flask blueprints for the QuizDrill JSON API."""

from quizdrill.web.blueprints.auth import auth_bp
from quizdrill.web.blueprints.quiz import quiz_bp
from quizdrill.web.blueprints.teacher import teacher_bp


def register_blueprints(app):
    """Register all blueprint modules on the Flask app."""
    app.register_blueprint(auth_bp)
    app.register_blueprint(quiz_bp)
    app.register_blueprint(teacher_bp)
