"""
Flask application factory for the QuizDrill JSON API.
"""

import logging
import os
import secrets

from flask import Flask, g, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from quizdrill.database import get_engine, get_session, init_db
from quizdrill.migrations import run_migrations
from quizdrill.question_generator import GenerationError
from quizdrill.scoring import ScoringError
from quizdrill.web.auth import ensure_teacher_account
from quizdrill.web.blueprints import register_blueprints

logger = logging.getLogger(__name__)

DEFAULT_TEACHER_USERNAME = "teacher"


def _load_or_generate_secret_key(env_path):
    """Load SECRET_KEY from .env or generate and persist a new one.

    Every installation gets a unique, random key without manual setup.
    """
    if os.path.exists(env_path):
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line.startswith("SECRET_KEY="):
                    value = line.split("=", 1)[1].strip().strip("'\"")
                    if value:
                        return value

    new_key = secrets.token_hex(32)
    try:
        with open(env_path, "a") as f:
            f.write(f"\nSECRET_KEY={new_key}\n")
    except OSError:
        logger.warning("Could not persist SECRET_KEY to %s; using a per-process key", env_path)
    return new_key


def _seed_teacher(engine, config):
    auth_config = config.get("auth", {})
    username = auth_config.get("teacher_username", DEFAULT_TEACHER_USERNAME)
    password = os.environ.get("TEACHER_PASSWORD") or auth_config.get("teacher_password")
    session = get_session(engine)
    try:
        ensure_teacher_account(session, username, password)
    finally:
        session.close()


def create_app(config=None):
    """
    Create and configure the Flask application.

    Args:
        config: Application config dict (paths, llm, generation, auth).
                If None, loads from config.yaml.

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)

    if config is None:
        import yaml

        with open("config.yaml") as f:
            config = yaml.safe_load(f)

    app.config["APP_CONFIG"] = config

    secret_key = os.environ.get("SECRET_KEY")
    if not secret_key:
        env_path = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".env"))
        secret_key = _load_or_generate_secret_key(env_path)
    app.config["SECRET_KEY"] = secret_key

    app.config["MAX_CONTENT_LENGTH"] = config.get("uploads", {}).get("max_bytes", 10 * 1024 * 1024)

    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = "Lax"
    if os.environ.get("FLASK_HTTPS"):
        app.config["SESSION_COOKIE_SECURE"] = True

    # Environment variable overrides
    if os.environ.get("DATABASE_PATH"):
        config.setdefault("paths", {})["database_file"] = os.environ["DATABASE_PATH"]
    if os.environ.get("LLM_PROVIDER"):
        config.setdefault("llm", {})["provider"] = os.environ["LLM_PROVIDER"]

    # DATABASE_URL (env var) takes precedence over the SQLite path in config.
    database_url = os.environ.get("DATABASE_URL")
    db_path = config.get("paths", {}).get("database_file", "quizdrill.db")

    # Upgrade older SQLite files before the ORM touches them
    run_migrations(db_path, verbose=False)

    engine = get_engine(url=database_url) if database_url else get_engine(db_path)
    init_db(engine)
    app.config["DB_ENGINE"] = engine

    _seed_teacher(engine, config)

    @app.teardown_appcontext
    def close_db_session(exception):
        """Close the database session at the end of each request."""
        session = g.pop("db_session", None)
        if session is not None:
            session.close()

    @app.errorhandler(GenerationError)
    @app.errorhandler(ScoringError)
    def handle_service_error(error):
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(error):
        logger.exception("Database error: %s", error)
        session = g.get("db_session")
        if session is not None:
            session.rollback()
        return jsonify({"error": "Database error."}), 500

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        return jsonify({"error": error.description}), error.code

    register_blueprints(app)

    return app
