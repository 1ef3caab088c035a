"""
Shared pytest fixtures for QuizDrill tests.

Fixture summary
---------------
Database:
    db_path              -- temp .db file path with cleanup
    db_session           -- (session, db_path) tuple with migrations

Config:
    mock_config          -- standard config dict using MockLLMProvider

Data builders:
    sample_paragraphs    -- twelve paragraphs of study text
    make_document        -- factory that writes a .txt/.docx and records a Document
    make_student         -- factory that inserts a student User

Flask:
    flask_app            -- Flask app on a temp DB with a seeded teacher
    anon_client          -- unauthenticated test client
    teacher_client       -- client logged in as the teacher
    student_client       -- factory: client logged in as a new student
"""

import os
import tempfile

import pytest
from docx import Document as DocxDocument

from quizdrill.database import Document, get_engine, get_session, init_db
from quizdrill.migrations import run_migrations
from quizdrill.web.auth import create_user

TEACHER_USERNAME = "teacher"
TEACHER_PASSWORD = "teachpass1"

# ---------------------------------------------------------------------------
# Core database fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def db_path():
    """Provide a temporary database file path with cleanup."""
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    try:
        if os.path.exists(tmp.name):
            os.remove(tmp.name)
    except OSError:
        pass  # Windows may still hold the lock


@pytest.fixture
def db_session(db_path):
    """Provide a fully-initialized SQLAlchemy session bound to a temp DB.

    Yields a ``(session, db_path)`` tuple.
    """
    run_migrations(db_path, verbose=False)
    engine = get_engine(db_path)
    init_db(engine)
    session = get_session(engine)
    yield session, db_path
    session.close()
    engine.dispose()


# ---------------------------------------------------------------------------
# Config fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_config(db_session, tmp_path):
    """Config dict for generate_questions() and friends, using the mock provider."""
    _, db_path_value = db_session
    return {
        "llm": {"provider": "mock"},
        "paths": {"database_file": db_path_value, "upload_dir": str(tmp_path / "uploads")},
        "generation": {"questions_per_round": 5, "temperature": 0.8, "max_excluded_questions": 50},
    }


# ---------------------------------------------------------------------------
# Data builder fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_paragraphs():
    """Twelve paragraphs, each long enough to survive paragraph splitting."""
    return [f"Paragraph number {i} explains an important idea about the topic in detail." for i in range(1, 13)]


def write_document(directory, paragraphs, name="notes.txt"):
    """Write paragraphs to a .txt or .docx file and return its path."""
    path = os.path.join(str(directory), name)
    if name.endswith(".docx"):
        doc = DocxDocument()
        for para in paragraphs:
            doc.add_paragraph(para)
        doc.save(path)
    else:
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n\n".join(paragraphs))
    return path


@pytest.fixture
def write_doc(tmp_path):
    """Return ``write(paragraphs, name="notes.txt")`` that writes into tmp_path."""

    def _write(paragraphs, name="notes.txt"):
        return write_document(tmp_path, paragraphs, name=name)

    return _write


@pytest.fixture
def make_document(tmp_path):
    """Factory fixture: write a document and insert a Document row.

    Usage::

        doc = make_document(session, paragraphs, name="biology.docx")
    """

    def _create(session, paragraphs, name="notes.txt"):
        path = write_document(tmp_path, paragraphs, name=name)
        document = Document(filename=name, file_path=path)
        session.add(document)
        session.commit()
        return document

    return _create


@pytest.fixture
def make_student():
    """Factory fixture: insert a student with the given overrides."""
    counter = {"n": 0}

    def _create(session, username=None, password="password1", **overrides):
        counter["n"] += 1
        user = create_user(session, username or f"student{counter['n']}", password)
        for key, value in overrides.items():
            setattr(user, key, value)
        session.commit()
        return user

    return _create


# ---------------------------------------------------------------------------
# Flask test client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def flask_app(db_path, tmp_path, monkeypatch):
    """Provide a Flask test app with a temporary database and upload dir."""
    monkeypatch.setenv("SECRET_KEY", "test-secret-key")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_PATH", raising=False)
    monkeypatch.delenv("LLM_PROVIDER", raising=False)
    monkeypatch.delenv("TEACHER_PASSWORD", raising=False)

    from quizdrill.web.app import create_app

    test_config = {
        "paths": {"database_file": db_path, "upload_dir": str(tmp_path / "uploads")},
        "llm": {"provider": "mock"},
        "generation": {"questions_per_round": 5},
        "auth": {"teacher_username": TEACHER_USERNAME, "teacher_password": TEACHER_PASSWORD},
    }
    app = create_app(test_config)
    app.config["TESTING"] = True

    yield app

    app.config["DB_ENGINE"].dispose()


@pytest.fixture
def app_session(flask_app):
    """A session on the app's engine for seeding and inspecting data."""
    session = get_session(flask_app.config["DB_ENGINE"])
    yield session
    session.close()


@pytest.fixture
def anon_client(flask_app):
    """Provide an unauthenticated Flask test client."""
    with flask_app.test_client() as client:
        yield client


@pytest.fixture
def teacher_client(flask_app):
    """Provide a client logged in as the seeded teacher."""
    with flask_app.test_client() as client:
        resp = client.post("/api/auth/login", json={"username": TEACHER_USERNAME, "password": TEACHER_PASSWORD})
        assert resp.status_code == 200
        yield client


@pytest.fixture
def student_client(flask_app):
    """Factory fixture: register a student and return ``(client, user_json)``."""

    def _create(username="alice", password="password1"):
        client = flask_app.test_client()
        resp = client.post("/api/auth/register", json={"username": username, "password": password})
        assert resp.status_code == 200
        return client, resp.get_json()["user"]

    return _create
