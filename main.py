import argparse
import logging
import os

import yaml
from dotenv import load_dotenv

from quizdrill.database import User, get_engine, get_session, init_db
from quizdrill.documents import import_document
from quizdrill.migrations import run_migrations
from quizdrill.question_generator import GenerationError, generate_questions
from quizdrill.web.auth import ensure_teacher_account

logger = logging.getLogger("quizdrill")


def _open_session(config):
    database_url = os.environ.get("DATABASE_URL")
    db_path = config.get("paths", {}).get("database_file", "quizdrill.db")
    run_migrations(db_path, verbose=False)
    engine = get_engine(url=database_url) if database_url else get_engine(db_path)
    init_db(engine)
    return engine, get_session(engine)


def handle_init_db(config, args):
    """Handles the "init-db" command."""
    db_path = config.get("paths", {}).get("database_file", "quizdrill.db")
    run_migrations(db_path, verbose=True)
    engine, session = _open_session(config)
    session.close()
    engine.dispose()
    print(f"Database ready: {db_path}")
    return 0


def handle_create_teacher(config, args):
    """Handles the "create-teacher" command."""
    engine, session = _open_session(config)
    try:
        user = ensure_teacher_account(session, args.username, args.password)
        if user is None or user.role != "teacher":
            print(f"Error: could not create teacher account {args.username}.")
            return 1
        print(f"Teacher account ready: {user.username} (id {user.id})")
        return 0
    finally:
        session.close()
        engine.dispose()


def handle_import_document(config, args):
    """Handles the "import-document" command."""
    upload_dir = config.get("paths", {}).get("upload_dir", "uploads")
    engine, session = _open_session(config)
    try:
        document = import_document(session, args.path, upload_dir)
        print(f"Imported {document.filename} as question bank {document.id}")
        return 0
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1
    finally:
        session.close()
        engine.dispose()


def handle_generate(config, args):
    """Handles the "generate" command: one round of questions for a student."""
    engine, session = _open_session(config)
    try:
        user = session.query(User).filter_by(username=args.user).first()
        if user is None:
            print(f"Error: no user named {args.user}.")
            return 1
        try:
            result = generate_questions(session, user.id, config)
        except GenerationError as e:
            print(f"Error: {e.message}")
            return 1

        print(f"--- {len(result['questions'])} questions from {result['document']['filename']} ---")
        progress = result["progress"]
        if progress:
            print(
                f"Paragraphs {progress['start'] + 1}-{progress['next_offset']} "
                f"of {progress['total_paragraphs']}"
            )
        for i, q in enumerate(result["questions"], 1):
            print(f"\n{i}. [{q['type']}] {q['content']}")
            for opt in q["options"] or []:
                print(f"   {opt['label']}. {opt['text']}")
        return 0
    finally:
        session.close()
        engine.dispose()


def handle_serve(config, args):
    """Handles the "serve" command (development server)."""
    from quizdrill.web.app import create_app

    app = create_app(config)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def main(argv=None):
    load_dotenv()
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description="QuizDrill CLI.")
    parser.add_argument("--config", default="config.yaml", help="Path to config.yaml.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create or upgrade the database schema.")

    parser_teacher = subparsers.add_parser("create-teacher", help="Create a teacher account.")
    parser_teacher.add_argument("username", help="Teacher login name.")
    parser_teacher.add_argument("password", help="Teacher password.")

    parser_import = subparsers.add_parser("import-document", help="Add a .docx or .txt file as a question bank.")
    parser_import.add_argument("path", help="Path to the document.")

    parser_generate = subparsers.add_parser("generate", help="Generate one round of questions for a student.")
    parser_generate.add_argument("--user", required=True, help="Student username.")

    parser_serve = subparsers.add_parser("serve", help="Run the development web server.")
    parser_serve.add_argument("--host", default="127.0.0.1")
    parser_serve.add_argument("--port", type=int, default=5000)
    parser_serve.add_argument("--debug", action="store_true")

    args = parser.parse_args(argv)

    try:
        with open(args.config, "r") as f:
            config = yaml.safe_load(f) or {}
    except FileNotFoundError:
        print(f"Error: {args.config} not found.")
        return 1

    handlers = {
        "init-db": handle_init_db,
        "create-teacher": handle_create_teacher,
        "import-document": handle_import_document,
        "generate": handle_generate,
        "serve": handle_serve,
    }
    return handlers[args.command](config, args)


if __name__ == "__main__":
    raise SystemExit(main())
