"""
Database migration runner for QuizDrill.

Upgrades SQLite databases created before the study-progress columns
existed.  Migrations are idempotent and safe to run multiple times.

For PostgreSQL (or other non-SQLite databases) the raw SQL files are
skipped; ``Base.metadata.create_all()`` creates the full schema instead.
"""

import logging
import os
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "migrations"))

# Columns added after the first release, keyed by table
REQUIRED_COLUMNS = {
    "users": ["selected_document_id", "sequential_mode", "current_paragraph_index", "api_key", "progress_document_id"],
    "questions": ["document_id"],
}


def detect_dialect(db_path=None):
    """Detect which database dialect is in use.

    Returns:
        ``'sqlite'`` unless ``DATABASE_URL`` names another scheme.
    """
    database_url = os.environ.get("DATABASE_URL", "")
    if database_url:
        if database_url.startswith("postgresql"):
            return "postgresql"
        if database_url.startswith("mysql"):
            return "mysql"
        if database_url.startswith("sqlite"):
            return "sqlite"
        return database_url.split("://")[0] if "://" in database_url else "unknown"
    return "sqlite"


def get_migration_files(migrations_dir=DEFAULT_MIGRATIONS_DIR):
    """
    Get list of migration SQL files in order.

    Returns:
        List of (filename, filepath) tuples sorted by name
    """
    migrations_path = Path(migrations_dir)
    if not migrations_path.exists():
        return []

    sql_files = sorted(migrations_path.glob("*.sql"))
    return [(f.name, str(f)) for f in sql_files]


def check_if_migration_needed(db_path):
    """
    Check whether an existing SQLite database is missing any newer column.

    A database file that does not exist yet needs no migration; the ORM
    creates every table with the current columns.
    """
    if not os.path.exists(db_path):
        return False

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        for table, columns in REQUIRED_COLUMNS.items():
            cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
            if cursor.fetchone() is None:
                continue
            cursor.execute(f"PRAGMA table_info({table})")
            existing = {row[1] for row in cursor.fetchall()}
            if any(column not in existing for column in columns):
                return True
        return False
    finally:
        conn.close()


def run_migrations(db_path, migrations_dir=DEFAULT_MIGRATIONS_DIR, verbose=True):
    """
    Run all pending database migrations.

    Args:
        db_path: Path to SQLite database file
        migrations_dir: Directory containing migration SQL files
        verbose: Whether to log progress at INFO level

    Returns:
        True if migrations were applied, False if skipped
    """
    log = logger.info if verbose else logger.debug

    dialect = detect_dialect(db_path)
    if dialect != "sqlite":
        log("Database dialect is %s; raw SQL migrations skipped (ORM handles schema)", dialect)
        return False

    if not check_if_migration_needed(db_path):
        log("Database schema is up to date, no migrations needed")
        return False

    migration_files = get_migration_files(migrations_dir)
    if not migration_files:
        log("No migration files found in %s, skipping", migrations_dir)
        return False

    log("Applying %d migration file(s) to %s", len(migration_files), db_path)

    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        for filename, filepath in migration_files:
            with open(filepath, encoding="utf-8") as f:
                migration_sql = f.read()

            try:
                cursor.executescript(migration_sql)
                log("Applied %s", filename)
            except sqlite3.OperationalError as e:
                err_msg = str(e).lower()
                # Column already present, or table not created by the ORM yet
                if "duplicate column name" in err_msg:
                    log("%s already applied", filename)
                elif "no such table" in err_msg:
                    log("%s skipped (table managed by ORM)", filename)
                else:
                    raise
        conn.commit()
    finally:
        conn.close()

    return True
