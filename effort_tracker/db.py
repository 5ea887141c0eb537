from __future__ import annotations
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine

from .errors import StoreError
from .settings import settings


def make_engine(database_url: str | None = None) -> Engine:
    """SQLite only: the tables use AUTOINCREMENT and inserts read ``lastrowid``."""
    url = database_url or settings.database_url
    if not url.startswith("sqlite"):
        raise StoreError(f"Unsupported database URL {url!r}: only sqlite is supported")
    engine = create_engine(url, future=True, pool_pre_ping=True, connect_args={"check_same_thread": False})

    @event.listens_for(engine, "connect")
    def _fk_on(dbapi_conn, _record):
        dbapi_conn.execute("PRAGMA foreign_keys = ON")
    return engine


def init_db(engine: Engine) -> None:
    with engine.begin() as conn:
        conn.execute(text("""
        CREATE TABLE IF NOT EXISTS submissions (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            submitted_by TEXT NOT NULL,
            deal_name TEXT NOT NULL,
            department TEXT NOT NULL,
            type TEXT NOT NULL,
            hours_worked REAL NOT NULL CHECK(hours_worked > 0),
            description TEXT NOT NULL DEFAULT '',
            task_date TEXT NOT NULL,
            submitted_at TEXT NOT NULL
        );
        """))
        conn.execute(text("""
        CREATE TABLE IF NOT EXISTS ratings (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            submission_id INTEGER NOT NULL,
            rated_by TEXT NOT NULL,
            rating INTEGER NOT NULL,
            analyst_name TEXT,
            deal_name TEXT,
            department TEXT,
            type TEXT,
            task_date TEXT,
            rated_at TEXT NOT NULL,
            UNIQUE(submission_id, rated_by),
            FOREIGN KEY(submission_id) REFERENCES submissions(id)
        );
        """))
