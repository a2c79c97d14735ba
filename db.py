# db.py
# Role: Store bootstrap for the ledger.
#       Resolves where the SQLite ledger file lives, builds SQLAlchemy engines
#       that honour transactional DDL, and defines the declarative Base and
#       session factory shared by the schema description in models.py.

"""
Database setup for the ledger store.

- Default location: <project_root>/database/ledger.db
- Overridable through LEDGER_DB_DIR / LEDGER_DB_NAME / LEDGER_DATABASE_URL
  (a .env file in the working directory is honoured).
"""

import os
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()

# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Folder for the SQLite store (created on first use if missing)
DB_DIR = os.getenv("LEDGER_DB_DIR") or os.path.join(BASE_DIR, "database")

# Full path to the SQLite store file
DB_PATH = os.path.join(DB_DIR, os.getenv("LEDGER_DB_NAME") or "ledger.db")

# SQLAlchemy connection URL
DATABASE_URL = os.getenv("LEDGER_DATABASE_URL") or f"sqlite:///{DB_PATH}"


def _env_truthy(name: str, default: str = "0") -> bool:
    v = os.getenv(name, default)
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


def make_engine(url: Optional[str] = None) -> Engine:
    """
    Build an engine for a ledger store.

    pysqlite only opens a transaction in front of DML, which would leave the
    CREATE/ALTER/DROP statements of a migration step outside of it. We switch
    the driver to autocommit and emit BEGIN ourselves so every
    ``conn.begin()`` / ``conn.begin_nested()`` covers DDL as well.
    """
    url = url or DATABASE_URL
    if url == DATABASE_URL and url.startswith("sqlite:///"):
        os.makedirs(DB_DIR, exist_ok=True)  # ensure folder exists

    # check_same_thread=False: the store may be opened on one thread and used on another
    engine = create_engine(
        url,
        echo=_env_truthy("LEDGER_SQL_ECHO"),
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


# Session factory; bind per store, e.g. SessionLocal(bind=engine)
SessionLocal = sessionmaker(
    autoflush=False,
)

# Declarative base class for the ledger tables
Base = declarative_base()
