"""Database engine and session factory construction.

The engine is built once by the application lifespan handler and handed to
the index store; nothing in this module creates connections at import time.

SQLite is used for local development, PostgreSQL (psycopg) in deployment.
"""

import logging
from pathlib import Path

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

log = logging.getLogger(__name__)


def build_engine(database_url: str) -> Engine:
    """Create the SQLAlchemy engine for the index store.

    PostgreSQL: full connection pooling.
    SQLite: single shared connection, with PRAGMAs applied on connect.
    """
    if database_url.startswith("sqlite"):
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
        log.info("Using SQLite index store (local development mode)")
    else:
        engine_kwargs = {
            "echo": False,
            "pool_pre_ping": True,
            "pool_size": 5,
            "max_overflow": 10,
            "pool_recycle": 1800,
        }
        log.info("Using PostgreSQL index store")

    engine = create_engine(database_url, **engine_kwargs)

    if database_url.startswith("sqlite"):
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA busy_timeout=5000")
            cursor.close()

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to ``engine``."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)


def init_database(engine: Engine) -> None:
    """Create all index tables idempotently.

    For file-backed SQLite also ensures the database directory exists.
    """
    from achievo.db.models import Base

    url = engine.url
    log.info(f"Initializing index store at {url.render_as_string(hide_password=True)}")

    if url.drivername.startswith("sqlite") and url.database and url.database != ":memory:":
        db_dir = Path(url.database).parent
        db_dir.mkdir(parents=True, exist_ok=True)

    Base.metadata.create_all(bind=engine)
    log.info("Index tables created successfully")
