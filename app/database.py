# app/database.py
import logging
from contextlib import contextmanager

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings
from app.core.errors import StoreUnavailableError

settings = get_settings()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Supabase Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the Supabase pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# Supabase Session mode limits the number of clients, so each backend
# process keeps a single pooled connection.
# Non-Postgres URLs (local SQLite) get the driver defaults.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL
engine_kwargs: dict = {"echo": False}

if db_url.startswith("postgresql"):
    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    engine_kwargs.update(pool_pre_ping=True, pool_size=1, max_overflow=0)

engine = create_engine(db_url, **engine_kwargs)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session


def upsert_statement(session: Session, table):
    """
    Return a dialect-specific INSERT for `table` that supports ON CONFLICT.

    Both the Postgres and SQLite constructs expose
    `on_conflict_do_nothing()` / `on_conflict_do_update()` with the same
    signature, so repositories stay dialect-agnostic.
    """
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


@contextmanager
def store_errors(session: Session, action: str):
    """
    Translate driver/ORM failures into StoreUnavailableError.

    The session is rolled back so the caller never sees a half-applied
    write; the original exception is chained for the logs.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("Profile store failure while %s", action, exc_info=True)
        raise StoreUnavailableError() from exc
