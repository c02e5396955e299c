# app/database.py
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from app.core.config import get_settings
from app.core.errors import PersistenceFailure

settings = get_settings()

# ---------------------------------------------------------
# Engine
#
# - sqlite memory : single shared connection (StaticPool), otherwise
#                   each threadpool worker would see its own empty DB.
# - sqlite file   : default pool, one connection per session.
# - postgresql    : small pool, pool_pre_ping to drop dead connections,
#                   optional sslmode=require for hosted databases.
# ---------------------------------------------------------

db_url = settings.DATABASE_URL


def is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return False
    database = parsed.database or ""
    return database in ("", ":memory:") or parsed.query.get("mode") == "memory"


if db_url.startswith("sqlite"):
    sqlite_options = {}
    if is_memory_sqlite(db_url):
        sqlite_options["poolclass"] = StaticPool
    engine = create_engine(
        db_url,
        echo=settings.DATABASE_ECHO,
        connect_args={"check_same_thread": False},
        **sqlite_options,
    )
else:
    # Append sslmode=require if it is not already present
    if settings.DATABASE_REQUIRE_SSL and "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    engine = create_engine(
        db_url,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
    )


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


def commit_or_raise(session: Session) -> None:
    """
    Commit the current unit of work.

    Any store-level failure is rolled back and surfaced as
    PersistenceFailure; it is never retried here.
    """
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise PersistenceFailure("Database rejected the operation") from exc
