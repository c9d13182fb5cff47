import structlog
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from .config import settings
from .errors import UpstreamUnavailable


_is_sqlite = settings.database_url.startswith("sqlite")

engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
    **({} if _is_sqlite else {"pool_size": 5, "max_overflow": 10, "pool_recycle": 3600}),
)


def enable_sqlite_foreign_keys(target_engine) -> None:
    """SQLite ignores ON DELETE clauses unless the pragma is set per connection."""

    @event.listens_for(target_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


if _is_sqlite:
    enable_sqlite_foreign_keys(engine)

# Fresh Session per request; never share one across requests
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db, operation: str, actor_id=None, entity_id=None) -> None:
    """Commit the unit of work; store failures are logged with context and surfaced as UpstreamUnavailable."""
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        structlog.get_logger(__name__).error(
            "store_commit_failed",
            operation=operation,
            actor_id=str(actor_id) if actor_id else None,
            entity_id=str(entity_id) if entity_id else None,
            error=str(e),
        )
        raise UpstreamUnavailable("Could not save changes, please try again") from e
