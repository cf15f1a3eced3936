"""
Database engine, session factory and the request-scoped session dependency.

Route handlers declare ``db: Session = Depends(get_db)`` to receive a session
that lives for the duration of the request and is always closed afterwards.
"""
import logging

from sqlalchemy import create_engine, text
from sqlalchemy.orm import declarative_base, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: str):
    """Create an engine; SQLite needs cross-thread access for FastAPI's threadpool."""
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)

Base = declarative_base()


def init_db(bind=None) -> None:
    """Create all tables that do not exist yet."""
    # models must be imported so their tables are registered on Base.metadata
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def check_connection(bind=None) -> bool:
    try:
        with (bind or engine).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning("Database connectivity check failed", extra={"error": str(e)})
        return False


def get_db():
    """FastAPI dependency that yields a request-scoped SQLAlchemy session.

    Yields:
        sqlalchemy.orm.Session: An open session for the duration of the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
