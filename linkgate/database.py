import logging
import time
from functools import wraps

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from linkgate.config import Settings
from linkgate.errors import StoreUnavailable

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(settings: Settings) -> Engine:
    if settings.is_sqlite:
        engine = create_engine(
            settings.database_url,
            # needed for SQLite + FastAPI; timeout is the busy wait per statement
            connect_args={"check_same_thread": False, "timeout": settings.db_timeout},
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=settings.db_timeout,
        pool_recycle=1800,
        connect_args={"connect_timeout": int(settings.db_timeout)},
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request):
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


def retry_transient(attempts: int = 3, backoff: float = 0.1):
    """Retry a store call on connectivity faults.

    The wrapped function takes the session as its first argument. Each failed
    attempt is rolled back before the next one; when all attempts fail the
    caller sees StoreUnavailable instead of the driver error.
    """

    def decorator(fn):
        @wraps(fn)
        def inner(db: Session, *args, **kwargs):
            for attempt in range(1, attempts + 1):
                try:
                    return fn(db, *args, **kwargs)
                except OperationalError as exc:
                    db.rollback()
                    if attempt == attempts:
                        logger.error("Store unavailable in %s after %d attempts", fn.__name__, attempts)
                        raise StoreUnavailable() from exc
                    logger.warning(
                        "Transient store error in %s (attempt %d/%d): %s",
                        fn.__name__, attempt, attempts, exc.orig,
                    )
                    time.sleep(backoff * attempt)

        return inner

    return decorator
