"""Database engine, sessions and transaction boundaries."""
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, DisconnectionError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from messenger.config import settings
from messenger.exceptions import (
    DatabaseConnectionError,
    DatabaseStatementError,
    MessengerError,
)
from messenger.models import Base
from messenger.utils.logger import setup_logger

logger = setup_logger(__name__)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """Create an engine for the given URL (defaults to settings)."""
    url = url or settings.DATABASE_URL
    echo = settings.DATABASE_ECHO if echo is None else echo

    kwargs = {"echo": echo}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory databases live as long as their single connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)

    logger.debug(f"Engine created for {engine.url.render_as_string(hide_password=True)}")
    return engine


def init_db(engine: Engine) -> None:
    """Create tables that don't exist yet."""
    Base.metadata.create_all(bind=engine)


def make_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the engine."""
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(engine: Engine) -> Iterator[Session]:
    """Open one session for the lifetime of a console session and always release it."""
    db = make_session_factory(engine)()
    try:
        yield db
    finally:
        db.close()
        engine.dispose()


def _is_connection_failure(error: SQLAlchemyError) -> bool:
    if isinstance(error, DisconnectionError):
        return True
    # No statement means the failure happened while connecting
    return isinstance(error, DBAPIError) and (error.connection_invalidated or error.statement is None)


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Run a unit of work: commit on success, roll back on any error.

    Driver failures are reported as DatabaseConnectionError or
    DatabaseStatementError so callers can report them and keep going.
    """
    try:
        yield db
        db.commit()
    except MessengerError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        if _is_connection_failure(e):
            logger.error(f"Database connection error: {e}")
            raise DatabaseConnectionError(str(e)) from e
        logger.error(f"Database statement error: {e}")
        raise DatabaseStatementError(str(e)) from e
    except Exception:
        db.rollback()
        raise
