from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel

from catalog.core.cancellation import CancellationToken
from catalog.core.config import settings
from catalog.exceptions.base import StorageUnavailableError
from catalog.models.movie import movies


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """
    Create the engine that pools connections for the whole process.

    Parameters:
        url (str): SQLAlchemy database URL.
    Returns:
        Engine: The configured engine.
    """
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.SQLALCHEMY_DATABASE_URI)


@contextmanager
def acquire_session(
    bind: Engine | None = None,
    cancellation: CancellationToken | None = None,
) -> Iterator[Session]:
    """
    Hand out a session with a live connection, closed on every exit path.

    Parameters:
        bind (Engine | None): Engine to use, defaults to the process engine.
        cancellation (CancellationToken | None): Checked before connecting.
    Raises:
        OperationCancelledError: If the token was cancelled before acquiring.
        StorageUnavailableError: If no connection could be established.
    """
    if cancellation is not None:
        cancellation.raise_if_cancelled()
    session = Session(bind if bind is not None else engine)
    try:
        try:
            session.connection()
        except OperationalError as e:
            logger.error(f"Could not acquire a database connection: {e}")
            raise StorageUnavailableError() from e
        yield session
    finally:
        session.close()


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Commit everything done inside the block, or nothing at all.
    """
    try:
        yield session
    except BaseException:
        session.rollback()
        raise
    else:
        session.commit()


def init_db(bind: Engine) -> None:
    """
    Make sure the movies and genres tables and the unique slug index exist.
    Safe to run on every start-up.
    """
    with bind.begin() as connection:
        SQLModel.metadata.create_all(connection, checkfirst=True)
        # create_all only adds indexes together with a new table
        for index in movies.indexes:
            index.create(connection, checkfirst=True)
    logger.info("Database schema is up to date")
