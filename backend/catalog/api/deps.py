from collections.abc import Generator
from threading import Timer
from typing import Annotated

from fastapi import Depends
from sqlmodel import Session

from catalog.core.cancellation import CancellationToken
from catalog.core.config import settings
from catalog.core.db import acquire_session, engine


def get_cancellation() -> Generator[CancellationToken, None, None]:
    """
    Cancellation token for one request, fired when the request exceeds
    DB_OPERATION_TIMEOUT_SECONDS.
    """
    token = CancellationToken()
    timer = Timer(settings.DB_OPERATION_TIMEOUT_SECONDS, token.cancel)
    timer.daemon = True
    timer.start()
    try:
        yield token
    finally:
        timer.cancel()


CancellationDep = Annotated[CancellationToken, Depends(get_cancellation)]


def get_db(cancellation: CancellationDep) -> Generator[Session, None, None]:
    with acquire_session(engine, cancellation=cancellation) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
