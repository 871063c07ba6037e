from collections.abc import Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine
from sqlalchemy_utils import (  # type: ignore[import-untyped]
    create_database,
    database_exists,
    drop_database,
)
from sqlmodel import Session, SQLModel

from catalog.api.deps import get_db
from catalog.core.config import settings
from catalog.core.db import acquire_session, build_engine, init_db
from catalog.main import app

from .fixtures.factories import *


@pytest.fixture(scope="function")
def test_engine(tmp_path: Path) -> Generator[Engine, None, None]:
    url = settings.TEST_DATABASE_URL or f"sqlite:///{tmp_path / 'movies_test.db'}"
    assert "test" in url

    if database_exists(url):
        drop_database(url)
    create_database(url)

    engine = build_engine(url)
    init_db(engine)

    yield engine

    SQLModel.metadata.drop_all(engine)
    engine.dispose()
    drop_database(url)


@pytest.fixture(scope="function")
def db_session(test_engine: Engine) -> Generator[Session, None, None]:
    with acquire_session(test_engine) as session:
        yield session


@pytest.fixture(scope="function")
def client(test_engine: Engine) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        with acquire_session(test_engine) as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    # Not entered as a context manager, so the lifespan (which targets the
    # configured database) does not run.
    yield TestClient(app)
    app.dependency_overrides.clear()
