from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from catalog.api.main import api_router
from catalog.core.config import settings
from catalog.core.db import engine, init_db
from catalog.exceptions.handlers import register_exception_handlers
from catalog.logging_.logger import setup_logger


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    setup_logger("api")
    init_db(engine)
    yield
    engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_PREFIX}/openapi.json",
    lifespan=lifespan,
)

register_exception_handlers(app)
app.include_router(api_router, prefix=settings.API_PREFIX)
