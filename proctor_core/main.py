# proctor_core/main.py
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .deps import get_registry
from .routes import reports, sessions, ws
from .utils.logging import setup_logging

setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup
    if settings.PERSISTENCE_ENABLED:
        from .db import create_indexes
        await create_indexes()
        logger.info("DB indexes created")
    yield
    # shutdown: let queued persistence notifications finish
    notifier = app.dependency_overrides.get(get_registry, get_registry)().notifier
    await notifier.drain()
    logger.info("Shutting down...")


app = FastAPI(title="Proctoring Session Engine", version="1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(sessions.router)
app.include_router(reports.router)
app.include_router(ws.router)


@app.get("/health")
async def health():
    return JSONResponse({"status": "ok"})


if __name__ == "__main__":
    uvicorn.run("proctor_core.main:app", host=settings.HOST, port=settings.PORT, reload=True)
