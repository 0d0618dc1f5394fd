#!/usr/bin/env python3
"""
Save API Service

This FastAPI service stores save requests for single URLs and CSV bookmark
imports, and publishes them to a RabbitMQ queue for the page fetcher.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Union

import psutil
from dotenv import load_dotenv
from fastapi import FastAPI, Header, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware

from ...config import settings
from ...db.repository import ReadLaterDatabase
from ...logging_config import setup_logging
from ...models.db_models import User
from ...models.import_models import ImportContext
from ...models.save_models import SaveError, SaveSuccess, SaveUrlInput
from ...rabbitmq_utils import SaveRequestPublisher, close_rabbitmq_connection, get_channel
from ..imports.csv_importer import import_csv
from ..imports.handlers import make_save_url_handler
from ..save.context import SaveContext
from ..save.orchestrator import save_url

# Load environment variables
load_dotenv()

# Package-wide logger; module loggers propagate into it
logger = setup_logging("readlater")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database and the RabbitMQ channel for the app's lifetime."""
    logger.info("Starting service")
    db = await ReadLaterDatabase(settings.readlater_db_path).ainit()
    channel = await get_channel(settings.save_queue)
    app.state.db = db
    app.state.publisher = SaveRequestPublisher(channel, settings.save_queue)

    try:
        yield
    finally:
        logger.info("Starting graceful shutdown")
        await channel.close()
        await close_rabbitmq_connection()
        await db.close()
        logger.info("Service shutdown complete")


app = FastAPI(
    title="Save API Service",
    description="Service for saving URLs and importing bookmarks for later reading",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _save_context(uid: str) -> SaveContext:
    return SaveContext(
        db=app.state.db,
        publisher=app.state.publisher,
        uid=uid,
        home_page_url=settings.home_page_url,
    )


async def _require_user(uid: str) -> User:
    user = await app.state.db.get_user(uid)
    if user is None:
        raise HTTPException(status_code=404, detail="user not found")
    return user


@app.post("/save", response_model=Union[SaveSuccess, SaveError])
async def save(payload: SaveUrlInput, x_user_id: str = Header(...)):
    """Save one URL for the calling user."""
    user = await _require_user(x_user_id)
    result = await save_url(_save_context(user.id), user, payload)
    if isinstance(result, SaveError):
        logger.warning("Save failed", extra={"user_id": user.id, "url": payload.url})
    return result


@app.post("/import/csv")
async def import_bookmarks(request: Request, x_user_id: str = Header(...)) -> Dict[str, int]:
    """Import a CSV bookmark file sent as the raw request body."""
    user = await _require_user(x_user_id)
    ctx = ImportContext(
        url_handler=make_save_url_handler(_save_context(user.id), user),
        user_id=user.id,
        source="csv-importer",
    )
    await import_csv(ctx, request.stream())
    return {"count_imported": ctx.count_imported, "count_failed": ctx.count_failed}


@app.get("/health")
async def health_check() -> Dict[str, Any]:
    """Health check endpoint."""
    db = getattr(app.state, "db", None)
    publisher = getattr(app.state, "publisher", None)
    database_ok = db is not None and await db.check_connection()
    channel_ok = publisher is not None and not publisher.is_closed

    return {
        "status": "healthy" if database_ok and channel_ok else "unhealthy",
        "database": "connected" if database_ok else "disconnected",
        "queue": "connected" if channel_ok else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "metrics": {
            "cpu_percent": psutil.cpu_percent(),
            "memory_percent": psutil.virtual_memory().percent,
        },
    }


def main() -> None:
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
