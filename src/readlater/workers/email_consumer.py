"""Worker that saves URLs forwarded by the inbound email service."""

import asyncio
import json
import logging
from typing import Any, Dict

import aio_pika
from dotenv import load_dotenv

from ..config import settings
from ..db.repository import ReadLaterDatabase
from ..logging_config import setup_logging
from ..rabbitmq_utils import (
    SaveRequestPublisher,
    close_rabbitmq_connection,
    get_channel,
)
from ..services.save.context import SaveContext
from ..services.save.orchestrator import save_url_from_email

logger = logging.getLogger(__name__)

RECONNECT_DELAY = 5  # seconds


class EmailMessageError(Exception):
    """Raised when an email save message cannot be decoded."""

    pass


def parse_email_message(body: bytes) -> Dict[str, Any]:
    """Decode an email save message into user_id, url and client_request_id."""
    try:
        data = json.loads(body.decode())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise EmailMessageError(f"Failed to decode message: {e}") from e
    if not isinstance(data, dict):
        raise EmailMessageError("Message must be a JSON object")
    missing = [key for key in ("user_id", "url", "client_request_id") if not data.get(key)]
    if missing:
        raise EmailMessageError(f"Missing required field(s): {', '.join(missing)}")
    return data


async def process_message(
    message: aio_pika.abc.AbstractIncomingMessage,
    db: ReadLaterDatabase,
    publisher: SaveRequestPublisher,
) -> bool:
    """Handle one email save message. The message is always acknowledged.

    Returns:
        bool: True if the URL was saved
    """
    async with message.process():
        try:
            data = parse_email_message(message.body)
        except EmailMessageError as e:
            logger.error("Dropping email save message", extra={"error": str(e)})
            return False

        ctx = SaveContext(
            db=db,
            publisher=publisher,
            uid=data["user_id"],
            home_page_url=settings.home_page_url,
        )
        ok = await save_url_from_email(ctx, data["url"], data["client_request_id"])
        if ok:
            logger.info("Saved url from email", extra={"user_id": ctx.uid, "url": data["url"]})
        else:
            logger.error("Failed to save url from email", extra={"user_id": ctx.uid, "url": data["url"]})
        return ok


async def consume_email_saves(
    queue: aio_pika.abc.AbstractQueue,
    db: ReadLaterDatabase,
    publisher: SaveRequestPublisher,
) -> None:
    """Consume email save messages from ``queue`` until it is closed."""
    async with queue.iterator() as queue_iter:
        async for message in queue_iter:
            try:
                await process_message(message, db, publisher)
            except Exception:
                logger.exception("Error processing email save message")


async def run_worker() -> None:
    """Connect to the database and RabbitMQ and consume forever, reconnecting on failure."""
    db = await ReadLaterDatabase(settings.readlater_db_path).ainit()
    try:
        while True:
            try:
                channel = await get_channel(settings.save_queue, settings.email_queue)
                queue = await channel.declare_queue(settings.email_queue, durable=True)
                publisher = SaveRequestPublisher(channel, settings.save_queue)
                logger.info("Starting email save consumer", extra={"queue": settings.email_queue})
                await consume_email_saves(queue, db, publisher)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error("Email consumer stopped, reconnecting", extra={"error": str(e)})
                await asyncio.sleep(RECONNECT_DELAY)
    finally:
        await close_rabbitmq_connection()
        await db.close()


def main() -> None:
    load_dotenv()
    setup_logging("readlater")
    asyncio.run(run_worker())


if __name__ == "__main__":
    main()
