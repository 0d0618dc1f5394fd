import asyncio
import logging
from typing import Optional

import aio_pika

from .config import settings
from .models.save_models import SaveRequestEvent

logger = logging.getLogger(__name__)

_connection: Optional[aio_pika.abc.AbstractRobustConnection] = None
_connection_lock = asyncio.Lock()


class PublishError(Exception):
    """Raised when an event cannot be handed to the broker."""

    pass


async def get_rabbitmq_connection() -> aio_pika.abc.AbstractRobustConnection:
    """Return a shared robust connection to RabbitMQ, opening it on first use."""
    global _connection
    async with _connection_lock:
        if _connection is not None and not _connection.is_closed:
            return _connection
        try:
            _connection = await aio_pika.connect_robust(
                host=settings.rabbitmq_host,
                port=settings.rabbitmq_port,
                login=settings.rabbitmq_user,
                password=settings.rabbitmq_password,
                virtualhost=settings.rabbitmq_vhost,
                heartbeat=60,
            )
            logger.info(f"Successfully connected to RabbitMQ at {settings.rabbitmq_host}")
            return _connection
        except Exception as e:
            logger.error(f"Failed to connect to RabbitMQ: {str(e)}")
            raise


async def get_channel(*queues: str) -> aio_pika.abc.AbstractChannel:
    """Get a channel from the RabbitMQ connection with the given queues declared."""
    connection = await get_rabbitmq_connection()
    channel = await connection.channel()
    for queue in queues or (settings.save_queue,):
        await channel.declare_queue(queue, durable=True)
    return channel


async def close_rabbitmq_connection() -> None:
    global _connection
    async with _connection_lock:
        if _connection is not None:
            await _connection.close()
            _connection = None


class SaveRequestPublisher:
    """Publishes save-requested events to the page save queue."""

    def __init__(self, channel: aio_pika.abc.AbstractChannel, queue: Optional[str] = None):
        self.channel = channel
        self.queue = queue or settings.save_queue

    @property
    def is_closed(self) -> bool:
        return bool(self.channel.is_closed)

    async def publish(self, event: SaveRequestEvent) -> None:
        """Publish one event as a persistent message.

        Raises:
            PublishError: If the broker rejects the message or the channel is gone
        """
        message = aio_pika.Message(
            body=event.model_dump_json().encode(),
            content_type="application/json",
            message_id=event.request_id,
            delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
        )
        try:
            await self.channel.default_exchange.publish(message, routing_key=self.queue)
        except Exception as e:
            logger.error(
                "Failed to publish save request",
                extra={"request_id": event.request_id, "error": str(e)},
            )
            raise PublishError(f"Failed to publish save request {event.request_id}: {e}") from e
        logger.info(
            "Published save request",
            extra={"request_id": event.request_id, "queue": self.queue, "priority": event.priority},
        )
