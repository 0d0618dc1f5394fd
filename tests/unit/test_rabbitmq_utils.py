import json
from unittest.mock import AsyncMock, patch

import aio_pika
import pytest

from readlater import rabbitmq_utils
from readlater.models.save_models import SaveRequestEvent
from readlater.rabbitmq_utils import PublishError, SaveRequestPublisher


@pytest.mark.asyncio
async def test_publish_sends_persistent_json_message(publisher, mock_channel):
    event = SaveRequestEvent(request_id="r1", user_id="u1", url="https://example.com", labels=["a"])

    await publisher.publish(event)

    message = mock_channel.default_exchange.publish.call_args.args[0]
    assert mock_channel.default_exchange.publish.call_args.kwargs["routing_key"] == "test_page_save_requests"
    assert message.delivery_mode == aio_pika.DeliveryMode.PERSISTENT
    assert message.message_id == "r1"
    body = json.loads(message.body.decode())
    assert body["url"] == "https://example.com"
    assert body["labels"] == ["a"]
    assert "ts" in body


@pytest.mark.asyncio
async def test_publish_wraps_broker_errors(publisher, mock_channel):
    mock_channel.default_exchange.publish.side_effect = RuntimeError("channel closed")

    with pytest.raises(PublishError):
        await publisher.publish(SaveRequestEvent(request_id="r1", user_id="u1", url="https://x.test"))


def test_publisher_defaults_to_configured_queue(mock_channel):
    assert SaveRequestPublisher(mock_channel).queue == rabbitmq_utils.settings.save_queue


@pytest.mark.asyncio
async def test_get_channel_declares_durable_queues():
    connection = AsyncMock()
    connection.is_closed = False
    channel = connection.channel.return_value

    with patch.object(rabbitmq_utils.aio_pika, "connect_robust", AsyncMock(return_value=connection)) as connect:
        try:
            result = await rabbitmq_utils.get_channel("q1", "q2")
            await rabbitmq_utils.get_channel("q1")
        finally:
            await rabbitmq_utils.close_rabbitmq_connection()

    assert result is channel
    connect.assert_awaited_once()
    channel.declare_queue.assert_any_await("q1", durable=True)
    channel.declare_queue.assert_any_await("q2", durable=True)
