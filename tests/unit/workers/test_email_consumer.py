"""Test module for the email save worker."""

import json
from unittest.mock import MagicMock

import pytest

from readlater.workers.email_consumer import (
    EmailMessageError,
    consume_email_saves,
    parse_email_message,
    process_message,
)


def make_message(payload):
    message = MagicMock()
    message.body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
    return message


def test_parse_email_message():
    data = parse_email_message(
        json.dumps({"user_id": "u1", "url": "https://example.com", "client_request_id": "c1"}).encode()
    )
    assert data["url"] == "https://example.com"


@pytest.mark.parametrize(
    "body",
    [
        b"not json",
        b"[1, 2]",
        json.dumps({"user_id": "u1", "url": "https://example.com"}).encode(),
    ],
)
def test_parse_email_message_rejects_bad_payloads(body):
    with pytest.raises(EmailMessageError):
        parse_email_message(body)


@pytest.mark.asyncio
async def test_process_message_saves_url(db, user, publisher, mock_channel):
    message = make_message(
        {"user_id": user.id, "url": "https://example.com/mail", "client_request_id": "email-1"}
    )

    assert await process_message(message, db, publisher) is True
    message.process.assert_called_once()
    assert await db.count_save_requests(user.id) == 1
    mock_channel.default_exchange.publish.assert_awaited_once()


@pytest.mark.asyncio
async def test_process_message_drops_malformed_messages(db, publisher, mock_channel):
    message = make_message(b"{broken")

    assert await process_message(message, db, publisher) is False
    message.process.assert_called_once()
    mock_channel.default_exchange.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_consume_email_saves_keeps_going_after_bad_messages(db, user, publisher):
    messages = [
        make_message(b"garbage"),
        make_message({"user_id": "nobody", "url": "https://example.com/x", "client_request_id": "c0"}),
        make_message({"user_id": user.id, "url": "https://example.com/y", "client_request_id": "c1"}),
    ]
    queue = MagicMock()
    queue_iter = MagicMock()
    queue_iter.__aiter__.return_value = messages
    queue.iterator.return_value.__aenter__.return_value = queue_iter

    await consume_email_saves(queue, db, publisher)

    for message in messages:
        message.process.assert_called_once()
    assert await db.count_save_requests(user.id) == 1
