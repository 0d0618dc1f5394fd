"""Test configuration and fixtures."""

import os
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

# Test configuration; must be in place before readlater.config is imported
TEST_LOG_DIR = tempfile.mkdtemp(prefix="readlater-test-logs-")
os.environ["LOG_DIR"] = TEST_LOG_DIR
os.environ["READLATER_DB_PATH"] = ":memory:"
os.environ["HOME_PAGE_URL"] = "https://reader.test"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from readlater.db.repository import ReadLaterDatabase  # noqa: E402
from readlater.logging_config import setup_logging  # noqa: E402
from readlater.rabbitmq_utils import SaveRequestPublisher  # noqa: E402
from readlater.services.save.context import SaveContext  # noqa: E402

DATA_DIR = Path(__file__).parent / "unit" / "data"
TEST_QUEUE = "test_page_save_requests"


@pytest.fixture
def data_dir():
    return DATA_DIR


@pytest_asyncio.fixture
async def db():
    """In-memory database with the schema created."""
    database = await ReadLaterDatabase(":memory:").ainit()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def user(db):
    return await db.insert_user("reader", "reader@example.com")


@pytest.fixture
def mock_channel():
    """Stand-in for an aio_pika channel."""
    channel = AsyncMock()
    channel.is_closed = False
    channel.default_exchange.publish = AsyncMock()
    return channel


@pytest.fixture
def publisher(mock_channel):
    return SaveRequestPublisher(mock_channel, TEST_QUEUE)


@pytest.fixture
def save_ctx(db, user, publisher):
    return SaveContext(db=db, publisher=publisher, uid=user.id, home_page_url="https://reader.test")


@pytest.fixture(autouse=True)
def json_logging():
    """Run every test with the package's JSON handlers installed, as the services do."""
    logger = setup_logging("readlater", level="INFO", log_dir=TEST_LOG_DIR)
    yield logger
    for handler in logger.handlers:
        handler.close()
