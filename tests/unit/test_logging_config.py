import json
import logging

from readlater.logging_config import JSONFormatter, SensitiveDataFilter, setup_logging


def make_record(msg, **extra):
    record = logging.LogRecord("readlater.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extra_fields():
    output = json.loads(JSONFormatter().format(make_record("Saved", request_id="r1", count=2)))

    assert output["message"] == "Saved"
    assert output["level"] == "INFO"
    assert output["logger"] == "readlater.test"
    assert output["request_id"] == "r1"
    assert output["count"] == 2


def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "readlater.test", logging.ERROR, __file__, 10, "failed", None, __import__("sys").exc_info()
        )
    output = json.loads(JSONFormatter().format(record))

    assert output["exception"]["type"] == "ValueError"
    assert output["exception"]["message"] == "boom"


def test_sensitive_data_filter_redacts_message():
    record = make_record("rabbitmq password rejected")
    assert SensitiveDataFilter().filter(record) is True
    assert "password" not in record.msg


def test_setup_logging_writes_json_file(tmp_path):
    logger = setup_logging("readlater-test", level="debug", log_dir=str(tmp_path))
    logger.info("hello", extra={"user_id": "u1"})
    for handler in logger.handlers:
        handler.flush()

    lines = (tmp_path / "readlater-test.log").read_text().splitlines()
    entry = json.loads(lines[-1])
    assert entry["message"] == "hello"
    assert entry["user_id"] == "u1"
    assert logger.level == logging.DEBUG
