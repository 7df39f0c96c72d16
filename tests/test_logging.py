"""Tests for the logging context."""

from loguru import logger

from sensorwatch.logging import LoggingContext, context_filter, get_logging_context


def test_context_is_scoped():
    with LoggingContext(device_id="dev-1"):
        with LoggingContext(batch_id="abc"):
            assert get_logging_context() == {"device_id": "dev-1", "batch_id": "abc"}
        assert get_logging_context() == {"device_id": "dev-1"}
    assert get_logging_context() == {}


def test_records_carry_context():
    records = []
    sink_id = logger.add(lambda message: records.append(message.record), filter=context_filter)
    try:
        with LoggingContext(device_id="dev-9"):
            logger.info("inside")
        logger.info("outside")
    finally:
        logger.remove(sink_id)

    assert records[0]["extra"]["device_id"] == "dev-9"
    assert records[0]["extra"]["batch_id"] == "-"
    assert records[1]["extra"]["device_id"] == "-"
