"""Tests for the JSON-extras log formatter."""

import io
import json
import logging

from kgrlens.core.logging import JSONExtrasFormatter, record_extras, setup_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="kgrlens.services.serp.ledger",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Low SERP credits warning: %d credits remaining",
        args=(42,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_extras_as_json() -> None:
    line = JSONExtrasFormatter().format(_record(remaining=42, threshold=100))

    prefix, _, extras = line.partition("credits remaining ")
    assert "| WARNING  | kgrlens.services.serp.ledger | Low SERP credits warning: 42" in prefix
    assert json.loads(extras) == {"remaining": 42, "threshold": 100}


def test_formatter_omits_empty_extras() -> None:
    line = JSONExtrasFormatter().format(_record())

    assert line.endswith("Low SERP credits warning: 42 credits remaining")


def test_record_extras_ignores_standard_attributes() -> None:
    assert record_extras(_record()) == {}
    assert record_extras(_record(keyword="kw", _private=1)) == {"keyword": "kw"}


def test_setup_logging_writes_to_given_stream_once() -> None:
    logger = logging.getLogger("kgrlens")
    saved = (logger.handlers[:], logger.level, logger.propagate)
    logger.handlers.clear()
    stream = io.StringIO()
    try:
        setup_logging("debug", stream=stream)
        setup_logging("warning", stream=io.StringIO())

        logging.getLogger("kgrlens.cli").warning("Progress", extra={"stage": "serp", "percent": 50.0})

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING
        assert 'Progress {"stage": "serp", "percent": 50.0}' in stream.getvalue()
    finally:
        logger.handlers[:] = saved[0]
        logger.setLevel(saved[1])
        logger.propagate = saved[2]
