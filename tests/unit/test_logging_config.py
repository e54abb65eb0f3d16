"""Unit tests for logging configuration and the engine log sink."""

import json
import logging

from archgate.logging_config import (
    JsonFormatter,
    LoggerSink,
    LogLevel,
    evaluation_scope,
    get_evaluation_id,
    get_logger,
)


class ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestEvaluationScope:
    """Tests for evaluation_id correlation."""

    def test_scope_sets_and_resets(self):
        assert get_evaluation_id() is None
        with evaluation_scope() as evaluation_id:
            assert get_evaluation_id() == evaluation_id
            assert len(evaluation_id) == 12
        assert get_evaluation_id() is None

    def test_explicit_id(self):
        with evaluation_scope("abc") as evaluation_id:
            assert evaluation_id == "abc"


class TestLoggerSink:
    """Tests for LoggerSink."""

    def test_levels_and_context(self):
        logger = get_logger("archgate.tests.sink")
        logger.setLevel(logging.DEBUG)
        handler = ListHandler()
        logger.addHandler(handler)
        try:
            sink = LoggerSink(logger)
            sink.log(LogLevel.WARN, "Layer violation recorded", {"type": "unauthorized-dependency"})
            sink.log("debug", "Layer registered: dom", {"layer_id": "dom"})
        finally:
            logger.removeHandler(handler)

        assert [r.levelno for r in handler.records] == [logging.WARNING, logging.DEBUG]
        assert handler.records[0].context == {"type": "unauthorized-dependency"}


class TestJsonFormatter:
    """Tests for the production formatter."""

    def test_includes_context_and_evaluation_id(self):
        record = logging.LogRecord(
            "archgate.test", logging.INFO, __file__, 1, "Gate decision: search", None, None,
        )
        record.context = {"allowed": True}
        record.evaluation_id = "abc123"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "Gate decision: search"
        assert payload["level"] == "INFO"
        assert payload["evaluation_id"] == "abc123"
        assert payload["context"] == {"allowed": True}
