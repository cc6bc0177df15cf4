"""Unit tests for structured logging utilities in ``observability``.

Validates the null handler, trace binding, and event construction behaviour
the compile pipeline relies on.
"""

from __future__ import annotations

import logging

import pytest

from lib_compiled_config import bind_trace_id, get_logger
from lib_compiled_config.observability import TRACE_ID, log_debug, log_info, make_event


def test_null_handler_present() -> None:
    """Package logger should always include a NullHandler to avoid surprises."""

    logger = get_logger()
    assert logger.name == "lib_compiled_config"
    assert any(isinstance(handler, logging.NullHandler) for handler in logger.handlers)


def test_trace_id_in_log(caplog: pytest.LogCaptureFixture) -> None:
    """Structured logs should include the bound trace identifier and contextual fields."""

    caplog.set_level(logging.INFO, logger="lib_compiled_config")
    bind_trace_id("trace-123")
    try:
        log_info("config_compiled", source="config", name=None)
    finally:
        bind_trace_id(None)
    record = caplog.records[-1]
    assert record.getMessage() == "config_compiled"
    assert getattr(record, "context") == {"trace_id": "trace-123", "source": "config", "name": None}


def test_debug_entries_respect_level(caplog: pytest.LogCaptureFixture) -> None:
    """Debug events stay silent until the host lowers the level."""

    caplog.set_level(logging.INFO, logger="lib_compiled_config")
    log_debug("record_loaded", source="file")
    assert not [record for record in caplog.records if record.getMessage() == "record_loaded"]


def test_bind_trace_id_clears_context() -> None:
    """Clearing the trace ID should reset the context variable to None."""

    bind_trace_id("trace-temp")
    bind_trace_id(None)
    assert TRACE_ID.get() is None


def test_make_event_merges_optional_payload() -> None:
    """make_event should merge optional metadata without mutating base keys."""

    event = make_event("buffer", None, {"size": 3})
    assert event == {"source": "buffer", "name": None, "size": 3}
    assert make_event("file", "a.json") == {"source": "file", "name": "a.json"}
