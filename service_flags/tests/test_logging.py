"""
Unit tests for structured logging processors.
"""

from shared.config import get_config
from shared.logging import (
    _service_context, add_correlation_context, add_trace_context, configure_logging,
    configure_logging_from_config, datafile_context, get_logger, sdk_key_var
)


def test_service_context_adds_component():
    processor = _service_context("flag-runtime")

    event = processor(None, "info", {"event": "Cache entry refreshed", "logger": "flags.cache.datafile"})

    assert event["service"] == "flag-runtime"
    assert event["component"] == "cache.datafile"


def test_datafile_context_is_scoped():
    with datafile_context("sdk-key"):
        event = add_correlation_context(None, "info", {"event": "Requesting resource"})
        assert event["sdk_key"] == "sdk-key"

    assert sdk_key_var.get() is None
    assert add_correlation_context(None, "info", {"event": "decision"}) == {"event": "decision"}


def test_datafile_context_nests():
    with datafile_context("outer"):
        with datafile_context("inner"):
            assert sdk_key_var.get() == "inner"
        assert sdk_key_var.get() == "outer"


def test_trace_context_without_span():
    assert add_trace_context(None, "info", {"event": "decision"}) == {"event": "decision"}


def test_configure_logging():
    configure_logging("flag-runtime", "debug")

    get_logger("flags.test").info("configured", check=True)


def test_configure_logging_from_config():
    configure_logging_from_config(get_config(env="local", log_level="warning"))

    get_logger("flags.test").warning("configured for local use")
