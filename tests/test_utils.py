import json
import logging

from audiosight.logging_setup import JSONFormatter, setup_logging
from audiosight.utils import format_seconds, hz_per_bin, hz_per_row, ms_per_hop, row_for_frequency


def test_resolution_helpers():
    assert hz_per_bin(44100, 2048) == 44100 / 2048
    assert ms_per_hop(512, 44100) == 1000.0 * 512 / 44100
    assert hz_per_row(22050.0, 512) == 22050.0 / 512


def test_row_for_frequency_inverts_axis():
    assert row_for_frequency(0.0, 22050.0, 512) == 511
    assert row_for_frequency(1000.0, 22050.0, 512) == 488
    assert row_for_frequency(22050.0, 22050.0, 512) == 0


def test_format_seconds():
    assert format_seconds(1.234) == "1.23s"
    assert format_seconds(75.0) == "1m 15.0s"


def test_json_formatter_emits_one_object():
    record = logging.LogRecord("audiosight.pipeline", logging.INFO, __file__, 10, "done %d", (3,), None)
    payload = json.loads(JSONFormatter().format(record))
    assert payload["message"] == "done 3"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "audiosight.pipeline"


def test_setup_logging_replaces_handlers():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        setup_logging(level="debug", log_format="json")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JSONFormatter)
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)
