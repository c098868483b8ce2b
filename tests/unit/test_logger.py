"""
Unit tests for structured logging (launchpad/core/logger.py)

Tests:
- Wei-sized integers rendered as strings
- JSON output to a log file
"""

import json
import logging

import pytest
import structlog

from launchpad.core.config import LogConfig
from launchpad.core.logger import MAX_SAFE_INTEGER, get_logger, setup_logging, stringify_wei


@pytest.fixture
def restore_logging():
    yield
    structlog.reset_defaults()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


class TestStringifyWei:
    """Test the wei rendering processor"""

    def test_large_integers_become_strings(self):
        event = stringify_wei(None, "info", {
            "event": "fee_claimed",
            "amount": 10**27,
            "debt": -(2**60),
            "count": 3,
        })

        assert event == {
            "event": "fee_claimed",
            "amount": str(10**27),
            "debt": str(-(2**60)),
            "count": 3,
        }

    def test_boundary_and_bools_untouched(self):
        event = stringify_wei(None, "info", {"exact": MAX_SAFE_INTEGER, "flag": True})

        assert event == {"exact": MAX_SAFE_INTEGER, "flag": True}


class TestSetupLogging:
    """Test logging configuration"""

    def test_json_lines_written_to_file(self, tmp_path, restore_logging):
        path = tmp_path / "engine.log"
        setup_logging(LogConfig(level="INFO", format="json", output_file=str(path)))

        log = get_logger("launchpad.tests")
        log.debug("hidden")
        log.info("fee_claimed", amount=10**27, destination="0xabc")
        for handler in logging.root.handlers:
            handler.flush()

        lines = path.read_text().splitlines()
        assert len(lines) == 1

        record = json.loads(lines[0])
        assert record["event"] == "fee_claimed"
        assert record["amount"] == str(10**27)
        assert record["destination"] == "0xabc"
        assert record["level"] == "info"
        assert record["logger"] == "launchpad.tests"
        assert "timestamp" in record
