"""Tests for verbose log output."""

import io
import logging

import pytest

from circe_tools.schematic.logging import (
    PACKAGE_LOGGER,
    disable_verbose,
    enable_verbose,
    is_verbose,
    verbose,
)


@pytest.fixture(autouse=True)
def _quiet():
    yield
    disable_verbose()


class TestEnableVerbose:
    """Records from package modules reach the chosen stream."""

    def test_records_are_written(self):
        stream = io.StringIO()
        enable_verbose("DEBUG", stream=stream)
        logging.getLogger("circe_tools.router.grab").debug("planned %d step(s)", 3)
        assert stream.getvalue() == "DEBUG   circe_tools.router.grab: planned 3 step(s)\n"

    def test_level_filters(self):
        stream = io.StringIO()
        enable_verbose("info", stream=stream)
        logger = logging.getLogger("circe_tools.session")
        logger.debug("hidden")
        logger.info("shown")
        assert "hidden" not in stream.getvalue()
        assert "shown" in stream.getvalue()

    def test_second_call_replaces_handler(self):
        first = io.StringIO()
        second = io.StringIO()
        enable_verbose(stream=first)
        enable_verbose(stream=second)
        logging.getLogger(PACKAGE_LOGGER).warning("once")
        assert first.getvalue() == ""
        assert second.getvalue().count("once") == 1

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            enable_verbose("LOUD")
        assert not is_verbose()


class TestDisableVerbose:
    """Turning output off restores the quiet default."""

    def test_disable(self):
        stream = io.StringIO()
        enable_verbose(stream=stream)
        assert is_verbose()
        disable_verbose()
        assert not is_verbose()
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.NOTSET
        logging.getLogger(PACKAGE_LOGGER).warning("dropped")
        assert stream.getvalue() == ""

    def test_context_manager(self):
        stream = io.StringIO()
        with verbose("DEBUG", stream=stream) as handler:
            assert isinstance(handler, logging.Handler)
            logging.getLogger("circe_tools.history").debug("inside")
        logging.getLogger("circe_tools.history").warning("outside")
        assert "inside" in stream.getvalue()
        assert "outside" not in stream.getvalue()
        assert not is_verbose()
