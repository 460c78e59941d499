from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from ptyscribe.log_setup import ROOT_LOGGER, TRACE, setup_logging


def _console(logger: logging.Logger) -> list[logging.Handler]:
    return [
        h for h in logger.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


@pytest.fixture(autouse=True)
def _drop_handlers():
    yield
    root = logging.getLogger(ROOT_LOGGER)
    for handler in root.handlers:
        handler.close()
    root.handlers.clear()


class TestTraceLevel:
    def test_trace_level_value(self):
        assert TRACE == 5

    def test_trace_level_name(self):
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_logger_has_trace_method(self):
        setup_logging(debug=False, trace=False, verbose=False)
        logger = logging.getLogger("ptyscribe.narration")
        assert callable(logger.trace)


class TestSetupLogging:
    def test_default_console_info(self):
        root = setup_logging(debug=False, trace=False, verbose=False)
        assert root.name == "ptyscribe"
        console = _console(root)
        assert len(console) == 1
        assert console[0].level == logging.INFO

    def test_debug_console_debug(self):
        root = setup_logging(debug=True, trace=False, verbose=False)
        assert _console(root)[0].level == logging.DEBUG

    def test_trace_creates_file_handler(self, tmp_path):
        with patch("ptyscribe.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=False)
        file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
        assert len(file_handlers) == 1
        assert file_handlers[0].level == TRACE

    def test_trace_console_stays_debug(self, tmp_path):
        with patch("ptyscribe.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=False)
        assert _console(root)[0].level == logging.DEBUG

    def test_trace_verbose_console_at_trace(self, tmp_path):
        with patch("ptyscribe.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=True)
        assert _console(root)[0].level == TRACE

    def test_trace_file_naming(self, tmp_path):
        with patch("ptyscribe.log_setup.TRACE_DIR", str(tmp_path)):
            setup_logging(debug=False, trace=True, verbose=False)
        log_files = list(tmp_path.iterdir())
        assert len(log_files) == 1
        assert log_files[0].name.startswith("trace-")
        assert log_files[0].suffix == ".log"

    def test_chunk_trace_reaches_file(self, tmp_path):
        with patch("ptyscribe.log_setup.TRACE_DIR", str(tmp_path)):
            setup_logging(debug=False, trace=True, verbose=False)
        logging.getLogger("ptyscribe.replay_log").log(TRACE, "chunk len=%d", 42)
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()
        content = next(tmp_path.iterdir()).read_text()
        assert "chunk len=42" in content

    def test_module_logger_propagates(self):
        setup_logging(debug=True, trace=False, verbose=False)
        child = logging.getLogger("ptyscribe.autowork")
        assert child.propagate is True
        assert child.parent.name == "ptyscribe"

    def test_idempotent_clears_old_handlers(self):
        setup_logging(debug=True, trace=False, verbose=False)
        root = setup_logging(debug=False, trace=False, verbose=False)
        assert len(_console(root)) == 1
