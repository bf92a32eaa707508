"""Test the centralized logging functionality."""

import logging
from io import StringIO

from gputopo.log_config import get_logger, set_global_log_level


def test_set_global_log_level():
    """Test that set_global_log_level configures logging properly."""
    set_global_log_level(logging.WARNING)
    assert logging.getLogger("gputopo").level == logging.WARNING

    set_global_log_level(logging.DEBUG)
    assert logging.getLogger("gputopo").level == logging.DEBUG

    set_global_log_level(logging.INFO)
    assert logging.getLogger("gputopo").level == logging.INFO


def test_logger_hierarchy():
    """Test that child loggers inherit from parent."""
    set_global_log_level(logging.WARNING)

    child_logger = get_logger("gputopo.allocator")

    assert child_logger.getEffectiveLevel() == logging.WARNING


def test_allocator_logs_soft_failures(incomplete_devices):
    """Incomplete topologies are reported at debug level."""
    from gputopo.allocator import allocate

    logger = get_logger("gputopo.allocator")
    log_capture = StringIO()
    handler = logging.StreamHandler(log_capture)
    handler.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    previous = logger.level
    logger.setLevel(logging.DEBUG)
    try:
        allocate(incomplete_devices, None, 2)
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous)

    assert "missing links [(2, 1)]" in log_capture.getvalue()
