"""Logger setup shared by the allocator, scoring layer and CLI.

Modules log through ``get_logger(__name__)`` and never configure handlers
themselves; only the CLI calls ``set_global_log_level`` once per run.
"""

import logging
import sys


def get_logger(name: str) -> logging.Logger:
    """Return the logger for a gputopo module.

    Args:
        name: Dotted module name, so records land under ``gputopo.*``.

    Returns:
        Logger that inherits its level from the ``gputopo`` logger.
    """
    return logging.getLogger(name)


def set_global_log_level(level: int) -> None:
    """Send log records to stderr and apply ``level`` to gputopo loggers.

    Replaces any handler installed by a previous call, so the CLI can switch
    between info and debug output.

    Args:
        level: Threshold such as ``logging.INFO`` or ``logging.DEBUG``.
    """
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("gputopo").setLevel(level)
