"""Logging setup for satsim.

Modules log through ``logging.getLogger(__name__)``; applications call
:func:`configure_logging` once to route records to the console and,
optionally, a file.

Example:
    >>> from satsim.log import configure_logging
    >>> configure_logging("DEBUG", log_file="output/simulation.log")
"""

import logging
import sys
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"


def configure_logging(
    level: int | str = logging.INFO,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Configure the ``satsim`` logger hierarchy.

    Args:
        level: Logging level (name or numeric value)
        log_file: Optional path of a log file (parent directories are created)

    Returns:
        The package root logger
    """
    root = logging.getLogger("satsim")
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    if log_file is not None:
        path = Path(log_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="w")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    root.propagate = False
    return root
