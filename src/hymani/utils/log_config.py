"""Package logger.

Importing this module attaches a stdout handler to the ``hymani`` logger
once; every module logs through :data:`logger`. The initial level can be
set with the ``HYMANI_LOG_LEVEL`` environment variable.
"""

import logging
import os
import sys

_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(level=None, format_string=_FORMAT):
    """Configure the ``hymani`` logger to write to stdout and return it."""
    if level is None:
        level = os.environ.get("HYMANI_LOG_LEVEL", "INFO").upper()
    log = logging.getLogger("hymani")
    log.setLevel(level)
    handler = next((h for h in log.handlers if getattr(h, "_hymani_stdout", False)), None)
    if handler is None:
        handler = logging.StreamHandler(sys.stdout)
        handler._hymani_stdout = True
        log.addHandler(handler)
    handler.setFormatter(logging.Formatter(format_string))
    return log


logger = setup_logging()
