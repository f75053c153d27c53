import logging
import sys
from typing import Union

LOG_FORMAT = "[groovy-lsp] %(levelname)s %(name)s: %(message)s"
ROOT_LOGGER_NAME = "jlsp"


def configure_logging(level: Union[str, int] = "INFO") -> logging.Logger:
    """
    Sends the package's log records to stderr; stdout carries the protocol.
    Calling it again only changes the level.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    if not any(getattr(h, "_jlsp_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._jlsp_handler = True
        logger.addHandler(handler)
        logger.propagate = False
    return logger
