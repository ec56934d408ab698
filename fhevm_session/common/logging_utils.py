"""
Logging helpers shared by the client, the API server and the CLI.
"""

import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(logger: logging.Logger, log_level: int) -> None:
    """
    Attach a single formatted StreamHandler to logger and set its level.

    Calling it again only adjusts the level of the existing handlers.
    """
    logger.setLevel(log_level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    for handler in logger.handlers:
        handler.setLevel(log_level)


def level_for(debug: bool, default: int = logging.INFO) -> int:  # noqa: FBT001
    """DEBUG when debug output is requested, default otherwise."""
    return logging.DEBUG if debug else default
