"""Log setup for the members application."""

import logging
from pythonjsonlogger import jsonlogger


def setup_logger(level: int = logging.INFO, json: bool = False) -> None:
    """Attach a single stream handler to the root logger."""
    logHandler = logging.StreamHandler()
    if json:
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(name)s %(message)s',
            rename_fields={'levelname': 'level', 'asctime': 'timestamp'}
        )
    else:
        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s %(name)s: %(message)s'
        )
    logHandler.setFormatter(formatter)
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if getattr(handler, '_members', False):
            logger.removeHandler(handler)
    logHandler._members = True  # type: ignore
    logger.addHandler(logHandler)
    logger.setLevel(level)
