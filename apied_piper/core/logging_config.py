# File: apied_piper/core/logging_config.py

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Attach one stream handler to the package logger.

    Safe to call more than once (create_application runs per test).
    """
    logger = logging.getLogger("apied_piper")
    logger.setLevel(level)

    if not any(getattr(h, "_apied_piper", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._apied_piper = True
        logger.addHandler(handler)

    return logger
