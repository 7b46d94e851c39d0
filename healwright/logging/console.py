from __future__ import annotations

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attaches one stream handler to the ``healwright`` logger."""

    logger = logging.getLogger("healwright")
    logger.setLevel(level)
    if not any(getattr(handler, "_healwright", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._healwright = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger
