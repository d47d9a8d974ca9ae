import logging
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("freelancehub")
    logger.setLevel(level.upper())

    # Repeated app factory calls (tests) must not stack handlers.
    if not any(getattr(handler, "_freelancehub", False) for handler in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._freelancehub = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

    return logger
