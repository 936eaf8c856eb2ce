"""
Logging infrastructure.

One line format for the engine, the service adapters and the API.
"""
import logging

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Configure the root logger for a process running the engine.

    Args:
        level: Root log level, as a logging constant or its name
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=LOG_FORMAT)


def get_logger(name: str, level: int = logging.INFO) -> logging.Logger:
    """
    Named logger with its own handler, used by the engine components.

    Args:
        name: Logger name (e.g. "orchestration.engine")
        level: Level applied the first time the logger is configured

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
        logger.setLevel(level)
        logger.propagate = False
    return logger
