import logging
import sys
from pathlib import Path


logger = logging.getLogger("offlinebuilder")

FILE_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"


def configure_logging(debug: bool):
    """
    Configures the logging system based on the debug flag.
    """
    handler = logging.StreamHandler(sys.stdout)
    formatter = logging.Formatter("%(message)s")
    handler.setFormatter(formatter)

    log_level = logging.DEBUG if debug else logging.INFO
    logger.setLevel(log_level)

    if not logger.hasHandlers():
        logger.addHandler(handler)


def add_file_handler(path: Path) -> logging.FileHandler:
    """Mirror the package log into a timestamped log file."""
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    handler.setLevel(logging.DEBUG)
    if logger.getEffectiveLevel() > logging.INFO:
        logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    return handler


def remove_file_handler(handler: logging.Handler) -> None:
    logger.removeHandler(handler)
    handler.close()
