"""Central logging configuration for the backend application."""
import logging
import os


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def setup_logging(level=None) -> None:
    """Configure the root logger once for consistent application logs."""
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=level or LOG_LEVEL, format=LOG_FORMAT)
