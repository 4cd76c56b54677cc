import inspect
import logging
import sys
from datetime import datetime, timezone

from logforward.core.config import cfg


class ISO8601Formatter(logging.Formatter):
    """Custom formatter that outputs timestamps in ISO 8601 format with timezone."""

    def formatTime(self, record, datefmt=None):
        return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
            timespec="milliseconds"
        )


_logging_configured = False


def get_logger(level: str = cfg.LOG_LEVEL.value) -> logging.Logger:
    """
    Get a logger for the calling module with ISO 8601 formatted timestamps.

    Args:
        level: Logging level (e.g., 'DEBUG', 'INFO', 'WARNING')

    Returns:
        Logger instance for the calling module.
    """
    global _logging_configured

    root_logger = logging.getLogger()

    if not _logging_configured:
        formatter = ISO8601Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

        # transitions logs every state change at INFO
        logging.getLogger("transitions").setLevel(logging.WARNING)

        _logging_configured = True

    frame = inspect.currentframe()
    module = inspect.getmodule(frame.f_back) if frame else None
    module_name = (
        module.__name__ if module and module.__name__ != "__main__" else "__main__"
    )

    logger = logging.getLogger(module_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return logger
