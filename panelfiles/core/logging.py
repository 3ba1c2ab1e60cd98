"""Logging utilities for the panel file gateway."""
import logging
import sys

from panelfiles.core.config import Settings
from panelfiles.core.request_context import get_request_id, get_server_id

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - "
    "request_id=%(request_id)s server=%(server_id)s - %(message)s"
)

_base_factory = logging.getLogRecordFactory()


def _context_record_factory(*args, **kwargs) -> logging.LogRecord:
    record = _base_factory(*args, **kwargs)
    record.request_id = get_request_id() or "system"
    record.server_id = get_server_id() or "-"
    return record


def configure_logging(
    settings: Settings, *,
    logger_name: str = "panelfiles",
) -> logging.Logger:
    """Configure the root logger and return the application logger.

    Every record carries the current request id and game server id. Safe to
    call more than once.

    Args:
        settings: Application settings containing log-level information.
        logger_name: Name of the logger to retrieve.

    Returns:
        Configured logger instance.
    """

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )
    logging.setLogRecordFactory(_context_record_factory)

    logger = logging.getLogger(logger_name)
    logger.setLevel(log_level)

    # requests' connection pool logs every panel call at DEBUG
    if log_level > logging.DEBUG:
        logging.getLogger("urllib3").setLevel(logging.WARNING)
    #logging.getLogger("panelfiles.services.transfer_executor").setLevel(logging.DEBUG)

    logger.debug("Logging configured with level %s", logging.getLevelName(log_level))
    return logger
