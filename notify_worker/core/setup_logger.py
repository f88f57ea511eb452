"""
Centralized logger factory
Separate loggers for the HTTP endpoint, the dispatcher and the job store
"""
import logging

from notify_worker.core.config import settings
from notify_worker.core.logger import setup_logging

_log_to_file = settings.ENVIRONMENT != "test"

# API Logger - invocation endpoint
api_logger = setup_logging(
    log_level=logging.INFO,
    log_dir=settings.LOG_DIR,
    app_name='api',
    log_to_file=_log_to_file,
)

# Worker Logger - batch dispatch and delivery
worker_logger = setup_logging(
    log_level=logging.DEBUG if settings.DEBUG else logging.INFO,
    log_dir=settings.LOG_DIR,
    app_name='worker',
    log_to_file=_log_to_file,
)

# Database Logger - job store bookkeeping
db_logger = setup_logging(
    log_level=logging.WARNING,
    log_dir=settings.LOG_DIR,
    app_name='db',
    log_to_file=_log_to_file,
)


def get_logger(name: str):
    """
    Get a logger by name

    Args:
        name: Logger name ('api', 'worker', 'database')

    Returns:
        Logger instance
    """
    loggers = {
        'api': api_logger,
        'worker': worker_logger,
        'database': db_logger
    }

    return loggers.get(name, api_logger)
