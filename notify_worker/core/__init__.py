from notify_worker.core import config
from notify_worker.core.config import settings, get_settings, Settings
from notify_worker.core.setup_logger import get_logger, api_logger, worker_logger, db_logger

__all__ = [
    'config',
    'settings',
    'get_settings',
    'Settings',
    'worker_logger',
    'db_logger',
    'get_logger',
    'api_logger',
]
