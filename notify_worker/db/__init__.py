from notify_worker.db.database import Base, get_db, get_session_factory, close_database

__all__ = [
    "Base",
    "get_db",
    "get_session_factory",
    "close_database",
]
