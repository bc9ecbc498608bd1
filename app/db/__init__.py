from app.db.base import Base
from app.db.session import DatabaseManager, db_manager, get_db, get_session_factory

__all__ = ["Base", "DatabaseManager", "db_manager", "get_db", "get_session_factory"]
