# database.py
"""Schema setup and health reporting for the findings database."""

import logging
from pathlib import Path
from typing import Dict, Optional

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

from .models import DatabaseManager, FindingModel, get_db_manager

logger = logging.getLogger(__name__)


def _sqlite_path(database_url: str) -> Optional[Path]:
    if database_url.startswith("sqlite:///"):
        return Path(database_url[len("sqlite:///"):])
    return None


class DatabaseInitializer:
    """Creates the findings schema and reports on its state"""

    @staticmethod
    def initialize_database(db_manager: Optional[DatabaseManager] = None) -> bool:
        """Create the findings table and its filter indexes"""
        db_manager = db_manager or get_db_manager()
        logger.info(f"Initializing findings database at {db_manager.database_url}")
        try:
            db_path = _sqlite_path(db_manager.database_url)
            if db_path is not None:
                db_path.parent.mkdir(parents=True, exist_ok=True)

            db_manager.create_tables()
            logger.info(f"Findings database ready: {db_manager.get_table_stats()}")
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"Failed to initialize findings database: {e}")
            raise

    @staticmethod
    def get_database_info(db_manager: Optional[DatabaseManager] = None) -> Dict:
        """Connection status, schema readiness and row counts"""
        db_manager = db_manager or get_db_manager()
        backend = db_manager.engine.url.get_backend_name()
        try:
            tables_ready = inspect(db_manager.engine).has_table(FindingModel.__tablename__)
            stats = db_manager.get_table_stats() if tables_ready else {}
        except SQLAlchemyError as e:
            logger.warning(f"Database health check failed: {e}")
            return {
                "database_type": backend,
                "connection_status": "Failed",
                "error": str(e),
            }

        return {
            "database_type": backend,
            "connection_status": "Connected",
            "tables_ready": tables_ready,
            "stats": stats,
        }


def init_database() -> bool:
    """Initialize the shared database manager's schema"""
    return DatabaseInitializer.initialize_database()
