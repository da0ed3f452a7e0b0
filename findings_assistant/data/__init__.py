# Data package
"""Data layer for the findings assistant."""

from .base_repository import BaseFindingRepository
from .database import DatabaseInitializer, init_database
from .models import DatabaseManager, FindingModel, get_db_manager, reset_db_manager
from .repository import InMemoryFindingRepository
from .sqlalchemy_repository import SQLAlchemyFindingRepository

__all__ = [
    "BaseFindingRepository",
    "InMemoryFindingRepository",
    "SQLAlchemyFindingRepository",
    "FindingModel",
    "DatabaseManager",
    "get_db_manager",
    "reset_db_manager",
    "DatabaseInitializer",
    "init_database",
]
