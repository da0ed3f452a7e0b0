# base_repository.py
"""Abstract base repository for findings storage."""

from abc import abstractmethod
from typing import Dict, List

from findings_assistant.core import DocumentStore, Finding


class BaseFindingRepository(DocumentStore):
    """Document store that also supports the write side used for seeding"""

    @abstractmethod
    def add(self, finding: Finding) -> None:
        """Add or replace a single finding"""
        pass

    @abstractmethod
    def add_many(self, findings: List[Finding]) -> None:
        """Add or replace multiple findings"""
        pass

    @abstractmethod
    def get_recent(self, limit: int = 50) -> List[Finding]:
        """Get most recently identified findings"""
        pass

    @abstractmethod
    def count(self) -> int:
        """Count all findings"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Remove all findings"""
        pass

    @abstractmethod
    def get_stats(self) -> Dict:
        """Get repository statistics for monitoring"""
        pass
