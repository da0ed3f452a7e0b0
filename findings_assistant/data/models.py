# models.py
"""SQLAlchemy database models for the findings store."""

import os
from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, Float, Index, Integer, String, Text, create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from findings_assistant.core import Finding, settings

Base = declarative_base()


class FindingModel(Base):
    """SQLAlchemy model for audit findings with indexes on filterable columns"""

    __tablename__ = "findings"

    # Primary key is the external finding identifier
    id = Column(String(64), primary_key=True)

    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    severity = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False)
    department = Column(String(100), nullable=True)
    project_name = Column(String(200), nullable=True)
    project_type = Column(String(100), nullable=True)
    audit_year = Column(Integer, nullable=True)
    date_identified = Column(String(10), nullable=True)  # YYYY-MM-DD format
    root_cause = Column(Text, nullable=False, default="")
    recommendation = Column(Text, nullable=False, default="")
    risk_score = Column(Float, nullable=False, default=0.0)
    tags = Column(Text, nullable=False, default="")  # comma separated

    # Timestamps for auditing
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index("idx_findings_department", "department"),
        Index("idx_findings_audit_year", "audit_year"),
        Index("idx_findings_severity", "severity"),
        Index("idx_findings_status", "status"),
        Index("idx_findings_project_name", "project_name"),
        Index("idx_findings_project_type", "project_type"),
        Index("idx_findings_date_identified", "date_identified"),
        # Composite indexes for common query patterns
        Index("idx_findings_year_project_type", "audit_year", "project_type"),
        Index("idx_findings_department_year", "department", "audit_year"),
    )

    def __repr__(self):
        return f"<FindingModel(id='{self.id}', severity='{self.severity}', status='{self.status}')>"

    @classmethod
    def from_finding(cls, finding: Finding) -> "FindingModel":
        return cls(
            id=finding.id,
            title=finding.title,
            description=finding.description,
            severity=finding.severity,
            status=finding.status,
            department=finding.department,
            project_name=finding.project_name,
            project_type=finding.project_type,
            audit_year=finding.audit_year,
            date_identified=finding.date_identified,
            root_cause=finding.root_cause,
            recommendation=finding.recommendation,
            risk_score=finding.risk_score,
            tags=",".join(finding.tags),
        )

    def to_finding(self) -> Finding:
        return Finding(
            id=self.id,
            title=self.title,
            description=self.description or "",
            severity=self.severity,
            status=self.status,
            department=self.department,
            project_name=self.project_name,
            project_type=self.project_type,
            audit_year=self.audit_year,
            date_identified=self.date_identified,
            root_cause=self.root_cause or "",
            recommendation=self.recommendation or "",
            risk_score=self.risk_score or 0.0,
            tags=[tag for tag in (self.tags or "").split(",") if tag],
        )


class DatabaseManager:
    """Manages database connections and sessions"""

    def __init__(self, database_url: str = None):
        self.database_url = database_url or os.getenv("DATABASE_URL") or settings.DATABASE_URL
        self.engine = None
        self.SessionLocal = None
        self._initialize()

    def _initialize(self):
        """Initialize database engine and session factory"""
        connect_args = {}
        if "sqlite" in self.database_url:
            connect_args = {
                "check_same_thread": False,  # Allow multiple threads
                "timeout": 20,
            }

        self.engine = create_engine(
            self.database_url,
            connect_args=connect_args,
            echo=False,
            pool_pre_ping=True,   # Verify connections before use
            pool_recycle=3600,
        )

        self.SessionLocal = sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=self.engine
        )

    def create_tables(self):
        """Create all tables with indexes"""
        Base.metadata.create_all(bind=self.engine)

    def get_session(self):
        """Get a database session"""
        return self.SessionLocal()

    def drop_tables(self):
        """Drop all tables - USE WITH CAUTION"""
        Base.metadata.drop_all(bind=self.engine)

    def dispose(self):
        self.engine.dispose()

    def get_table_stats(self):
        """Get database statistics for monitoring"""
        with self.get_session() as session:
            finding_count = session.query(FindingModel).count()
            latest = session.query(FindingModel).order_by(
                FindingModel.created_at.desc()
            ).first()

            return {
                "total_findings": finding_count,
                "latest_finding": latest.created_at.isoformat() if latest else None,
                "database_url": self.database_url.split("@")[-1] if "@" in self.database_url else self.database_url
            }


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """Get the shared database manager, creating it on first use"""
    global _db_manager
    if _db_manager is None:
        _db_manager = DatabaseManager()
    return _db_manager


def reset_db_manager() -> None:
    """Dispose the shared database manager so the next call rebuilds it"""
    global _db_manager
    if _db_manager is not None:
        _db_manager.dispose()
    _db_manager = None
