# test_sqlalchemy_repository.py
"""Tests for the SQLAlchemy findings repository."""

import tempfile
from dataclasses import replace
from pathlib import Path

import pytest

from findings_assistant.core import Predicate
from findings_assistant.core.exceptions import StoreUnavailableError
from findings_assistant.data.models import DatabaseManager
from findings_assistant.data.sqlalchemy_repository import SQLAlchemyFindingRepository

COLLECTION = "findings"


@pytest.fixture
def test_db_session():
    """Create a test database session that's isolated from production."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
        temp_db_path = tmp_file.name

    db_manager = DatabaseManager(f'sqlite:///{temp_db_path}')
    db_manager.create_tables()
    session = db_manager.get_session()
    try:
        yield session
    finally:
        session.close()
        db_manager.dispose()
        Path(temp_db_path).unlink(missing_ok=True)


@pytest.fixture
def loaded_repo(test_db_session, sample_findings):
    with SQLAlchemyFindingRepository(session=test_db_session) as repo:
        repo.add_many(sample_findings)
        yield repo


class TestSQLAlchemyFindingRepository:
    """Test cases for SQLAlchemy repository operations."""

    def test_add_single_finding(self, test_db_session, sample_findings):
        """Test adding a single finding keeps every field."""
        finding = sample_findings[0]

        with SQLAlchemyFindingRepository(session=test_db_session) as repo:
            repo.add(finding)

        with SQLAlchemyFindingRepository(session=test_db_session) as repo:
            recent = repo.get_recent(limit=1)
            assert recent == [finding]
            assert recent[0].tags == ["fire safety", "APAR"]

    def test_add_replaces_existing_id(self, test_db_session, sample_findings):
        """Adding a finding with a known id updates it."""
        finding = sample_findings[0]

        with SQLAlchemyFindingRepository(session=test_db_session) as repo:
            repo.add(finding)
            repo.add(replace(finding, status="Closed"))

            assert repo.count() == 1
            assert repo.get_recent()[0].status == "Closed"

    def test_query_with_predicates(self, loaded_repo):
        """Predicates combine with AND, newest first."""
        rows = loaded_repo.query(COLLECTION, [
            Predicate("audit_year", "==", 2024),
            Predicate("severity", "in", ("Critical", "High")),
            Predicate("project_type", "==", "Hotel"),
        ])

        assert [row.id for row in rows] == ["F-2024-005", "F-2024-003", "F-2024-002", "F-2024-001"]

    def test_query_with_date_range_and_limit(self, loaded_repo):
        rows = loaded_repo.query(COLLECTION, [
            Predicate("date_identified", ">=", "2025-01-01"),
            Predicate("date_identified", "<=", "2025-12-31"),
        ], limit=2)

        assert [row.id for row in rows] == ["F-2025-004", "F-2025-003"]

    def test_aggregate_in_database(self, loaded_repo):
        """Group counts and metrics are computed by SQL."""
        results = loaded_repo.aggregate(
            COLLECTION, ["department"], [Predicate("audit_year", "==", 2025)],
            metrics=[("avg", "risk_score"), ("max", "risk_score")],
        )

        assert [(r.group["department"], r.count) for r in results] == [
            ("IT", 2), ("Engineering", 1), ("Finance", 1)
        ]
        assert results[0].metrics["avg_risk_score"] == pytest.approx(18.0)
        assert results[0].metrics["max_risk_score"] == pytest.approx(21.0)

    def test_aggregate_rejects_unknown_field(self, loaded_repo):
        with pytest.raises(ValueError):
            loaded_repo.aggregate(COLLECTION, ["title"], [])

    def test_distinct_values_most_frequent_first(self, loaded_repo):
        names = loaded_repo.distinct_values(COLLECTION, "project_name")

        assert names[0] == "Grand Harbour Hotel"
        assert names[-1] == "Green Valley School"
        assert len(names) == 6

    def test_get_stats(self, loaded_repo):
        """Test getting repository statistics."""
        stats = loaded_repo.get_stats()

        assert stats["total_findings"] == 14
        assert stats["severity_distribution"]["Critical"] == 4
        assert stats["department_distribution"]["IT"] == 3

    def test_empty_repository(self, test_db_session):
        """Test operations on empty repository."""
        with SQLAlchemyFindingRepository(session=test_db_session) as repo:
            assert repo.get_recent() == []
            assert repo.query(COLLECTION, []) == []
            assert repo.aggregate(COLLECTION, [], []) == []
            assert repo.distinct_values(COLLECTION, "department") == []

            stats = repo.get_stats()
            assert stats["total_findings"] == 0
            assert stats["severity_distribution"] == {}

    def test_clear(self, loaded_repo):
        loaded_repo.clear()
        assert loaded_repo.count() == 0

    def test_unknown_collection(self, loaded_repo):
        with pytest.raises(StoreUnavailableError):
            loaded_repo.query("audits", [])

    def test_database_errors_become_store_unavailable(self):
        """A database without tables reports the store as unavailable."""
        with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as tmp_file:
            temp_db_path = tmp_file.name
        db_manager = DatabaseManager(f'sqlite:///{temp_db_path}')
        try:
            repo = SQLAlchemyFindingRepository(db_manager=db_manager)
            with pytest.raises(StoreUnavailableError):
                repo.query(COLLECTION, [])
        finally:
            db_manager.dispose()
            Path(temp_db_path).unlink(missing_ok=True)

    def test_performance_with_many_findings(self, test_db_session, sample_findings):
        """Indexed filters over a larger dataset."""
        template = sample_findings[0]
        findings = [
            replace(
                template,
                id=f"F-LOAD-{i:03d}",
                department=["IT", "HR", "Finance", "Operations", "Legal"][i % 5],
                audit_year=2020 + i % 5,
                date_identified=f"{2020 + i % 5}-01-{(i % 28) + 1:02d}",
            )
            for i in range(200)
        ]

        with SQLAlchemyFindingRepository(session=test_db_session) as repo:
            repo.add_many(findings)

            assert len(repo.query(COLLECTION, [Predicate("department", "==", "IT")])) == 40
            assert len(repo.query(COLLECTION, [Predicate("audit_year", "==", 2022)], limit=10)) == 10
