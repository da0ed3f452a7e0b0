# sqlalchemy_repository.py
"""SQLAlchemy-based findings repository."""

from contextlib import contextmanager
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import desc, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from findings_assistant.core import AggregationResult, Finding, Predicate, settings
from findings_assistant.core.exceptions import StoreUnavailableError
from findings_assistant.core.models import AGGREGATE_OPERATIONS, FILTERABLE_FIELDS, metric_key
from .base_repository import BaseFindingRepository
from .models import DatabaseManager, FindingModel, get_db_manager

SQL_AGGREGATES = {
    "count": func.count,
    "sum": func.sum,
    "avg": func.avg,
    "min": func.min,
    "max": func.max,
}


class SQLAlchemyFindingRepository(BaseFindingRepository):
    """Findings store backed by any SQLAlchemy database.

    Without an explicit session every operation opens and closes its own
    session, so one repository can be shared across worker threads.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        session: Optional[Session] = None,
    ):
        self.session = session
        self._db_manager = db_manager

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        # Borrowed sessions are closed by their owner
        pass

    @property
    def db_manager(self) -> DatabaseManager:
        if self._db_manager is None:
            self._db_manager = get_db_manager()
        return self._db_manager

    @contextmanager
    def _session_scope(self):
        if self.session is not None:
            yield self.session
            return
        session = self.db_manager.get_session()
        try:
            yield session
        finally:
            session.close()

    def _check_collection(self, collection: str) -> None:
        if collection != settings.FINDINGS_COLLECTION:
            raise StoreUnavailableError(f"Unknown collection: {collection}")

    def _apply_predicates(self, query, predicates: Sequence[Predicate]):
        for predicate in predicates:
            column = getattr(FindingModel, predicate.field)
            value = predicate.value
            if predicate.operator == "==":
                query = query.filter(column == value)
            elif predicate.operator == "!=":
                query = query.filter(column != value)
            elif predicate.operator == ">":
                query = query.filter(column > value)
            elif predicate.operator == ">=":
                query = query.filter(column >= value)
            elif predicate.operator == "<":
                query = query.filter(column < value)
            elif predicate.operator == "<=":
                query = query.filter(column <= value)
            else:
                query = query.filter(column.in_(list(value)))
        return query

    def add(self, finding: Finding) -> None:
        """Add or replace a single finding"""
        self.add_many([finding])

    def add_many(self, findings: List[Finding]) -> None:
        """Add or replace multiple findings in one transaction"""
        with self._session_scope() as session:
            try:
                for finding in findings:
                    session.merge(FindingModel.from_finding(finding))
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreUnavailableError(f"Failed to add findings: {str(e)}") from e

    def query(
        self,
        collection: str,
        predicates: Sequence[Predicate],
        limit: Optional[int] = None,
    ) -> List[Finding]:
        """Findings matching every predicate, most recently identified first"""
        self._check_collection(collection)
        with self._session_scope() as session:
            try:
                query = self._apply_predicates(session.query(FindingModel), predicates)
                query = query.order_by(
                    desc(FindingModel.date_identified), FindingModel.id
                )
                if limit:
                    query = query.limit(limit)
                return [row.to_finding() for row in query.all()]
            except SQLAlchemyError as e:
                raise StoreUnavailableError(f"Failed to query findings: {str(e)}") from e

    def aggregate(
        self,
        collection: str,
        group_by: Sequence[str],
        predicates: Sequence[Predicate],
        metrics: Optional[Sequence[Tuple[str, str]]] = None,
    ) -> List[AggregationResult]:
        """Grouped counts and metrics computed by the database"""
        self._check_collection(collection)
        metrics = list(metrics or [])
        for name in group_by:
            if name not in FILTERABLE_FIELDS:
                raise ValueError(f"Unsupported group-by field: {name}")
        for operation, field_name in metrics:
            if operation not in AGGREGATE_OPERATIONS or field_name not in FILTERABLE_FIELDS:
                raise ValueError(f"Unsupported metric: {operation}({field_name})")

        group_columns = [getattr(FindingModel, name) for name in group_by]
        metric_columns = [
            SQL_AGGREGATES[operation](getattr(FindingModel, field_name))
            for operation, field_name in metrics
        ]

        with self._session_scope() as session:
            try:
                query = session.query(
                    *group_columns, func.count(FindingModel.id), *metric_columns
                )
                query = self._apply_predicates(query, predicates)
                if group_columns:
                    query = query.group_by(*group_columns)
                rows = query.all()
            except SQLAlchemyError as e:
                raise StoreUnavailableError(f"Failed to aggregate findings: {str(e)}") from e

        results = []
        for row in rows:
            group_values = row[: len(group_by)]
            count = row[len(group_by)]
            if not group_by and count == 0:
                continue
            metric_values = row[len(group_by) + 1:]
            results.append(
                AggregationResult(
                    group=dict(zip(group_by, group_values)),
                    count=int(count),
                    metrics={
                        metric_key(operation, field_name): float(value)
                        for (operation, field_name), value in zip(metrics, metric_values)
                        if value is not None
                    },
                )
            )

        results.sort(key=lambda result: (-result.count, tuple(str(v) for v in result.group.values())))
        return results

    def distinct_values(self, collection: str, field: str) -> List[str]:
        """Distinct non-empty values of a field, most frequent first"""
        self._check_collection(collection)
        if field not in FILTERABLE_FIELDS:
            raise ValueError(f"Unsupported field: {field}")
        column = getattr(FindingModel, field)
        with self._session_scope() as session:
            try:
                rows = session.query(column, func.count(FindingModel.id)).filter(
                    column.isnot(None)
                ).group_by(column).order_by(
                    func.count(FindingModel.id).desc(), column
                ).all()
                return [str(value) for value, _ in rows if value != ""]
            except SQLAlchemyError as e:
                raise StoreUnavailableError(f"Failed to get distinct {field}: {str(e)}") from e

    def get_recent(self, limit: int = 50) -> List[Finding]:
        """Get most recently identified findings"""
        return self.query(settings.FINDINGS_COLLECTION, [], limit=limit)

    def count(self) -> int:
        with self._session_scope() as session:
            try:
                return session.query(func.count(FindingModel.id)).scalar()
            except SQLAlchemyError as e:
                raise StoreUnavailableError(f"Failed to count findings: {str(e)}") from e

    def clear(self) -> None:
        """Clear all findings - USE WITH CAUTION"""
        with self._session_scope() as session:
            try:
                session.query(FindingModel).delete()
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreUnavailableError(f"Failed to clear findings: {str(e)}") from e

    def get_stats(self) -> Dict:
        """Get repository statistics for monitoring"""
        collection = settings.FINDINGS_COLLECTION
        by_severity = self.aggregate(collection, ["severity"], [])
        by_department = self.aggregate(collection, ["department"], [])
        return {
            "total_findings": self.count(),
            "severity_distribution": {
                result.group["severity"]: result.count for result in by_severity
            },
            "department_distribution": {
                result.group["department"]: result.count
                for result in by_department
                if result.group["department"]
            },
        }
