# lookup_handler.py
"""Handler for lookup queries answered by a structured query alone."""

import asyncio

from findings_assistant.core import settings
from .executor import QueryExecutor
from .formatter import ResultFormatter
from .types import Classification, FilterSet, QueryResponse


class LookupHandler:
    """Runs the structured query, or an aggregation when a group-by was asked for"""

    def __init__(self, executor: QueryExecutor, formatter: ResultFormatter):
        self.executor = executor
        self.formatter = formatter

    async def handle(
        self,
        filters: FilterSet,
        classification: Classification,
        started_at: float,
        page: int = 1,
        page_size: int = settings.LOOKUP_PAGE_SIZE,
    ) -> QueryResponse:
        if classification.group_by:
            results, examined, slow_path = await asyncio.to_thread(
                self.executor.aggregate, filters, classification.group_by
            )
            return self.formatter.format_aggregation(
                results,
                classification.group_by,
                filters,
                classification,
                started_at,
                records_examined=examined,
                slow_path=slow_path,
            )

        execution = await asyncio.to_thread(self.executor.execute, filters, page, page_size)
        return self.formatter.format_rows(execution, filters, classification, started_at)
