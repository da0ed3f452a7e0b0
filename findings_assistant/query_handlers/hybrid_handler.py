# hybrid_handler.py
"""Handler for hybrid queries: structured retrieval, then LLM summarization."""

import asyncio
from typing import Optional

from .analytical_handler import AnalysisPlan, AnalyticalHandler
from .types import Classification, FilterSet, Query, QueryType

SUMMARY_PROMPT = """Question: {question}

The context above lists {count} audit findings that matched the filters
({filters}). Summarise them to answer the question: group similar findings,
point out patterns across projects or departments and note what should be
addressed first."""


class HybridHandler(AnalyticalHandler):
    """Summarises exactly the rows a lookup would return"""

    query_type = QueryType.HYBRID
    prompt_template = SUMMARY_PROMPT

    async def prepare(
        self, query: Query, filters: FilterSet, classification: Classification
    ) -> Optional[AnalysisPlan]:
        execution = await asyncio.to_thread(
            self.executor.execute, filters, 1, self.retrieval_limit
        )
        if not execution.rows:
            return None
        return self._plan(
            query,
            filters,
            classification,
            execution.rows,
            records_examined=execution.records_examined,
            slow_path=execution.slow_path,
        )
